"""Shared test fixtures and factories."""

from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import pytest

from kindred.config.models import KindredConfig, ModelConfig, PeopleConfig
from kindred.db.engine import Database
from kindred.llm.types import CompletionResponse, Message, Usage
from kindred.people.manager import PeopleMemory
from kindred.people.types import MentionHistoryEntry, RelationshipRecord
from kindred.store.sql import SQLRelationshipStore

BASE_TIME = datetime(2025, 3, 1, 12, 0, tzinfo=UTC)


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def minimal_config() -> KindredConfig:
    """Minimal valid configuration."""
    return KindredConfig(
        models={"default": ModelConfig(provider="openai", model="gpt-4o-mini")}
    )


@pytest.fixture
def people_config() -> PeopleConfig:
    return PeopleConfig()


@pytest.fixture
def config_toml_content() -> str:
    """Valid TOML config content."""
    return """
[models.default]
provider = "openai"
model = "gpt-4o-mini"

[models.fast]
provider = "anthropic"
model = "claude-haiku-4-5"
max_tokens = 512

[people]
model = "fast"
context_limit = 5

[people.resolution]
match_threshold = 6
"""


@pytest.fixture
def config_file(tmp_path: Path, config_toml_content: str) -> Path:
    """Create a temporary config file."""
    config_path = tmp_path / "config.toml"
    config_path.write_text(config_toml_content)
    return config_path


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture
async def database(tmp_path: Path) -> AsyncGenerator[Database, None]:
    """Create a temporary test database."""
    db = Database(database_path=tmp_path / "test.db")
    await db.connect()
    await db.create_tables()

    yield db

    await db.disconnect()


@pytest.fixture
async def store(database: Database) -> SQLRelationshipStore:
    return SQLRelationshipStore(database)


# =============================================================================
# LLM Fixtures and Mocks
# =============================================================================


class MockLLMProvider:
    """Mock LLM provider for testing.

    ``responses`` are returned in order; once exhausted, ``default`` is
    returned for every further call.
    """

    def __init__(self, responses: list[str] | None = None, default: str = "[]"):
        self.responses = list(responses or [])
        self.default = default
        self.complete_calls: list[dict[str, Any]] = []

    @property
    def name(self) -> str:
        return "mock"

    @property
    def default_model(self) -> str:
        return "mock-model"

    async def complete(
        self,
        messages: list[Message],
        *,
        model: str | None = None,
        system: str | None = None,
        max_tokens: int = 1024,
        temperature: float | None = None,
    ) -> CompletionResponse:
        self.complete_calls.append(
            {
                "messages": messages,
                "model": model,
                "system": system,
                "max_tokens": max_tokens,
                "temperature": temperature,
            }
        )
        text = self.responses.pop(0) if self.responses else self.default
        return CompletionResponse(
            text=text,
            model=model or "mock-model",
            usage=Usage(input_tokens=100, output_tokens=20),
            stop_reason="end_turn",
        )


class ScriptedLLM(MockLLMProvider):
    """Answers extraction prompts and profile prompts separately.

    Extraction calls (no system prompt) pop from ``extractions``; profile
    calls (with a system prompt) get ``profile``.
    """

    def __init__(self, extractions: list[str] | None = None, profile: str = "A person."):
        super().__init__()
        self.extractions = list(extractions or [])
        self.profile = profile

    async def complete(self, messages: list[Message], **kwargs: Any) -> CompletionResponse:
        response = await super().complete(messages, **kwargs)
        if kwargs.get("system"):
            text = self.profile
        else:
            text = self.extractions.pop(0) if self.extractions else "[]"
        response.text = text
        return response

    @property
    def extraction_calls(self) -> list[dict[str, Any]]:
        return [c for c in self.complete_calls if not c["system"]]

    @property
    def profile_calls(self) -> list[dict[str, Any]]:
        return [c for c in self.complete_calls if c["system"]]


@pytest.fixture
def mock_llm() -> MockLLMProvider:
    """Create a mock LLM provider."""
    return MockLLMProvider()


@pytest.fixture
def scripted_llm() -> ScriptedLLM:
    return ScriptedLLM()


@pytest.fixture
async def people_memory(
    scripted_llm: ScriptedLLM, store: SQLRelationshipStore
) -> PeopleMemory:
    return PeopleMemory(llm=scripted_llm, store=store)


# =============================================================================
# Factories
# =============================================================================


def make_record(
    real_name: str | None = None,
    relation_type: str = "unknown",
    aliases: list[str] | None = None,
    *,
    id: str = "",
    owner_user_id: str = "user-1",
    mention_count: int = 1,
    last_mentioned_at: datetime | None = None,
    compact_profile: str | None = None,
    history: int = 1,
) -> RelationshipRecord:
    """Build a record with sensible defaults."""
    at = last_mentioned_at or BASE_TIME
    return RelationshipRecord(
        id=id,
        owner_user_id=owner_user_id,
        real_name=real_name,
        relation_type=relation_type,
        aliases=aliases or [],
        mention_count=mention_count,
        first_mentioned_at=at,
        last_mentioned_at=at,
        mention_history=[
            MentionHistoryEntry(at=at - timedelta(minutes=history - i), excerpt=f"m{i}")
            for i in range(history)
        ],
        compact_profile=compact_profile,
    )


@pytest.fixture
def cli_runner():
    """Create a Typer CLI test runner with colors disabled."""
    from typer.testing import CliRunner

    return CliRunner(env={"NO_COLOR": "1"})
