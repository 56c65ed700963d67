"""Configuration models using Pydantic."""

import logging
import os
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, SecretStr, model_validator

from kindred.config.paths import get_database_path

logger = logging.getLogger(__name__)


class ModelConfig(BaseModel):
    """Configuration for a named model.

    Temperature is optional - if None, each caller uses its own default.
    """

    provider: Literal["anthropic", "openai"]
    model: str
    temperature: float | None = None
    max_tokens: int = 1024


class ProviderConfig(BaseModel):
    """Provider-level configuration."""

    api_key: SecretStr | None = None


class DatabaseConfig(BaseModel):
    """Configuration for the relationship record database.

    ``url`` takes precedence over ``path`` and may name any SQLAlchemy async
    driver (e.g. ``postgresql+asyncpg://...``).
    """

    path: Path = Field(default_factory=get_database_path)
    url: str | None = None


class ResolutionConfig(BaseModel):
    """Scoring policy for matching a mention against known records.

    The weights are policy, not invariants: changing them changes which
    mentions merge, so every change needs re-checking against the merge,
    conflict and fuzzy-name scenarios in the test-suite.
    """

    exact_name_weight: int = 6
    full_alias_weight: int = 5
    single_alias_weight: int = 2
    fuzzy_name_weight: int = 5
    fuzzy_name_threshold: float = Field(default=0.66, ge=0.0, le=1.0)
    match_threshold: int = 5
    # A nameless "my wife" resolves to the one known spouse
    exclusive_spouse: bool = True


class PeopleConfig(BaseModel):
    """Configuration for relationship extraction and consolidation."""

    model: str = "default"
    history_limit: int = Field(default=12, ge=1)
    excerpt_max_chars: int = Field(default=240, ge=1)
    context_limit: int = Field(default=3, ge=0)
    context_max_chars: int = Field(default=700, ge=1)
    # Most recent relevant contexts kept on a record
    contexts_limit: int = Field(default=3, ge=1)
    extraction_max_tokens: int = 300
    summary_max_tokens: int = 90
    extraction_timeout: float = 20.0
    summary_timeout: float = 15.0
    store_timeout: float = 10.0
    resolution: ResolutionConfig = Field(default_factory=ResolutionConfig)


class ConfigError(Exception):
    """Configuration error."""

    pass


class KindredConfig(BaseModel):
    """Root configuration model."""

    models: dict[str, ModelConfig] = Field(default_factory=dict)
    anthropic: ProviderConfig | None = None
    openai: ProviderConfig | None = None
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    people: PeopleConfig = Field(default_factory=PeopleConfig)

    @model_validator(mode="after")
    def _validate_default_model(self) -> "KindredConfig":
        """Validate that a default model is configured."""
        if "default" not in self.models:
            raise ValueError("No default model configured. Add [models.default]")
        return self

    def get_model(self, alias: str) -> ModelConfig:
        """Get model config by alias.

        Raises:
            ConfigError: If the alias is not found.
        """
        if alias not in self.models:
            available = ", ".join(sorted(self.models.keys()))
            raise ConfigError(
                f"Unknown model alias '{alias}'. Available: {available}"
            )
        return self.models[alias]

    def list_models(self) -> list[str]:
        return sorted(self.models.keys())

    @property
    def default_model(self) -> ModelConfig:
        return self.get_model("default")

    def resolve_api_key(self, alias: str) -> SecretStr | None:
        """Resolve API key for a model alias.

        Resolution order:
        1. Provider-level config api_key
        2. Environment variable (ANTHROPIC_API_KEY or OPENAI_API_KEY)
        """
        provider = self.get_model(alias).provider

        if provider == "anthropic" and self.anthropic and self.anthropic.api_key:
            return self.anthropic.api_key
        if provider == "openai" and self.openai and self.openai.api_key:
            return self.openai.api_key

        env_var = "ANTHROPIC_API_KEY" if provider == "anthropic" else "OPENAI_API_KEY"
        env_value = os.environ.get(env_var)
        if env_value:
            return SecretStr(env_value)

        logger.debug("api_key_missing", extra={"model.alias": alias})
        return None
