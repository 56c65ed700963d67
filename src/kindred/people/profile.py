"""Compact natural-language profiles for relationship records."""

import logging
from typing import TYPE_CHECKING

from kindred.llm.types import Message, Role
from kindred.people.extractor import strip_code_fences
from kindred.people.types import RelationshipRecord

if TYPE_CHECKING:
    from kindred.llm import LLMProvider

logger = logging.getLogger(__name__)

PROFILE_SYSTEM_PROMPT = """Summarize the person below in 1-2 sentences that help personalize replies in a chat.
Be factual and short. No advice. Answer in the language of the relation label."""


def _join(values: list[str]) -> str:
    return ", ".join(values) or "-"


def build_brief(record: RelationshipRecord) -> str:
    """Short factual brief fed to the summarizer."""
    return "\n".join(
        [
            f"Name: {record.real_name or '(not given)'}",
            f"Relation: {record.relation_type or '-'}",
            f"Aliases: {_join(record.aliases)}",
            f"Key emotions: {_join(record.emotion_markers)}",
            f"Contexts: {_join(record.relevant_contexts)}",
        ]
    )


class ProfileCompactor:
    """Regenerates ``compact_profile`` for a record."""

    def __init__(
        self,
        llm: "LLMProvider",
        model: str | None = None,
        max_tokens: int = 90,
        temperature: float = 0.2,
    ):
        self._llm = llm
        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature

    async def compact(self, record: RelationshipRecord) -> str | None:
        """One or two sentences describing the person, or None on failure."""
        try:
            response = await self._llm.complete(
                messages=[Message(role=Role.USER, content=build_brief(record))],
                model=self._model,
                system=PROFILE_SYSTEM_PROMPT,
                max_tokens=self._max_tokens,
                temperature=self._temperature,
            )
        except Exception:
            logger.warning(
                "profile_compaction_failed",
                extra={"record_id": record.id},
                exc_info=True,
            )
            return None

        summary = strip_code_fences(response.text or "")
        if not summary:
            logger.debug("profile_compaction_empty", extra={"record_id": record.id})
            return None
        return summary
