"""Types for people mentions and relationship records."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from kindred.people.helpers import uniq_merge


@dataclass
class PersonMention:
    """A reference to a person extracted from a single message.

    Not linked to any stored record yet. ``aliases`` keeps the wording of
    the message and is de-duplicated case/diacritic-insensitively on
    construction, as are ``emotion_markers``. ``context`` is a short phrase
    on how the person came up.
    """

    real_name: str | None = None
    aliases: list[str] = field(default_factory=list)
    relation_type: str = "unknown"
    note: str | None = None
    emotion_markers: list[str] = field(default_factory=list)
    context: str | None = None

    def __post_init__(self) -> None:
        self.real_name = (self.real_name or "").strip() or None
        self.aliases = uniq_merge(self.aliases)
        self.emotion_markers = uniq_merge(self.emotion_markers)
        self.context = (self.context or "").strip() or None
        self.relation_type = (self.relation_type or "").strip() or "unknown"

    def names(self) -> list[str]:
        """Real name followed by aliases."""
        return uniq_merge([self.real_name], self.aliases)

    def is_empty(self) -> bool:
        return not self.real_name and not self.aliases


class MentionHistoryEntry(BaseModel):
    """One dated excerpt of a message that mentioned a person."""

    at: datetime
    excerpt: str = ""


class RelationshipRecord(BaseModel):
    """Durable record of one person as known to one user."""

    model_config = ConfigDict(frozen=False)

    id: str = ""
    owner_user_id: str
    real_name: str | None = None
    relation_type: str = "unknown"
    aliases: list[str] = []
    emotion_markers: list[str] = []
    relevant_contexts: list[str] = []
    mention_count: int = Field(default=1, ge=1)
    first_mentioned_at: datetime | None = None
    last_mentioned_at: datetime | None = None
    mention_history: list[MentionHistoryEntry] = []
    compact_profile: str | None = None

    @field_validator("aliases", "emotion_markers", "relevant_contexts", mode="before")
    @classmethod
    def _dedupe(cls, v: list | None) -> list:
        return uniq_merge(v or [])

    def display_name(self) -> str | None:
        """Real name, else the first alias."""
        if self.real_name:
            return self.real_name
        return self.aliases[0] if self.aliases else None

    def names(self) -> list[str]:
        return uniq_merge([self.real_name], self.aliases)


@dataclass
class CandidateScore:
    """Outcome of scoring one record against a mention."""

    record: RelationshipRecord
    score: int = 0
    strong: bool = False
    skipped: bool = False
    reasons: list[str] = field(default_factory=list)
