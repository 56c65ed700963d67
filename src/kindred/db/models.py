"""SQLAlchemy ORM models."""

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base class for all models."""

    type_annotation_map = {
        dict[str, Any]: JSON,
    }


class RelationshipRow(Base):
    """One person as known to one user.

    List-valued fields are JSON arrays. ``mention_history`` holds
    ``{"at": iso-timestamp, "excerpt": str}`` objects, oldest first.
    """

    __tablename__ = "relationship_records"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    owner_user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    # Insertion order within one user's records
    seq: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    real_name: Mapped[str | None] = mapped_column(String, nullable=True)
    relation_type: Mapped[str] = mapped_column(
        String, nullable=False, default="unknown"
    )
    aliases: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    emotion_markers: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    relevant_contexts: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    mention_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    first_mentioned_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_mentioned_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True
    )
    mention_history: Mapped[list[dict[str, Any]] | None] = mapped_column(
        JSON, nullable=True
    )
    compact_profile: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )
