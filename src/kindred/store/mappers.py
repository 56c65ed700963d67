"""Row mappers for converting between ORM rows and domain types."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from kindred.db.models import RelationshipRow
from kindred.people.types import MentionHistoryEntry, RelationshipRecord

# Fields the consolidation pipeline may write through update_record
UPDATABLE_FIELDS = frozenset(
    {
        "real_name",
        "relation_type",
        "aliases",
        "emotion_markers",
        "relevant_contexts",
        "mention_count",
        "first_mentioned_at",
        "last_mentioned_at",
        "mention_history",
        "compact_profile",
    }
)


def _as_utc(value: datetime | None) -> datetime | None:
    """SQLite drops tzinfo; stored values are always UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _history_to_json(
    history: list[MentionHistoryEntry] | list[dict[str, Any]],
) -> list[dict[str, Any]]:
    return [
        MentionHistoryEntry.model_validate(entry).model_dump(mode="json")
        for entry in history
    ]


def row_to_record(row: RelationshipRow) -> RelationshipRecord:
    return RelationshipRecord(
        id=row.id,
        owner_user_id=row.owner_user_id,
        real_name=row.real_name,
        relation_type=row.relation_type or "unknown",
        aliases=row.aliases or [],
        emotion_markers=row.emotion_markers or [],
        relevant_contexts=row.relevant_contexts or [],
        mention_count=max(row.mention_count or 1, 1),
        first_mentioned_at=_as_utc(row.first_mentioned_at),
        last_mentioned_at=_as_utc(row.last_mentioned_at),
        mention_history=row.mention_history or [],
        compact_profile=row.compact_profile,
    )


def record_to_row(
    record: RelationshipRecord, record_id: str, seq: int = 0
) -> RelationshipRow:
    return RelationshipRow(
        id=record_id,
        owner_user_id=record.owner_user_id,
        seq=seq,
        real_name=record.real_name,
        relation_type=record.relation_type,
        aliases=list(record.aliases),
        emotion_markers=list(record.emotion_markers),
        relevant_contexts=list(record.relevant_contexts),
        mention_count=record.mention_count,
        first_mentioned_at=record.first_mentioned_at,
        last_mentioned_at=record.last_mentioned_at,
        mention_history=_history_to_json(record.mention_history),
        compact_profile=record.compact_profile,
    )


def fields_to_values(fields: dict[str, Any]) -> dict[str, Any]:
    """Convert partial record fields to column values.

    Raises:
        ValueError: If a field is not updatable.
    """
    unknown = set(fields) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")

    values = dict(fields)
    if "mention_history" in values:
        values["mention_history"] = _history_to_json(values["mention_history"])
    for key in ("aliases", "emotion_markers", "relevant_contexts"):
        if key in values:
            values[key] = list(values[key] or [])
    return values
