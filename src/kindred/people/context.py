"""Pick and render relationship records for conversation context."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from kindred.people.helpers import EPOCH, normalize
from kindred.people.types import RelationshipRecord

EMPTY_CONTEXT = "(none)"


def _is_mentioned(record: RelationshipRecord, mentioned: set[str]) -> bool:
    return any(normalize(name) in mentioned for name in record.names())


def select_records(
    records: Sequence[RelationshipRecord],
    mentioned_names: Iterable[str],
    limit: int = 3,
) -> list[RelationshipRecord]:
    """Records mentioned this turn first, then the most frequent and recent.

    Mentioned records keep store order. The rest are ordered by
    ``mention_count`` then ``last_mentioned_at``, both descending.
    """
    mentioned = {key for key in (normalize(n) for n in mentioned_names) if key}

    current: list[RelationshipRecord] = []
    others: list[RelationshipRecord] = []
    for record in records:
        if mentioned and _is_mentioned(record, mentioned):
            current.append(record)
        else:
            others.append(record)

    others.sort(
        key=lambda r: (r.mention_count, r.last_mentioned_at or EPOCH),
        reverse=True,
    )
    return [*current, *others][: max(limit, 0)]


def render_record(record: RelationshipRecord) -> str:
    line = f"- {record.real_name or '(unnamed)'} [{record.relation_type or '-'}]"
    if record.aliases:
        line += f" | aliases: {', '.join(record.aliases)}"
    if record.compact_profile:
        line += f"\n  Profile: {record.compact_profile}"
    return line


def render_records(
    records: Sequence[RelationshipRecord], max_chars: int | None = None
) -> str:
    """Render records one per line, ready to paste into a prompt."""
    if not records:
        return EMPTY_CONTEXT
    text = "\n".join(render_record(r) for r in records)
    if max_chars is not None:
        text = text[:max_chars]
    return text
