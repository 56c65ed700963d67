"""Merge or insert relationship records for resolved mentions."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from datetime import datetime
from typing import TYPE_CHECKING, Any

from kindred.config.models import PeopleConfig
from kindred.people.helpers import truncate_excerpt, uniq_merge
from kindred.people.relations import is_known
from kindred.people.resolution import resolve
from kindred.people.types import MentionHistoryEntry, PersonMention, RelationshipRecord

if TYPE_CHECKING:
    from kindred.store.protocols import RelationshipStore

logger = logging.getLogger(__name__)


class BatchWorkingSet:
    """A user's records as seen while processing one message.

    Starts from a snapshot of the store and picks up every insert and
    update made during the same message, so a second mention of a person
    created moments ago merges instead of creating a duplicate.
    """

    def __init__(self, records: Iterable[RelationshipRecord] = ()) -> None:
        self._records: list[RelationshipRecord] = list(records)

    @property
    def records(self) -> list[RelationshipRecord]:
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def get(self, record_id: str) -> RelationshipRecord | None:
        return next((r for r in self._records if r.id == record_id), None)

    def add(self, record: RelationshipRecord) -> None:
        self._records.append(record)

    def replace(self, record: RelationshipRecord) -> None:
        for i, existing in enumerate(self._records):
            if existing.id == record.id:
                self._records[i] = record
                return
        self._records.append(record)


def prefer_name(existing: str | None, new: str | None) -> str | None:
    """Keep the existing name unless the new one is more complete."""
    existing = (existing or "").strip()
    new = (new or "").strip()
    if not existing:
        return new or None
    if len(new) > len(existing):
        return new
    return existing


def merge_fields(
    record: RelationshipRecord,
    mention: PersonMention,
    now: datetime,
    excerpt: str,
    history_limit: int = 12,
) -> dict[str, Any]:
    """Fields to write when ``mention`` is merged into ``record``.

    Emotion markers and relevant contexts are left to other writers.
    """
    history = [
        *record.mention_history,
        MentionHistoryEntry(at=now, excerpt=excerpt),
    ][-history_limit:]

    return {
        "real_name": prefer_name(record.real_name, mention.real_name),
        "relation_type": (
            mention.relation_type
            if is_known(mention.relation_type)
            else record.relation_type
        ),
        "aliases": uniq_merge(record.aliases, mention.aliases),
        "mention_count": record.mention_count + 1,
        "last_mentioned_at": now,
        "mention_history": history,
    }


def new_record(
    user_id: str, mention: PersonMention, now: datetime, excerpt: str
) -> RelationshipRecord:
    return RelationshipRecord(
        owner_user_id=user_id,
        real_name=mention.real_name or None,
        relation_type=mention.relation_type or "unknown",
        aliases=list(mention.aliases),
        mention_count=1,
        first_mentioned_at=now,
        last_mentioned_at=now,
        mention_history=[MentionHistoryEntry(at=now, excerpt=excerpt)],
    )


class RecordConsolidator:
    """Applies one mention to the store and the batch working set."""

    def __init__(
        self, store: RelationshipStore, config: PeopleConfig | None = None
    ) -> None:
        self._store = store
        self._config = config or PeopleConfig()

    async def consolidate(
        self,
        user_id: str,
        mention: PersonMention,
        now: datetime,
        source_excerpt: str | None,
        working_set: BatchWorkingSet,
    ) -> str | None:
        """Merge ``mention`` into its matching record, or insert a new one.

        Returns the record id, or None when the store write failed. The
        working set only changes after the store accepted the write.
        """
        excerpt = truncate_excerpt(source_excerpt, self._config.excerpt_max_chars)
        match = resolve(mention, working_set.records, self._config.resolution)

        if match is None:
            return await self._insert(user_id, mention, now, excerpt, working_set)
        return await self._merge(match, mention, now, excerpt, working_set)

    async def _insert(
        self,
        user_id: str,
        mention: PersonMention,
        now: datetime,
        excerpt: str,
        working_set: BatchWorkingSet,
    ) -> str | None:
        record = new_record(user_id, mention, now, excerpt)
        try:
            record_id = await asyncio.wait_for(
                self._store.insert_record(record),
                timeout=self._config.store_timeout,
            )
        except Exception:
            logger.warning(
                "record_insert_failed",
                extra={"user_id": user_id, "person_name": mention.real_name},
                exc_info=True,
            )
            return None

        record.id = record_id
        working_set.add(record)
        logger.info(
            "record_created",
            extra={
                "record_id": record_id,
                "user_id": user_id,
                "relation": record.relation_type,
            },
        )
        return record_id

    async def _merge(
        self,
        record: RelationshipRecord,
        mention: PersonMention,
        now: datetime,
        excerpt: str,
        working_set: BatchWorkingSet,
    ) -> str | None:
        fields = merge_fields(
            record, mention, now, excerpt, self._config.history_limit
        )
        try:
            updated = await asyncio.wait_for(
                self._store.update_record(record.id, fields),
                timeout=self._config.store_timeout,
            )
        except Exception:
            logger.warning(
                "record_update_failed",
                extra={"record_id": record.id},
                exc_info=True,
            )
            return None

        if not updated:
            logger.warning("record_update_rejected", extra={"record_id": record.id})
            return None

        working_set.replace(record.model_copy(update=fields))
        logger.info(
            "record_merged",
            extra={
                "record_id": record.id,
                "mention_count": fields["mention_count"],
            },
        )
        return record.id
