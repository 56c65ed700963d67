"""People memory: the entry points used by the conversation layer.

``process_mentions`` runs extraction, kinship correction, resolution and
consolidation for one message, then folds each mention's emotions and
context into its record. ``select_and_render_context`` produces the
block of known people to embed in the next prompt. Neither raises: a
failure here means memory is not updated for this turn, never that the
turn fails.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from kindred.config.models import PeopleConfig
from kindred.people.annotations import RecordAnnotator
from kindred.people.consolidation import BatchWorkingSet, RecordConsolidator
from kindred.people.context import EMPTY_CONTEXT, render_records, select_records
from kindred.people.extractor import MentionExtractor
from kindred.people.helpers import uniq_merge
from kindred.people.kinship import relativize
from kindred.people.profile import ProfileCompactor
from kindred.people.relations import is_conjugal
from kindred.people.types import PersonMention, RelationshipRecord

if TYPE_CHECKING:
    from kindred.config.models import KindredConfig
    from kindred.db.engine import Database
    from kindred.llm import LLMProvider
    from kindred.store.protocols import RelationshipStore

logger = logging.getLogger(__name__)


@dataclass
class _UserLock:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    holders: int = 0


class PeopleMemory:
    """Per-user relationship memory backed by a record store."""

    def __init__(
        self,
        llm: LLMProvider,
        store: RelationshipStore,
        config: PeopleConfig | None = None,
        model: str | None = None,
    ) -> None:
        self._store = store
        self._config = config or PeopleConfig()
        self._extractor = MentionExtractor(
            llm, model=model, max_tokens=self._config.extraction_max_tokens
        )
        self._compactor = ProfileCompactor(
            llm, model=model, max_tokens=self._config.summary_max_tokens
        )
        self._consolidator = RecordConsolidator(store, self._config)
        self._annotator = RecordAnnotator(store, self._config)
        # Serializes consolidation per user within this process; an entry
        # lives only while some call holds or waits for it
        self._user_locks: dict[str, _UserLock] = {}

    @property
    def store(self) -> RelationshipStore:
        return self._store

    @asynccontextmanager
    async def _user_lock(self, user_id: str) -> AsyncIterator[None]:
        entry = self._user_locks.get(user_id)
        if entry is None:
            entry = self._user_locks[user_id] = _UserLock()
        entry.holders += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.holders -= 1
            if entry.holders == 0:
                del self._user_locks[user_id]

    async def _extract(self, text: str) -> list[PersonMention]:
        try:
            return await asyncio.wait_for(
                self._extractor.extract(text),
                timeout=self._config.extraction_timeout,
            )
        except TimeoutError:
            logger.warning(
                "mention_extraction_timeout",
                extra={"timeout_s": self._config.extraction_timeout},
            )
            return []

    async def process_mentions(
        self,
        text: str,
        user_id: str,
        now: datetime | None = None,
        source_excerpt: str | None = None,
    ) -> list[str]:
        """Extract people from ``text`` and fold them into the user's records.

        Returns every real name and alias mentioned in this message,
        de-duplicated, whether or not the store writes succeeded.
        """
        now = now or datetime.now(UTC)
        excerpt = source_excerpt if source_excerpt is not None else text

        try:
            mentions = await self._extract(text)
        except Exception:
            logger.warning("mention_extraction_failed", exc_info=True)
            return []

        names: list[str] = []
        for mention in mentions:
            names = uniq_merge(names, mention.names())
        if not mentions:
            return names

        try:
            async with self._user_lock(user_id):
                await self._consolidate_batch(user_id, text, mentions, now, excerpt)
        except Exception:
            logger.warning(
                "mention_processing_failed",
                extra={"user_id": user_id},
                exc_info=True,
            )
        return names

    async def _consolidate_batch(
        self,
        user_id: str,
        text: str,
        mentions: list[PersonMention],
        now: datetime,
        excerpt: str,
    ) -> list[str]:
        try:
            snapshot = await asyncio.wait_for(
                self._store.query_records(user_id),
                timeout=self._config.store_timeout,
            )
        except Exception:
            logger.warning(
                "records_snapshot_failed",
                extra={"user_id": user_id},
                exc_info=True,
            )
            return []

        spouses = [r for r in snapshot if is_conjugal(r.relation_type)]
        mentions = relativize(text, mentions, spouses)
        working_set = BatchWorkingSet(snapshot)

        touched: list[str] = []
        for mention in mentions:
            record_id = await self._consolidator.consolidate(
                user_id, mention, now, excerpt, working_set
            )
            if record_id is None:
                continue
            await self._annotator.annotate(record_id, mention, working_set)
            if record_id not in touched:
                touched.append(record_id)

        for record_id in touched:
            await self.refresh_profile(record_id, working_set.get(record_id))

        logger.info(
            "mentions_processed",
            extra={
                "user_id": user_id,
                "mentions": len(mentions),
                "records_touched": len(touched),
            },
        )
        return touched

    async def refresh_profile(
        self, record_id: str, record: RelationshipRecord | None = None
    ) -> str | None:
        """Regenerate and store the compact profile of one record.

        Best-effort: returns the new profile, or None when the record could
        not be loaded, summarized or written.
        """
        try:
            if record is None:
                record = await asyncio.wait_for(
                    self._store.get_record(record_id),
                    timeout=self._config.store_timeout,
                )
            if record is None:
                return None

            summary = await asyncio.wait_for(
                self._compactor.compact(record),
                timeout=self._config.summary_timeout,
            )
            if not summary:
                return None

            updated = await asyncio.wait_for(
                self._store.update_record(record_id, {"compact_profile": summary}),
                timeout=self._config.store_timeout,
            )
        except Exception:
            logger.warning(
                "profile_refresh_failed",
                extra={"record_id": record_id},
                exc_info=True,
            )
            return None

        return summary if updated else None

    async def select_context(
        self, user_id: str, names: list[str], limit: int | None = None
    ) -> list[RelationshipRecord]:
        """Records to surface this turn. Store errors propagate."""
        records = await asyncio.wait_for(
            self._store.query_records(user_id),
            timeout=self._config.store_timeout,
        )
        return select_records(
            records,
            names,
            limit=self._config.context_limit if limit is None else limit,
        )

    async def select_and_render_context(
        self, user_id: str, touched_names: list[str]
    ) -> str:
        """Rendered context block, bounded to ``context_max_chars``."""
        try:
            records = await self.select_context(user_id, touched_names)
        except Exception:
            logger.warning(
                "context_selection_failed",
                extra={"user_id": user_id},
                exc_info=True,
            )
            return EMPTY_CONTEXT
        return render_records(records, max_chars=self._config.context_max_chars)


def create_people_memory(config: KindredConfig, db: Database) -> PeopleMemory:
    """Wire the configured LLM and a SQL store into a ``PeopleMemory``.

    Raises:
        ConfigError: If the configured model alias does not exist.
    """
    from kindred.llm.registry import create_llm_provider
    from kindred.store.sql import SQLRelationshipStore

    alias = config.people.model
    model_config = config.get_model(alias)
    llm = create_llm_provider(
        model_config.provider, api_key=config.resolve_api_key(alias)
    )
    return PeopleMemory(
        llm=llm,
        store=SQLRelationshipStore(db),
        config=config.people,
        model=model_config.model,
    )
