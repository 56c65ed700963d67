"""Emotion and context annotations on relationship records.

Consolidation leaves ``emotion_markers`` and ``relevant_contexts`` alone;
they are folded in here, as a second write, once the mention has a record.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from kindred.config.models import PeopleConfig
from kindred.people.helpers import normalize, uniq_merge
from kindred.people.types import PersonMention, RelationshipRecord

if TYPE_CHECKING:
    from kindred.people.consolidation import BatchWorkingSet
    from kindred.store.protocols import RelationshipStore

logger = logging.getLogger(__name__)


def annotation_fields(
    record: RelationshipRecord, mention: PersonMention, contexts_limit: int = 3
) -> dict[str, Any] | None:
    """Fields to write so ``record`` carries the mention's annotations.

    Emotions are a union, oldest first. Contexts are a union with the new
    one last, trimmed to the ``contexts_limit`` most recent. None when
    nothing would change.
    """
    fields: dict[str, Any] = {}

    emotions = uniq_merge(record.emotion_markers, mention.emotion_markers)
    if len(emotions) > len(record.emotion_markers):
        fields["emotion_markers"] = emotions

    if mention.context:
        known = {normalize(c) for c in record.relevant_contexts}
        if normalize(mention.context) not in known:
            contexts = [*record.relevant_contexts, mention.context]
            fields["relevant_contexts"] = contexts[-contexts_limit:]

    return fields or None


class RecordAnnotator:
    def __init__(
        self, store: RelationshipStore, config: PeopleConfig | None = None
    ) -> None:
        self._store = store
        self._config = config or PeopleConfig()

    async def annotate(
        self,
        record_id: str,
        mention: PersonMention,
        working_set: BatchWorkingSet,
    ) -> bool:
        """Write the mention's annotations to the record.

        Returns True when the store accepted a change. Failures are logged
        and leave the working set as it was.
        """
        record = working_set.get(record_id)
        if record is None:
            return False
        fields = annotation_fields(record, mention, self._config.contexts_limit)
        if fields is None:
            return False

        try:
            updated = await asyncio.wait_for(
                self._store.update_record(record_id, fields),
                timeout=self._config.store_timeout,
            )
        except Exception:
            logger.warning(
                "record_annotation_failed",
                extra={"record_id": record_id},
                exc_info=True,
            )
            return False

        if not updated:
            logger.warning("record_annotation_rejected", extra={"record_id": record_id})
            return False

        working_set.replace(record.model_copy(update=fields))
        logger.debug(
            "record_annotated",
            extra={"record_id": record_id, "fields": sorted(fields)},
        )
        return True
