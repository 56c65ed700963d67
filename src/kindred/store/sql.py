"""Relationship record store backed by SQLAlchemy async sessions."""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError

from kindred.db.models import RelationshipRow, utc_now
from kindred.store.mappers import fields_to_values, record_to_row, row_to_record
from kindred.store.protocols import StoreError

if TYPE_CHECKING:
    from kindred.db.engine import Database
    from kindred.people.types import RelationshipRecord

logger = logging.getLogger(__name__)


class SQLRelationshipStore:
    """Stores one row per person per user in ``relationship_records``."""

    def __init__(self, db: Database) -> None:
        self._db = db

    async def query_records(self, user_id: str) -> list[RelationshipRecord]:
        try:
            async with self._db.session() as session:
                result = await session.execute(
                    select(RelationshipRow)
                    .where(RelationshipRow.owner_user_id == user_id)
                    .order_by(RelationshipRow.seq, RelationshipRow.created_at)
                )
                return [row_to_record(row) for row in result.scalars().all()]
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to query records for {user_id}") from e

    async def get_record(self, record_id: str) -> RelationshipRecord | None:
        try:
            async with self._db.session() as session:
                row = await session.get(RelationshipRow, record_id)
                return row_to_record(row) if row else None
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to load record {record_id}") from e

    async def insert_record(self, record: RelationshipRecord) -> str:
        record_id = record.id or str(uuid.uuid4())
        try:
            async with self._db.session() as session:
                last_seq = await session.scalar(
                    select(func.coalesce(func.max(RelationshipRow.seq), 0)).where(
                        RelationshipRow.owner_user_id == record.owner_user_id
                    )
                )
                session.add(record_to_row(record, record_id, seq=last_seq + 1))
        except SQLAlchemyError as e:
            raise StoreError("Failed to insert record") from e

        logger.debug(
            "record_inserted",
            extra={"record_id": record_id, "user_id": record.owner_user_id},
        )
        return record_id

    async def update_record(self, record_id: str, fields: dict[str, Any]) -> bool:
        values = fields_to_values(fields)
        if not values:
            return await self.get_record(record_id) is not None
        values["updated_at"] = utc_now()

        try:
            async with self._db.session() as session:
                result = await session.execute(
                    update(RelationshipRow)
                    .where(RelationshipRow.id == record_id)
                    .values(**values)
                )
                updated = result.rowcount > 0
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to update record {record_id}") from e

        if not updated:
            logger.debug("record_update_missing", extra={"record_id": record_id})
        return updated
