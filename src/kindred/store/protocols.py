"""Protocol definitions for the store subsystem.

Defines the record store interface so that consolidation can run against
the SQL backend or an in-memory fake in tests.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from kindred.people.types import RelationshipRecord


class StoreError(Exception):
    """A relationship store read or write failed."""


@runtime_checkable
class RelationshipStore(Protocol):
    """Protocol for relationship record storage."""

    async def query_records(self, user_id: str) -> list[RelationshipRecord]:
        """All records owned by a user, in insertion order."""
        ...

    async def insert_record(self, record: RelationshipRecord) -> str:
        """Insert a record and return its id."""
        ...

    async def update_record(self, record_id: str, fields: dict[str, Any]) -> bool:
        """Update some fields of a record. False when the record is missing."""
        ...

    async def get_record(self, record_id: str) -> RelationshipRecord | None:
        """Get a record by ID."""
        ...
