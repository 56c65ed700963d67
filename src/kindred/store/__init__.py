"""Relationship record storage."""

from kindred.store.protocols import RelationshipStore, StoreError
from kindred.store.mappers import fields_to_values, record_to_row, row_to_record
from kindred.store.sql import SQLRelationshipStore

__all__ = [
    "RelationshipStore",
    "SQLRelationshipStore",
    "StoreError",
    "fields_to_values",
    "record_to_row",
    "row_to_record",
]
