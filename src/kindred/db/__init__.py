"""Database layer."""

from kindred.db.engine import Database
from kindred.db.models import Base, RelationshipRow, utc_now

__all__ = [
    # Engine
    "Database",
    # Models
    "Base",
    "RelationshipRow",
    "utc_now",
]
