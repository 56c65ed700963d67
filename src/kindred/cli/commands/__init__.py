"""CLI command modules."""

from kindred.cli.commands import database, people

__all__ = [
    "database",
    "people",
]
