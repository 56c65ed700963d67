"""Async SQLAlchemy engine and session handling."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import TYPE_CHECKING

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from kindred.db.models import Base

if TYPE_CHECKING:
    from kindred.config.models import DatabaseConfig

logger = logging.getLogger(__name__)


def sqlite_url(path: Path) -> str:
    """aiosqlite URL for a database file, creating its directory."""
    path.parent.mkdir(parents=True, exist_ok=True)
    return f"sqlite+aiosqlite:///{path}"


class Database:
    """Owns one async engine and hands out transactional sessions.

    ``connect()`` must be called before any session is opened;
    ``disconnect()`` disposes the engine and may be followed by another
    ``connect()``.
    """

    def __init__(
        self, database_url: str | None = None, database_path: Path | None = None
    ):
        if database_url:
            self.url = database_url
        elif database_path:
            self.url = sqlite_url(database_path)
        else:
            raise ValueError("Either database_url or database_path must be provided")

        self._engine: AsyncEngine | None = None
        self._sessions: async_sessionmaker[AsyncSession] | None = None

    @classmethod
    def from_config(cls, config: DatabaseConfig) -> Database:
        return cls(database_url=config.url, database_path=config.path)

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._engine

    async def connect(self) -> None:
        if self._engine is not None:
            return
        self._engine = create_async_engine(self.url, pool_pre_ping=True)
        self._sessions = async_sessionmaker(self._engine, expire_on_commit=False)

    async def disconnect(self) -> None:
        engine, self._engine, self._sessions = self._engine, None, None
        if engine is not None:
            await engine.dispose()

    async def create_tables(self) -> None:
        """Create missing tables; existing ones are left untouched."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info(
            "database_tables_created",
            extra={"tables": sorted(Base.metadata.tables)},
        )

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """A session inside one transaction.

        Commits when the block exits normally and rolls back when it raises.
        """
        if self._sessions is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        async with self._sessions.begin() as session:
            yield session
