"""
PostgreSQL connection management.

Thin wrapper over an asyncpg pool. Repositories receive a ``Database``
and only use ``execute``/``fetch``/``fetchrow``/``fetchval`` and
``transaction``, which keeps them easy to test against an ``AsyncMock``.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from types import TracebackType
from typing import Any

import asyncpg

from src.config.settings import get_settings

logger = logging.getLogger(__name__)


class DatabaseUnavailableError(RuntimeError):
    """Raised when the pool cannot be created at startup."""


class Database:
    """
    Async PostgreSQL connection manager.

    Usage:
        async with Database() as db:
            async with db.transaction() as conn:
                await conn.execute("INSERT INTO ...")
    """

    def __init__(
        self,
        database_url: str | None = None,
        min_size: int | None = None,
        max_size: int | None = None,
        command_timeout: float = 30.0,
    ):
        settings = get_settings()

        self._database_url = database_url or str(settings.database_url)
        self._min_size = min_size or settings.db_pool_min_size
        self._max_size = max_size or settings.db_pool_max_size
        self._command_timeout = command_timeout

        self._pool: asyncpg.Pool | None = None

    async def connect(self) -> None:
        """
        Create the connection pool.

        Raises:
            DatabaseUnavailableError: If the server cannot be reached
        """
        try:
            self._pool = await asyncpg.create_pool(
                self._database_url,
                min_size=self._min_size,
                max_size=self._max_size,
                command_timeout=self._command_timeout,
            )
        except (OSError, asyncpg.PostgresError) as e:
            logger.error("Failed to connect to database: %s", e)
            raise DatabaseUnavailableError(str(e)) from e

        logger.info(
            "Database connected (pool: %d-%d)", self._min_size, self._max_size
        )

    async def close(self) -> None:
        """Close the connection pool."""
        if self._pool:
            await self._pool.close()
            self._pool = None
            logger.info("Database connection closed")

    async def __aenter__(self) -> "Database":
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    @property
    def pool(self) -> asyncpg.Pool:
        """Get connection pool, raising if not connected."""
        if self._pool is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._pool

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[asyncpg.Connection]:
        async with self.pool.acquire() as conn:
            yield conn

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[asyncpg.Connection]:
        """Acquire a connection and run the block inside one transaction."""
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                yield conn

    async def execute(self, query: str, *args: Any) -> str:
        """Execute a statement and return PostgreSQL's status string (e.g. ``INSERT 0 1``)."""
        async with self.acquire() as conn:
            return await conn.execute(query, *args)

    async def fetch(self, query: str, *args: Any) -> list[asyncpg.Record]:
        async with self.acquire() as conn:
            return await conn.fetch(query, *args)

    async def fetchrow(self, query: str, *args: Any) -> asyncpg.Record | None:
        async with self.acquire() as conn:
            return await conn.fetchrow(query, *args)

    async def fetchval(self, query: str, *args: Any) -> Any:
        async with self.acquire() as conn:
            return await conn.fetchval(query, *args)

    async def health_check(self) -> bool:
        """Return True if ``SELECT 1`` succeeds."""
        try:
            result = await self.fetchval("SELECT 1")
            return result == 1
        except Exception:
            return False


def affected_rows(status: str | None) -> int:
    """
    Parse the row count from an asyncpg command status.

    ``"INSERT 0 1"`` -> 1, ``"DELETE 0"`` -> 0, ``"UPDATE 3"`` -> 3.
    """
    if not status:
        return 0
    try:
        return int(status.rsplit(" ", 1)[-1])
    except ValueError:
        return 0
