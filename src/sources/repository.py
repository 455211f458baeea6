"""Database repository for the sources table."""

import logging

from src.sources.schemas import Source
from src.storage.database import Database

logger = logging.getLogger(__name__)

_CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS sources (
    source_id   INTEGER PRIMARY KEY,
    name        TEXT NOT NULL,
    short_name  TEXT NOT NULL UNIQUE,
    listing_url TEXT NOT NULL,
    created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
"""

_UPSERT_SQL = """
INSERT INTO sources (source_id, name, short_name, listing_url)
VALUES ($1, $2, $3, $4)
ON CONFLICT (source_id) DO UPDATE SET
    name = EXCLUDED.name,
    short_name = EXCLUDED.short_name,
    listing_url = EXCLUDED.listing_url,
    updated_at = NOW()
"""

_BULK_UPSERT_SQL = """
INSERT INTO sources (source_id, name, short_name, listing_url)
SELECT * FROM unnest($1::integer[], $2::text[], $3::text[], $4::text[])
ON CONFLICT (source_id) DO UPDATE SET
    name = EXCLUDED.name,
    short_name = EXCLUDED.short_name,
    listing_url = EXCLUDED.listing_url,
    updated_at = NOW()
"""

_SELECT_COLUMNS = "source_id, name, short_name, listing_url"


def _record_to_source(record) -> Source:
    """Convert an asyncpg Record to a Source dataclass."""
    return Source(
        source_id=record["source_id"],
        name=record["name"],
        short_name=record["short_name"],
        listing_url=record["listing_url"],
    )


class SourcesRepository:
    """CRUD operations for the sources table."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_table(self) -> None:
        """Create the sources table (idempotent)."""
        await self._db.execute(_CREATE_TABLE_SQL)
        logger.info("Sources table ensured")

    async def upsert(self, source: Source) -> None:
        """Insert or update a single source."""
        await self._db.execute(
            _UPSERT_SQL,
            source.source_id,
            source.name,
            source.short_name,
            source.listing_url,
        )

    async def bulk_upsert(self, sources: list[Source]) -> int:
        """Insert or update multiple sources in one statement.

        Returns the number of sources processed.
        """
        if not sources:
            return 0

        await self._db.execute(
            _BULK_UPSERT_SQL,
            [s.source_id for s in sources],
            [s.name for s in sources],
            [s.short_name for s in sources],
            [s.listing_url for s in sources],
        )
        logger.info("Bulk upserted %d sources", len(sources))
        return len(sources)

    async def get_by_id(self, source_id: int) -> Source | None:
        row = await self._db.fetchrow(
            f"SELECT {_SELECT_COLUMNS} FROM sources WHERE source_id = $1",
            source_id,
        )
        return _record_to_source(row) if row else None

    async def get_by_short_name(self, short_name: str) -> Source | None:
        row = await self._db.fetchrow(
            f"SELECT {_SELECT_COLUMNS} FROM sources WHERE short_name = $1",
            short_name,
        )
        return _record_to_source(row) if row else None

    async def list_all(self) -> list[Source]:
        """All sources ordered by id (the order cycles walk them in)."""
        rows = await self._db.fetch(
            f"SELECT {_SELECT_COLUMNS} FROM sources ORDER BY source_id"
        )
        return [_record_to_source(r) for r in rows]

    async def count(self) -> int:
        """Count total sources in the table."""
        return await self._db.fetchval("SELECT COUNT(*) FROM sources") or 0
