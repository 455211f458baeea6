"""Source registry with caching and seed support."""

import json
import logging
import time
from pathlib import Path

from src.sources.config import SourcesConfig
from src.sources.repository import SourcesRepository
from src.sources.schemas import Source
from src.storage.database import Database

logger = logging.getLogger(__name__)

_SEED_FILE = Path(__file__).parent / "data" / "seed_sources.json"


def _parse_seed_entry(entry: dict) -> Source:
    """Convert a JSON seed entry to a Source dataclass."""
    return Source(
        source_id=int(entry["source_id"]),
        name=entry["name"],
        short_name=entry["short_name"],
        listing_url=entry["listing_url"],
    )


def load_seed_file(path: Path | None = None) -> list[Source]:
    """Read sources from a JSON seed file (defaults to the bundled one)."""
    seed_path = path or _SEED_FILE
    with open(seed_path, encoding="utf-8") as f:
        entries = json.load(f)
    return [_parse_seed_entry(e) for e in entries]


class SourcesService:
    """Cached, read-mostly access to the sources table.

    The scheduler asks for the full list once per cycle and the notifier
    resolves ids for every new announcement; both are served from a
    TTL cache so a cycle costs at most one sources query.
    """

    def __init__(
        self,
        database: Database,
        config: SourcesConfig | None = None,
    ) -> None:
        self._config = config or SourcesConfig()
        self._repo = SourcesRepository(database)

        self._cache: list[Source] | None = None
        self._cached_at: float = 0.0

    @property
    def repository(self) -> SourcesRepository:
        """Access the underlying repository for direct DB operations."""
        return self._repo

    async def get_sources(self) -> list[Source]:
        """All sources in cycle order (cached)."""
        now = time.monotonic()
        ttl = self._config.cache_ttl_seconds
        if self._cache is not None and (now - self._cached_at) < ttl:
            return self._cache

        sources = await self._repo.list_all()
        self._cache = sources
        self._cached_at = now
        return sources

    async def get_by_id(self, source_id: int) -> Source | None:
        for source in await self.get_sources():
            if source.source_id == source_id:
                return source
        return None

    async def get_by_short_name(self, short_name: str) -> Source | None:
        for source in await self.get_sources():
            if source.short_name == short_name:
                return source
        return None

    def invalidate_cache(self) -> None:
        """Force the next access to hit the database."""
        self._cache = None
        self._cached_at = 0.0

    # ── Seed ────────────────────────────────────────────────────

    async def seed_from_json(self, path: Path | None = None) -> int:
        """Load sources from a JSON file into the database.

        Returns the number of sources upserted.
        """
        sources = load_seed_file(path)
        count = await self._repo.bulk_upsert(sources)
        self.invalidate_cache()
        logger.info("Seeded %d sources from %s", count, path or _SEED_FILE)
        return count

    async def ensure_seeded(self) -> None:
        """Seed from the bundled JSON if the table is empty and seed_on_init is True."""
        if not self._config.seed_on_init:
            return

        existing = await self._repo.count()
        if existing > 0:
            logger.debug("Sources table has %d rows, skipping seed", existing)
            return

        logger.info("Sources table empty, seeding from default JSON")
        await self.seed_from_json()


class StaticSourceRegistry:
    """In-memory registry with the same read interface as SourcesService.

    Used when sources come from a file rather than the database
    (``fetch-once --sources-file``) and in tests.
    """

    def __init__(self, sources: list[Source]) -> None:
        self._sources = list(sources)
        self._by_id = {s.source_id: s for s in self._sources}

    async def get_sources(self) -> list[Source]:
        return list(self._sources)

    async def get_by_id(self, source_id: int) -> Source | None:
        return self._by_id.get(source_id)

    async def get_by_short_name(self, short_name: str) -> Source | None:
        for source in self._sources:
            if source.short_name == short_name:
                return source
        return None


# Read interface shared by the scheduler, notifier and bot
SourceRegistry = SourcesService | StaticSourceRegistry
