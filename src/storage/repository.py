"""
Announcement store: de-duplication, persistence and subscriptions.

The ``link`` unique constraint on ``announcements`` and the composite
primary key on ``subscriptions`` are the only duplicate-suppression
mechanism. Inserts use ``ON CONFLICT DO NOTHING`` and report whether a
row was created, so a duplicate is a ``False`` and never an exception.
"""

import logging

from src.storage.database import Database, affected_rows
from src.storage.schemas import Announcement, Subscriber, Subscription

logger = logging.getLogger(__name__)

# Sources are created by SourcesRepository; subscriptions reference them.
_CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS subscribers (
    chat_id      BIGINT PRIMARY KEY,
    display_name TEXT NOT NULL DEFAULT '',
    handle       TEXT,
    created_at   TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS subscriptions (
    chat_id    BIGINT NOT NULL REFERENCES subscribers(chat_id) ON DELETE CASCADE,
    source_id  INTEGER NOT NULL REFERENCES sources(source_id) ON DELETE CASCADE,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    PRIMARY KEY (chat_id, source_id)
);

CREATE INDEX IF NOT EXISTS idx_subscriptions_source
    ON subscriptions(source_id);

CREATE TABLE IF NOT EXISTS announcements (
    announcement_id BIGSERIAL PRIMARY KEY,
    source_id       INTEGER NOT NULL,
    link            TEXT NOT NULL UNIQUE,
    title           TEXT NOT NULL,
    published_date  DATE NOT NULL,
    created_at      TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_announcements_source
    ON announcements(source_id);
"""

_INSERT_ANNOUNCEMENT_SQL = """
INSERT INTO announcements (source_id, link, title, published_date)
VALUES ($1, $2, $3, $4)
ON CONFLICT (link) DO NOTHING
"""

_UPSERT_SUBSCRIBER_SQL = """
INSERT INTO subscribers (chat_id, display_name, handle)
VALUES ($1, $2, $3)
ON CONFLICT (chat_id) DO UPDATE SET
    display_name = EXCLUDED.display_name,
    handle = EXCLUDED.handle
"""

_INSERT_SUBSCRIPTION_SQL = """
INSERT INTO subscriptions (chat_id, source_id)
VALUES ($1, $2)
ON CONFLICT (chat_id, source_id) DO NOTHING
"""


def _record_to_announcement(record) -> Announcement:
    return Announcement(
        announcement_id=record["announcement_id"],
        source_id=record["source_id"],
        link=record["link"],
        title=record["title"],
        published_date=record["published_date"],
    )


class AnnouncementStore:
    """Persistence boundary used by the scheduler, notifier and bot."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_tables(self) -> None:
        """Create subscriber, subscription and announcement tables (idempotent)."""
        await self._db.execute(_CREATE_TABLES_SQL)
        logger.info("Announcement store tables ensured")

    # ── Announcements ───────────────────────────────────────────

    async def exists(self, link: str) -> bool:
        """Return True if an announcement with this link is already stored."""
        found = await self._db.fetchval(
            "SELECT EXISTS(SELECT 1 FROM announcements WHERE link = $1)",
            link,
        )
        return bool(found)

    async def insert(self, announcement: Announcement) -> bool:
        """
        Insert an announcement unless its link is already stored.

        Returns:
            True if a new row was created, False if the link existed
        """
        status = await self._db.execute(
            _INSERT_ANNOUNCEMENT_SQL,
            announcement.source_id,
            announcement.link,
            announcement.title,
            announcement.published_date,
        )
        created = affected_rows(status) > 0
        if not created:
            logger.debug("Announcement already stored: %s", announcement.link)
        return created

    async def get_announcement(self, link: str) -> Announcement | None:
        row = await self._db.fetchrow(
            "SELECT * FROM announcements WHERE link = $1", link
        )
        return _record_to_announcement(row) if row else None

    async def count_announcements(self, source_id: int | None = None) -> int:
        if source_id is None:
            count = await self._db.fetchval("SELECT COUNT(*) FROM announcements")
        else:
            count = await self._db.fetchval(
                "SELECT COUNT(*) FROM announcements WHERE source_id = $1",
                source_id,
            )
        return count or 0

    # ── Subscriptions ───────────────────────────────────────────

    async def subscribers_of(self, source_id: int) -> set[int]:
        """Chat ids subscribed to a source."""
        rows = await self._db.fetch(
            "SELECT chat_id FROM subscriptions WHERE source_id = $1",
            source_id,
        )
        return {r["chat_id"] for r in rows}

    async def get_subscriber(self, chat_id: int) -> Subscriber | None:
        row = await self._db.fetchrow(
            "SELECT chat_id, display_name, handle FROM subscribers WHERE chat_id = $1",
            chat_id,
        )
        if row is None:
            return None
        return Subscriber(
            chat_id=row["chat_id"],
            display_name=row["display_name"],
            handle=row["handle"],
        )

    async def list_subscriptions(self, source_id: int | None = None) -> list[Subscription]:
        """All subscriptions, optionally restricted to one source."""
        if source_id is None:
            rows = await self._db.fetch(
                "SELECT chat_id, source_id FROM subscriptions ORDER BY source_id, chat_id"
            )
        else:
            rows = await self._db.fetch(
                "SELECT chat_id, source_id FROM subscriptions WHERE source_id = $1 ORDER BY chat_id",
                source_id,
            )
        return [Subscription(chat_id=r["chat_id"], source_id=r["source_id"]) for r in rows]

    async def user_subscriptions(self, chat_id: int) -> set[int]:
        """Source ids a chat is subscribed to."""
        rows = await self._db.fetch(
            "SELECT source_id FROM subscriptions WHERE chat_id = $1",
            chat_id,
        )
        return {r["source_id"] for r in rows}

    async def add_subscription(
        self,
        chat_id: int,
        source_id: int,
        display_name: str,
        handle: str | None = None,
    ) -> bool:
        """
        Upsert the subscriber, then subscribe it to the source.

        Returns:
            True if the subscription is new, False if it already existed
        """
        async with self._db.transaction() as conn:
            await conn.execute(_UPSERT_SUBSCRIBER_SQL, chat_id, display_name, handle)
            status = await conn.execute(_INSERT_SUBSCRIPTION_SQL, chat_id, source_id)

        created = affected_rows(status) > 0
        logger.info(
            "Subscription chat=%d source=%d %s",
            chat_id, source_id, "created" if created else "already present",
        )
        return created

    async def remove_subscription(self, chat_id: int, source_id: int) -> bool:
        """
        Unsubscribe a chat from a source.

        Returns:
            True if a row was removed
        """
        status = await self._db.execute(
            "DELETE FROM subscriptions WHERE chat_id = $1 AND source_id = $2",
            chat_id, source_id,
        )
        return affected_rows(status) > 0
