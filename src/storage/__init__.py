"""Storage layer - PostgreSQL database and the announcement store."""

from src.storage.database import Database, DatabaseUnavailableError
from src.storage.repository import AnnouncementStore
from src.storage.schemas import Announcement, Subscriber, Subscription

__all__ = [
    "Announcement",
    "AnnouncementStore",
    "Database",
    "DatabaseUnavailableError",
    "Subscriber",
    "Subscription",
]
