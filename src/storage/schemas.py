"""Records owned by the announcement store."""

from dataclasses import dataclass
from datetime import date


@dataclass
class Announcement:
    """One listing entry, stored once per distinct link.

    ``link`` is the de-duplication key: two cycles that observe the same
    listing entry resolve to the same link and the second insert is ignored.
    """

    source_id: int
    link: str
    title: str
    published_date: date
    announcement_id: int | None = None


@dataclass
class Subscriber:
    """A chat that follows at least one source."""

    chat_id: int
    display_name: str
    handle: str | None = None


@dataclass(frozen=True)
class Subscription:
    """A (chat, source) follow relationship."""

    chat_id: int
    source_id: int
