"""Rows parsed out of listing pages."""

from dataclasses import dataclass, field
from datetime import date

from src.storage.schemas import Announcement


@dataclass
class ListingRow:
    """One valid ``<tr>`` of a listing page.

    ``link`` is already normalized against the source's slug, so it can be
    used directly as the de-duplication key.
    """

    source_id: int
    link: str
    title: str
    published_date: date

    def to_announcement(self) -> Announcement:
        return Announcement(
            source_id=self.source_id,
            link=self.link,
            title=self.title,
            published_date=self.published_date,
        )


@dataclass
class ParsedPage:
    """Result of parsing one listing response.

    ``row_count`` counts every ``<tr>`` including the ones that were
    dropped; pagination advances by it and stops when it is zero.
    """

    row_count: int = 0
    rows: list[ListingRow] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return self.row_count == 0

    @property
    def dropped(self) -> int:
        return self.row_count - len(self.rows)
