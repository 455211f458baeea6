"""Announcement message template."""

from src.sources.schemas import Source
from src.storage.schemas import Announcement

ANNOUNCEMENT_TEMPLATE = (
    "📢 Duyuru\n\n"
    "👤 Kimden: {source_name}\n"
    "📅 Tarih: {date}\n\n"
    "🗒 Konu:\n"
    "> {title}\n\n"
    "🔗 {link}"
)


def format_announcement(source: Source, announcement: Announcement) -> str:
    """Render the notification text for one announcement."""
    return ANNOUNCEMENT_TEMPLATE.format(
        source_name=source.name,
        date=announcement.published_date.strftime("%d.%m.%Y"),
        title=announcement.title,
        link=announcement.link,
    )
