"""Fan-out of newly stored announcements to their subscribers.

Delivery is best-effort and at most once: every recipient is attempted
independently, a failure is logged and counted, and nothing is retried
or queued. Delivery outcome never touches the stored announcement.
"""

from dataclasses import dataclass, field

import structlog

from src.notifications.channels import Messenger
from src.notifications.config import NotificationConfig
from src.notifications.formatter import format_announcement
from src.observability.metrics import get_metrics
from src.sources.service import SourceRegistry
from src.storage.repository import AnnouncementStore
from src.storage.schemas import Announcement

logger = structlog.get_logger(__name__)


@dataclass
class DeliveryReport:
    """Outcome of fanning out one announcement."""

    link: str
    recipients: int = 0
    delivered: list[int] = field(default_factory=list)
    failed: list[int] = field(default_factory=list)
    skipped_reason: str | None = None

    @property
    def skipped(self) -> bool:
        return self.skipped_reason is not None


class Notifier:
    """
    Delivers one announcement to every subscriber of its source.

    Args:
        sources: Registry with ``get_by_id`` (SourcesService or StaticSourceRegistry)
        store: Announcement store, used for subscriber lookup
        messenger: Delivery channel
        config: Delivery options
    """

    def __init__(
        self,
        sources: SourceRegistry,
        store: AnnouncementStore,
        messenger: Messenger,
        config: NotificationConfig | None = None,
    ) -> None:
        self._sources = sources
        self._store = store
        self._messenger = messenger
        self._config = config or NotificationConfig()
        self._metrics = get_metrics()

    async def notify(self, announcement: Announcement) -> DeliveryReport:
        """Send the announcement to all subscribers of its source."""
        report = DeliveryReport(link=announcement.link)

        source = await self._sources.get_by_id(announcement.source_id)
        if source is None:
            logger.warning(
                "Source not found, announcement kept without notification",
                source_id=announcement.source_id,
                link=announcement.link,
            )
            report.skipped_reason = "unknown_source"
            return report

        recipients = sorted(await self._store.subscribers_of(source.source_id))
        report.recipients = len(recipients)
        if not recipients:
            report.skipped_reason = "no_subscribers"
            return report

        text = format_announcement(source, announcement)
        for chat_id in recipients:
            try:
                await self._messenger.send_text(
                    chat_id,
                    text,
                    disable_preview=self._config.disable_link_preview,
                )
            except Exception as e:
                report.failed.append(chat_id)
                self._metrics.record_delivery(False)
                logger.warning(
                    "Delivery failed",
                    chat_id=chat_id,
                    link=announcement.link,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                continue

            report.delivered.append(chat_id)
            self._metrics.record_delivery(True)

        if report.failed:
            logger.warning(
                "Announcement partially delivered",
                source=source.short_name,
                link=announcement.link,
                delivered=len(report.delivered),
                failed=len(report.failed),
            )
        else:
            logger.info(
                "Announcement delivered",
                source=source.short_name,
                link=announcement.link,
                recipients=len(report.delivered),
            )
        return report
