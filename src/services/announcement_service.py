"""
Announcement service - the periodic fetch, de-duplicate and notify loop.

Runs one cycle immediately when started, then one every
``fetch_interval_seconds`` until stopped. A cycle walks all sources
sequentially (they share one request throttle), stores announcements
whose link has never been seen and fans each new one out to the
source's subscribers.

Features:
- Idempotent start, cooperative stop that lets the current source finish
- Per-source failure isolation (the next cycle is the retry)
- Cycle reports and health status for the host process
"""

import asyncio
import time
from dataclasses import asdict, dataclass, field
from typing import Any

import structlog

from src.config.settings import get_settings
from src.ingestion.fetcher import AnnouncementFetcher
from src.notifications.notifier import Notifier
from src.observability.logging import bind_context, clear_context
from src.observability.metrics import get_metrics
from src.sources.schemas import Source
from src.sources.service import SourceRegistry
from src.storage.repository import AnnouncementStore

logger = structlog.get_logger(__name__)


@dataclass
class CycleReport:
    """Summary of one pass over all sources."""

    cycle: int = 0
    sources_total: int = 0
    sources_failed: list[str] = field(default_factory=list)
    rows_fetched: int = 0
    new_announcements: int = 0
    deliveries_ok: int = 0
    deliveries_failed: int = 0
    elapsed_seconds: float = 0.0
    cancelled: bool = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class AnnouncementService:
    """
    Scheduler driving fetch-and-notify cycles.

    States: idle -> running (cycle) -> idle (waiting) -> ... -> stopped.

    Usage:
        service = AnnouncementService(sources, fetcher, store, notifier)
        service.start()        # returns immediately, loop runs as a task
        ...
        await service.stop()   # waits for the in-flight source to finish

    Args:
        sources: Registry with ``get_sources`` (SourcesService or StaticSourceRegistry)
        fetcher: Paginated listing fetcher
        store: Announcement store
        notifier: Fan-out for new announcements, or None to only store them
        interval_seconds: Wait between cycles (defaults to settings)
    """

    def __init__(
        self,
        sources: SourceRegistry,
        fetcher: AnnouncementFetcher,
        store: AnnouncementStore,
        notifier: Notifier | None = None,
        interval_seconds: float | None = None,
    ):
        self._sources = sources
        self._fetcher = fetcher
        self._store = store
        self._notifier = notifier
        self._interval = (
            interval_seconds
            if interval_seconds is not None
            else get_settings().fetch_interval_seconds
        )

        self._stop_event = asyncio.Event()
        self._task: asyncio.Task | None = None
        self._cycles = 0
        self._in_cycle = False
        self._last_report: CycleReport | None = None
        self._metrics = get_metrics()

    # ── Control surface ─────────────────────────────────────────

    def start(self) -> bool:
        """
        Start the background loop.

        Returns:
            True if started, False if it was already running
        """
        if self.is_running:
            logger.info("Announcement service already running")
            return False

        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._run(), name="announcement_service")
        logger.info("Announcement service started", interval_seconds=self._interval)
        return True

    async def stop(self) -> None:
        """Request a stop and wait for the in-flight cycle to wind down."""
        if self._task is None:
            return

        logger.info("Stopping announcement service")
        self._stop_event.set()
        await asyncio.gather(self._task, return_exceptions=True)
        self._task = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def stop_requested(self) -> bool:
        return self._stop_event.is_set()

    @property
    def last_report(self) -> CycleReport | None:
        return self._last_report

    # ── Loop ────────────────────────────────────────────────────

    async def _run(self) -> None:
        try:
            while not self._stop_event.is_set():
                try:
                    await self.run_once(self._stop_event)
                except Exception as e:
                    # e.g. the source registry query failed; try again next interval
                    logger.error("Cycle aborted", error=str(e), exc_info=True)

                if await self._wait_for_stop(self._interval):
                    break
        finally:
            logger.info("Announcement service stopped", cycles=self._cycles)

    async def _wait_for_stop(self, timeout: float) -> bool:
        """Sleep until the next cycle; return True if a stop arrived meanwhile."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=timeout)
            return True
        except asyncio.TimeoutError:
            return False

    async def run_once(self, stop_event: asyncio.Event | None = None) -> CycleReport:
        """
        Run one cycle over all sources.

        Useful for testing or manual triggers.

        Args:
            stop_event: Checked between sources and between pages

        Returns:
            CycleReport for the cycle
        """
        self._cycles += 1
        report = CycleReport(cycle=self._cycles)
        start = time.monotonic()
        self._in_cycle = True
        bind_context(cycle=report.cycle)

        try:
            sources = await self._sources.get_sources()
            report.sources_total = len(sources)
            logger.info("Cycle started", sources=len(sources))

            for source in sources:
                if stop_event is not None and stop_event.is_set():
                    report.cancelled = True
                    logger.info("Stop requested, ending cycle early")
                    break
                await self._process_source(source, report, stop_event)

            report.elapsed_seconds = round(time.monotonic() - start, 3)
            self._metrics.record_cycle(report.elapsed_seconds)
            self._last_report = report

            logger.info(
                "Cycle finished",
                sources=report.sources_total,
                failed=len(report.sources_failed),
                rows=report.rows_fetched,
                new=report.new_announcements,
                delivered=report.deliveries_ok,
                delivery_failures=report.deliveries_failed,
                elapsed_seconds=report.elapsed_seconds,
            )
            return report
        finally:
            self._in_cycle = False
            clear_context("cycle")

    async def _process_source(
        self,
        source: Source,
        report: CycleReport,
        stop_event: asyncio.Event | None,
    ) -> None:
        """Fetch a source completely, then store and notify its new rows.

        Any error while fetching discards the whole source for this cycle.
        """
        try:
            rows = [row async for row in self._fetcher.fetch_all(source, stop_event)]
        except Exception as e:
            report.sources_failed.append(source.short_name)
            self._metrics.record_source_error(source.short_name, type(e).__name__)
            logger.error(
                "Source fetch failed",
                source=source.short_name,
                error=str(e),
                error_type=type(e).__name__,
            )
            return

        report.rows_fetched += len(rows)

        try:
            for row in rows:
                announcement = row.to_announcement()
                if await self._store.exists(announcement.link):
                    continue
                # A concurrent insert may win between the check and here
                if not await self._store.insert(announcement):
                    continue

                report.new_announcements += 1
                self._metrics.record_new_announcement(source.short_name)
                logger.info(
                    "New announcement",
                    source=source.short_name,
                    link=announcement.link,
                    title=announcement.title,
                )

                if self._notifier is None:
                    continue
                try:
                    delivery = await self._notifier.notify(announcement)
                except Exception as e:
                    logger.error(
                        "Notification aborted, announcement kept",
                        source=source.short_name,
                        link=announcement.link,
                        error=str(e),
                    )
                    continue
                report.deliveries_ok += len(delivery.delivered)
                report.deliveries_failed += len(delivery.failed)
        except Exception as e:
            report.sources_failed.append(source.short_name)
            self._metrics.record_source_error(source.short_name, type(e).__name__)
            logger.error(
                "Storing announcements failed",
                source=source.short_name,
                error=str(e),
                error_type=type(e).__name__,
            )

    async def health_check(self) -> dict[str, Any]:
        """Status for the CLI ``health`` command and the host process."""
        return {
            "running": self.is_running,
            "in_cycle": self._in_cycle,
            "stop_requested": self.stop_requested,
            "cycles_completed": self._cycles,
            "interval_seconds": self._interval,
            "last_cycle": self._last_report.to_dict() if self._last_report else None,
        }
