"""
Prometheus metrics for the announcement pipeline.

Counts scheduler cycles, pages and rows fetched per source, source
failures, newly stored announcements and per-recipient delivery outcomes.
Exposed over HTTP for Prometheus scraping when the CLI enables it.
"""

import logging

from prometheus_client import Counter, Histogram, start_http_server

from src.config.settings import get_settings

logger = logging.getLogger(__name__)

# Cycles walk every source sequentially behind a throttle, so they are slow
CYCLE_BUCKETS = (1.0, 5.0, 15.0, 30.0, 60.0, 120.0, 300.0, 600.0)


class MetricsCollector:
    """
    Prometheus metrics collector for duyuru-tracker.

    Usage:
        metrics = get_metrics()
        metrics.start_server()
        metrics.record_rows("bilgisayar", 20)
    """

    def __init__(self):
        self.cycles_total = Counter(
            "duyuru_tracker_cycles_total",
            "Completed fetch-and-notify cycles",
        )

        self.cycle_duration = Histogram(
            "duyuru_tracker_cycle_duration_seconds",
            "Wall time of one full cycle over all sources",
            buckets=CYCLE_BUCKETS,
        )

        self.pages_fetched = Counter(
            "duyuru_tracker_pages_fetched_total",
            "Listing pages requested",
            ["source"],
        )

        self.rows_fetched = Counter(
            "duyuru_tracker_rows_fetched_total",
            "Valid announcement rows parsed from listing pages",
            ["source"],
        )

        self.source_errors = Counter(
            "duyuru_tracker_source_errors_total",
            "Sources whose contribution to a cycle was aborted",
            ["source", "error_type"],
        )

        self.announcements_new = Counter(
            "duyuru_tracker_announcements_new_total",
            "Announcements stored for the first time",
            ["source"],
        )

        self.deliveries = Counter(
            "duyuru_tracker_deliveries_total",
            "Per-recipient notification attempts",
            ["status"],  # delivered, failed
        )

        self._server_started = False

    def start_server(self, port: int | None = None) -> None:
        """Start the Prometheus HTTP endpoint (once per process)."""
        if self._server_started:
            return
        port = port or get_settings().metrics_port
        start_http_server(port)
        self._server_started = True
        logger.info("Metrics server started on port %d", port)

    def record_cycle(self, elapsed: float) -> None:
        self.cycles_total.inc()
        self.cycle_duration.observe(elapsed)

    def record_page(self, source: str) -> None:
        self.pages_fetched.labels(source=source).inc()

    def record_rows(self, source: str, count: int) -> None:
        if count > 0:
            self.rows_fetched.labels(source=source).inc(count)

    def record_source_error(self, source: str, error_type: str) -> None:
        self.source_errors.labels(source=source, error_type=error_type).inc()

    def record_new_announcement(self, source: str) -> None:
        self.announcements_new.labels(source=source).inc()

    def record_delivery(self, delivered: bool) -> None:
        self.deliveries.labels(status="delivered" if delivered else "failed").inc()


# Global metrics instance
_metrics: MetricsCollector | None = None


def get_metrics() -> MetricsCollector:
    """Get global metrics collector instance."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics
