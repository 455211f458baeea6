"""Tests for metrics and structured logging helpers."""

from unittest.mock import patch

import structlog

from src.observability.logging import bind_context, clear_context, setup_logging
from src.observability.metrics import get_metrics


class TestMetrics:
    def test_global_instance(self):
        assert get_metrics() is get_metrics()

    def test_delivery_counters(self):
        metrics = get_metrics()
        delivered = metrics.deliveries.labels(status="delivered")
        failed = metrics.deliveries.labels(status="failed")
        before = (delivered._value.get(), failed._value.get())

        metrics.record_delivery(True)
        metrics.record_delivery(False)
        metrics.record_delivery(False)

        assert delivered._value.get() - before[0] == 1
        assert failed._value.get() - before[1] == 2

    def test_zero_rows_not_recorded(self):
        metrics = get_metrics()
        counter = metrics.rows_fetched.labels(source="kimya")
        before = counter._value.get()

        metrics.record_rows("kimya", 0)
        metrics.record_rows("kimya", 4)

        assert counter._value.get() - before == 4

    def test_server_started_once(self):
        metrics = get_metrics()
        metrics._server_started = False

        with patch("src.observability.metrics.start_http_server") as start:
            metrics.start_server(port=9999)
            metrics.start_server(port=9999)

        start.assert_called_once_with(9999)
        metrics._server_started = False


class TestLogging:
    def test_setup_is_repeatable(self):
        setup_logging("DEBUG")
        setup_logging()

    def test_context_bind_and_clear(self):
        clear_context()
        bind_context(cycle=3, source="kimya")

        clear_context("cycle")

        assert structlog.contextvars.get_contextvars() == {"source": "kimya"}
        clear_context()
        assert structlog.contextvars.get_contextvars() == {}
