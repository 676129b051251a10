"""Tests du logging structuré et du collecteur de métriques."""

import json
import logging
import threading

import pytest

from loader.utils.structured_logging import JsonFormatter, MetricsCollector, StructuredLogger


def test_metrics_aggregation():
    collector = MetricsCollector()

    collector.record_operation("insert_composition", 0.2)
    collector.record_operation("insert_composition", 0.4)
    collector.record_operation("insert_composition", 0.6, status="error", error="TerritoryNotFoundError")

    data = collector.get_metrics("insert_composition")
    assert data["count"] == 3
    assert data["success_count"] == 2
    assert data["error_count"] == 1
    assert data["min_duration"] == pytest.approx(0.2)
    assert data["max_duration"] == pytest.approx(0.6)
    assert data["avg_duration"] == pytest.approx(0.4)
    assert data["success_rate"] == pytest.approx(2 / 3)


def test_metrics_unknown_operation_and_reset():
    collector = MetricsCollector()
    collector.record_operation("populate", 1.0)

    assert collector.get_metrics("absent") == {}
    collector.reset()
    assert collector.get_metrics() == {}


def test_metrics_thread_safe():
    collector = MetricsCollector()

    def worker():
        for _ in range(100):
            collector.record_operation("insert_composition", 0.01)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert collector.get_metrics("insert_composition")["count"] == 800


def test_operation_logs_failure(caplog):
    logger = StructuredLogger("loader.test")

    with caplog.at_level(logging.INFO, logger="loader.test"):
        with pytest.raises(RuntimeError):
            with logger.operation("populate", ehr=2):
                raise RuntimeError("boom")

    messages = [r.getMessage() for r in caplog.records]
    assert any(m.startswith("Starting populate") for m in messages)
    assert any(m.startswith("Failed populate") and "error_type=RuntimeError" in m for m in messages)


def test_json_formatter():
    record = logging.LogRecord("loader", logging.INFO, __file__, 1, "Created EHR", None, None)

    data = json.loads(JsonFormatter().format(record))

    assert data["level"] == "INFO"
    assert data["message"] == "Created EHR"
    assert "thread" in data
