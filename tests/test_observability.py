from __future__ import annotations

import json
import logging

from streambridge.observability.logging import LoggingConfig, _JsonFormatter, configure_logging
from streambridge.models import StreamState
from streambridge.observability.metrics import MetricSerializer, MetricsRegistry, StreamMetrics


def test_json_formatter_includes_extra_context_and_redacts() -> None:
    logger = logging.getLogger("streambridge.test")
    record = logger.makeRecord(
        "streambridge.test",
        logging.INFO,
        __file__,
        1,
        "stream %s",
        ("completed",),
        None,
        extra={"url": "http://ollama.test", "chunks": 3, "authorization": "Bearer abc"},
    )
    payload = json.loads(_JsonFormatter(LoggingConfig()).format(record))
    assert payload["message"] == "stream completed"
    assert payload["service"] == "streambridge"
    assert payload["context"]["url"] == "http://ollama.test"
    assert payload["context"]["chunks"] == 3
    assert payload["context"]["authorization"] == "[redacted]"
    assert "levelname" not in payload["context"]


def test_logging_config_from_env(monkeypatch) -> None:
    monkeypatch.setenv("STREAMBRIDGE_LOG_LEVEL", "debug")
    monkeypatch.setenv("STREAMBRIDGE_LOG_FORMAT", "JSON")
    config = LoggingConfig.from_env()
    assert config.level == "DEBUG"
    assert config.format == "json"


def test_configure_logging_installs_json_formatter() -> None:
    root = logging.getLogger()
    previous_level = root.level
    previous = [(handler, handler.formatter) for handler in root.handlers]
    try:
        configure_logging(LoggingConfig(level="WARNING", format="json"))
        assert root.level == logging.WARNING
        assert all(isinstance(handler.formatter, _JsonFormatter) for handler in root.handlers)
    finally:
        root.setLevel(previous_level)
        for handler, formatter in previous:
            handler.setFormatter(formatter)


def test_metrics_registry_snapshot() -> None:
    registry = MetricsRegistry()
    registry.counter("streams.opened").inc(3)
    registry.gauge("streams.active").add(2)
    registry.gauge("streams.active").add(-1)
    registry.timer("streams.duration").observe(0.25)
    snapshot = registry.snapshot()
    assert snapshot.counters["streams.opened"] == 3
    assert snapshot.gauges["streams.active"] == 1
    assert snapshot.timers["streams.duration"]["count"] == 1
    assert snapshot.timers["streams.duration"]["max"] == 0.25


def test_metric_serializer_to_dict() -> None:
    registry = MetricsRegistry()
    registry.counter("chunks.emitted").inc(2)
    payload = MetricSerializer().to_dict(registry.snapshot())
    assert payload["counters"] == {"chunks.emitted": 2}
    assert payload["timers"] == {}


def test_stream_metrics_track_lifecycle() -> None:
    registry = MetricsRegistry()
    metrics = StreamMetrics(registry)
    metrics.opened()
    metrics.opened()
    assert registry.snapshot().gauges["streams.active"] == 2
    metrics.closed(StreamState.COMPLETED, 4, 0.5)
    metrics.closed(StreamState.CANCELLED, 1, 0.1)
    snapshot = registry.snapshot()
    assert snapshot.gauges["streams.active"] == 0
    assert snapshot.counters["streams.completed"] == 1
    assert snapshot.counters["streams.cancelled"] == 1
    assert snapshot.counters["chunks.emitted"] == 5
    assert snapshot.timers["streams.duration"]["count"] == 2


def test_json_formatter_stamps_record_creation_time() -> None:
    record = logging.getLogger("streambridge.test").makeRecord(
        "streambridge.test", logging.WARNING, __file__, 1, "stream failed", (), None
    )
    record.created = 0.0
    payload = json.loads(_JsonFormatter(LoggingConfig()).format(record))
    assert payload["ts"].startswith("1970-01-01T00:00:00")
    assert "context" not in payload
