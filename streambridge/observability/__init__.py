"""Observability utilities (logging and stream metrics)."""

from streambridge.observability.logging import LoggingConfig, configure_logging
from streambridge.observability.metrics import (
    MetricSerializer,
    MetricSnapshot,
    MetricsRegistry,
    StreamMetrics,
)

__all__ = [
    "LoggingConfig",
    "configure_logging",
    "MetricSerializer",
    "MetricSnapshot",
    "MetricsRegistry",
    "StreamMetrics",
]
