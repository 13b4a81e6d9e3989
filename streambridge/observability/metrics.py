from __future__ import annotations

import threading
from dataclasses import dataclass, field

from streambridge.models import StreamState


@dataclass
class Counter:
    name: str
    value: int = 0

    def inc(self, amount: int = 1) -> None:
        self.value += amount


@dataclass
class Gauge:
    name: str
    value: float = 0.0

    def add(self, amount: float) -> None:
        self.value += amount


@dataclass
class Timer:
    name: str
    samples: list[float] = field(default_factory=list)

    def observe(self, duration_s: float) -> None:
        self.samples.append(duration_s)

    def stats(self) -> dict[str, float]:
        if not self.samples:
            return {"count": 0, "min": 0.0, "max": 0.0, "avg": 0.0}
        return {
            "count": float(len(self.samples)),
            "min": min(self.samples),
            "max": max(self.samples),
            "avg": sum(self.samples) / len(self.samples),
        }


@dataclass(frozen=True)
class MetricSnapshot:
    counters: dict[str, int]
    gauges: dict[str, float]
    timers: dict[str, dict[str, float]]


class MetricsRegistry:
    """Named counters, gauges and timers; one registry may serve many bridges."""

    def __init__(self) -> None:
        self._counters: dict[str, Counter] = {}
        self._gauges: dict[str, Gauge] = {}
        self._timers: dict[str, Timer] = {}
        self._lock = threading.Lock()

    def counter(self, name: str) -> Counter:
        with self._lock:
            return self._counters.setdefault(name, Counter(name))

    def gauge(self, name: str) -> Gauge:
        with self._lock:
            return self._gauges.setdefault(name, Gauge(name))

    def timer(self, name: str) -> Timer:
        with self._lock:
            return self._timers.setdefault(name, Timer(name))

    def snapshot(self) -> MetricSnapshot:
        with self._lock:
            counters = {name: counter.value for name, counter in self._counters.items()}
            gauges = {name: gauge.value for name, gauge in self._gauges.items()}
            timers = {name: timer.stats() for name, timer in self._timers.items()}
        return MetricSnapshot(counters=counters, gauges=gauges, timers=timers)


class StreamMetrics:
    """Lifecycle bookkeeping for streams, written into a ``MetricsRegistry``."""

    def __init__(self, registry: MetricsRegistry, prefix: str = "streams") -> None:
        self.registry = registry
        self._prefix = prefix

    def opened(self) -> None:
        self.registry.counter(f"{self._prefix}.opened").inc()
        self.registry.gauge(f"{self._prefix}.active").add(1)

    def closed(self, state: StreamState, emitted: int, duration_s: float) -> None:
        self.registry.gauge(f"{self._prefix}.active").add(-1)
        self.registry.counter(f"{self._prefix}.{state.value}").inc()
        self.registry.counter("chunks.emitted").inc(emitted)
        self.registry.timer(f"{self._prefix}.duration").observe(duration_s)


class MetricSerializer:
    def to_dict(self, snapshot: MetricSnapshot) -> dict[str, dict[str, float] | dict[str, int]]:
        return {
            "counters": snapshot.counters,
            "gauges": snapshot.gauges,
            "timers": snapshot.timers,
        }
