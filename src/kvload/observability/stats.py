"""In-process latency aggregation for the end-of-run summary.

Keeps bounded memory regardless of run length: counters are exact,
percentiles come from a fixed-size reservoir sample per operation kind.
"""

from __future__ import annotations

import math
import random
from dataclasses import dataclass, field
from typing import Any

from kvload.models import OperationKind, Outcome
from kvload.observability.metrics import MetricsSink


def percentile(sorted_values: list[float], p: float) -> float | None:
    """Linear-interpolated percentile of an ascending list."""
    if not sorted_values:
        return None
    if p <= 0:
        return sorted_values[0]
    if p >= 1:
        return sorted_values[-1]

    k = (len(sorted_values) - 1) * p
    f = math.floor(k)
    c = math.ceil(k)
    if f == c:
        return sorted_values[f]
    return sorted_values[f] * (c - k) + sorted_values[c] * (k - f)


class ReservoirSampler:
    """Fixed-size uniform sample of an unbounded stream."""

    def __init__(self, max_size: int, *, seed: int | None = None) -> None:
        if max_size <= 0:
            raise ValueError("max_size must be > 0")
        self._max_size = max_size
        self._rng = random.Random(seed)
        self._seen = 0
        self._values: list[float] = []

    def add(self, value: float) -> None:
        self._seen += 1
        if len(self._values) < self._max_size:
            self._values.append(value)
            return

        idx = self._rng.randrange(self._seen)
        if idx < self._max_size:
            self._values[idx] = value

    def values(self) -> list[float]:
        return list(self._values)


@dataclass
class KindStats:
    count: int = 0
    error_count: int = 0
    sum_seconds: float = 0.0
    min_seconds: float | None = None
    max_seconds: float | None = None
    error_types: dict[str, int] = field(default_factory=dict)

    def observe(self, latency_seconds: float, success: bool, error_type: str | None) -> None:
        self.count += 1
        if not success:
            self.error_count += 1
            name = error_type or "unknown"
            self.error_types[name] = self.error_types.get(name, 0) + 1
        self.sum_seconds += latency_seconds
        if self.min_seconds is None or latency_seconds < self.min_seconds:
            self.min_seconds = latency_seconds
        if self.max_seconds is None or latency_seconds > self.max_seconds:
            self.max_seconds = latency_seconds


class OperationStats(MetricsSink):
    """MetricsSink that aggregates observations for reporting."""

    def __init__(self, sample_size: int = 5000) -> None:
        self._sample_size = sample_size
        self._by_kind: dict[OperationKind, KindStats] = {}
        self._samples: dict[OperationKind, ReservoirSampler] = {}
        self.throttled = 0
        self.keyspace_size = 0

    def record(
        self,
        kind: OperationKind,
        latency_seconds: float,
        outcome: Outcome,
        *,
        error_type: str | None = None,
    ) -> None:
        latency_seconds = max(0.0, latency_seconds)
        stats = self._by_kind.get(kind)
        if stats is None:
            stats = KindStats()
            self._by_kind[kind] = stats
            self._samples[kind] = ReservoirSampler(self._sample_size)
        stats.observe(latency_seconds, outcome is Outcome.SUCCESS, error_type)
        self._samples[kind].add(latency_seconds)

    def record_throttled(self) -> None:
        self.throttled += 1

    def set_keyspace_size(self, size: int) -> None:
        self.keyspace_size = size

    def count(self, kind: OperationKind) -> int:
        stats = self._by_kind.get(kind)
        return stats.count if stats else 0

    def error_count(self, kind: OperationKind) -> int:
        stats = self._by_kind.get(kind)
        return stats.error_count if stats else 0

    def report(self) -> dict[str, Any]:
        """Summary per operation kind, latencies in milliseconds."""
        operations: dict[str, Any] = {}
        for kind, stats in self._by_kind.items():
            values = sorted(self._samples[kind].values())
            operations[kind.value] = {
                "count": stats.count,
                "error_count": stats.error_count,
                "error_rate_pct": round(stats.error_count / stats.count * 100, 2),
                "error_types": dict(stats.error_types),
                "min_ms": _to_ms(stats.min_seconds),
                "max_ms": _to_ms(stats.max_seconds),
                "mean_ms": _to_ms(stats.sum_seconds / stats.count),
                "p50_ms": _to_ms(percentile(values, 0.50)),
                "p95_ms": _to_ms(percentile(values, 0.95)),
                "p99_ms": _to_ms(percentile(values, 0.99)),
                "sample_size": len(values),
            }
        return {
            "operations": operations,
            "throttled": self.throttled,
            "keyspace_size": self.keyspace_size,
        }


def _to_ms(seconds: float | None) -> float | None:
    return None if seconds is None else round(seconds * 1000.0, 4)
