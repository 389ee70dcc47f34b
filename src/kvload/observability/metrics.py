"""Prometheus metrics for kvload.

Provides the metrics sink contract used by the workload and its
Prometheus-backed implementation:
- Operation latency histogram per operation kind
- Operation counter per kind and outcome
- Throttled attempt counter
- Keyspace size gauge

Usage:
    from kvload.observability.metrics import PrometheusMetricsSink

    sink = PrometheusMetricsSink()
    sink.start_http_server(9090)
    sink.record(OperationKind.READ, 0.0012, Outcome.SUCCESS)
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable

import prometheus_client
from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram

from kvload.models import OperationKind, Outcome

logger = logging.getLogger(__name__)

# Store round trips are sub-millisecond on a healthy LAN; the upper buckets
# catch pool waits and command timeouts.
LATENCY_BUCKETS = (
    0.0001,
    0.00025,
    0.0005,
    0.001,
    0.0025,
    0.005,
    0.01,
    0.025,
    0.05,
    0.1,
    0.25,
    0.5,
    1.0,
    2.5,
    5.0,
    15.0,
)


class MetricsSink(ABC):
    """Receives operation observations. Implementations must not block."""

    @abstractmethod
    def record(
        self,
        kind: OperationKind,
        latency_seconds: float,
        outcome: Outcome,
        *,
        error_type: str | None = None,
    ) -> None:
        """Record one completed store call."""
        ...

    @abstractmethod
    def record_throttled(self) -> None:
        """Record an attempt skipped by the rate limiter."""
        ...

    @abstractmethod
    def set_keyspace_size(self, size: int) -> None:
        """Publish the size of the active keyspace."""
        ...


class NoOpMetricsSink(MetricsSink):
    """Sink for when metrics are disabled."""

    def record(
        self,
        kind: OperationKind,
        latency_seconds: float,
        outcome: Outcome,
        *,
        error_type: str | None = None,
    ) -> None:
        """No-op."""
        pass

    def record_throttled(self) -> None:
        """No-op."""
        pass

    def set_keyspace_size(self, size: int) -> None:
        """No-op."""
        pass


class CompositeMetricsSink(MetricsSink):
    """Fans every observation out to several sinks."""

    def __init__(self, sinks: Iterable[MetricsSink]) -> None:
        self.sinks = list(sinks)

    def record(
        self,
        kind: OperationKind,
        latency_seconds: float,
        outcome: Outcome,
        *,
        error_type: str | None = None,
    ) -> None:
        for sink in self.sinks:
            sink.record(kind, latency_seconds, outcome, error_type=error_type)

    def record_throttled(self) -> None:
        for sink in self.sinks:
            sink.record_throttled()

    def set_keyspace_size(self, size: int) -> None:
        for sink in self.sinks:
            sink.set_keyspace_size(size)


class PrometheusMetricsSink(MetricsSink):
    """Metrics sink backed by prometheus_client collectors.

    Each sink owns its own CollectorRegistry so several engines (or tests)
    can coexist in one process without duplicate-collector errors.
    """

    def __init__(
        self,
        registry: CollectorRegistry | None = None,
        namespace: str = "kvload",
    ) -> None:
        self.registry = registry or CollectorRegistry()

        self.operation_duration_seconds = Histogram(
            f"{namespace}_operation_duration_seconds",
            "Store operation latency in seconds",
            ["operation"],
            buckets=LATENCY_BUCKETS,
            registry=self.registry,
        )

        self.operations_total = Counter(
            f"{namespace}_operations_total",
            "Store operations by kind and outcome",
            ["operation", "outcome"],
            registry=self.registry,
        )

        self.operation_errors_total = Counter(
            f"{namespace}_operation_errors_total",
            "Failed store operations by kind and exception type",
            ["operation", "error_type"],
            registry=self.registry,
        )

        self.throttled_total = Counter(
            f"{namespace}_throttled_total",
            "Attempts skipped because the rate limiter timed out",
            registry=self.registry,
        )

        self.keyspace_size = Gauge(
            f"{namespace}_keyspace_size",
            "Number of keys in the active keyspace",
            registry=self.registry,
        )

    def record(
        self,
        kind: OperationKind,
        latency_seconds: float,
        outcome: Outcome,
        *,
        error_type: str | None = None,
    ) -> None:
        self.operation_duration_seconds.labels(operation=kind.value).observe(
            max(0.0, latency_seconds)
        )
        self.operations_total.labels(operation=kind.value, outcome=outcome.value).inc()
        if outcome is Outcome.FAILURE:
            self.operation_errors_total.labels(
                operation=kind.value, error_type=error_type or "unknown"
            ).inc()

    def record_throttled(self) -> None:
        self.throttled_total.inc()

    def set_keyspace_size(self, size: int) -> None:
        self.keyspace_size.set(size)

    def generate_latest(self) -> bytes:
        """Generate Prometheus metrics in exposition format."""
        return prometheus_client.generate_latest(self.registry)

    def start_http_server(self, port: int, addr: str = "0.0.0.0") -> None:  # nosec B104
        """Expose /metrics on a background thread."""
        prometheus_client.start_http_server(port, addr=addr, registry=self.registry)
        logger.info(f"Prometheus metrics exposed on {addr}:{port}")
