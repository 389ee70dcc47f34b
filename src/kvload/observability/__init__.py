"""Observability module for kvload.

Provides metrics emission and structured logging:
- Prometheus metrics sink with an HTTP exposition endpoint
- In-process latency statistics for the run summary
- JSON structured logging with run / phase / worker context
"""

from kvload.observability.logging import (
    LogContext,
    configure_logging,
    phase_var,
    run_id_var,
    worker_id_var,
)
from kvload.observability.metrics import (
    CompositeMetricsSink,
    MetricsSink,
    NoOpMetricsSink,
    PrometheusMetricsSink,
)
from kvload.observability.stats import OperationStats

__all__ = [
    # Logging
    "configure_logging",
    "LogContext",
    "run_id_var",
    "phase_var",
    "worker_id_var",
    # Metrics
    "MetricsSink",
    "NoOpMetricsSink",
    "CompositeMetricsSink",
    "PrometheusMetricsSink",
    "OperationStats",
]
