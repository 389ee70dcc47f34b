"""Shared helpers for kvload CLI commands."""

from __future__ import annotations

import asyncio
import logging
import re
import signal
from collections.abc import Callable

import typer
from pydantic import ValidationError

from kvload.config import Settings, get_settings
from kvload.observability.logging import configure_logging
from kvload.observability.metrics import (
    CompositeMetricsSink,
    MetricsSink,
    PrometheusMetricsSink,
)
from kvload.observability.stats import OperationStats

logger = logging.getLogger(__name__)

_DURATION_RE = re.compile(r"^(?P<value>\d+(?:\.\d+)?)(?P<unit>ms|s|m|h)$")
_UNIT_SECONDS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


def parse_duration(raw: str) -> float:
    """Parse durations like '500ms', '10s', '5m', '1h' into seconds."""
    match = _DURATION_RE.match(raw.strip())
    if not match:
        raise ValueError("duration must match <number><unit> where unit is ms|s|m|h")
    return float(match.group("value")) * _UNIT_SECONDS[match.group("unit")]


def load_settings() -> Settings:
    """Load settings and configure logging, exiting with code 2 on bad config."""
    try:
        settings = get_settings()
    except ValidationError as e:
        typer.echo(f"Invalid configuration:\n{e}", err=True)
        raise typer.Exit(code=2) from e

    configure_logging(json_format=settings.log_json, level=settings.log_level)
    return settings


def build_metrics_sink(settings: Settings, stats: OperationStats) -> MetricsSink:
    """Stats collector plus, when enabled, a Prometheus endpoint."""
    if not settings.enable_metrics:
        logger.info("Metrics are disabled")
        return stats

    prometheus = PrometheusMetricsSink()
    if settings.metrics_port:
        prometheus.start_http_server(settings.metrics_port)
    return CompositeMetricsSink([prometheus, stats])


def install_stop_handlers(on_stop: Callable[[], None]) -> None:
    """Route SIGINT/SIGTERM to ``on_stop`` on the running loop."""
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, on_stop)
        except (NotImplementedError, RuntimeError):
            logger.debug(f"Signal handler for {sig.name} not supported here")
