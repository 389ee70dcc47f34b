"""CLI command for running a benchmark.

Usage:
    kvload run
    kvload run --duration 5m
    kvload run --duration 30s --output results/summary.json
"""

from __future__ import annotations

import asyncio
import uuid
from pathlib import Path
from typing import Any

import orjson
import typer

from kvload.cli.common import build_metrics_sink, install_stop_handlers, load_settings, parse_duration
from kvload.config import Settings
from kvload.observability.logging import LogContext
from kvload.observability.metrics import MetricsSink
from kvload.observability.stats import OperationStats
from kvload.store.base import StoreUnavailableError
from kvload.store.redis import RedisStore
from kvload.workload.engine import LoadEngine, RunSummary

app = typer.Typer(help="Boot the keyspace and drive steady-state load")


@app.callback(invoke_without_command=True)
def run(
    duration: str | None = typer.Option(
        None,
        "--duration",
        "-d",
        help="Stop after this long (e.g. 30s, 5m). Runs until SIGINT/SIGTERM if omitted.",
    ),
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Also write the run summary as JSON to this path",
    ),
) -> None:
    """Preset missing keys, then run the read/update workload.

    Prints a JSON summary with per-operation latency statistics on exit.
    """
    duration_seconds = None
    if duration is not None:
        try:
            duration_seconds = parse_duration(duration)
        except ValueError as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(code=2) from e

    settings = load_settings()
    stats = OperationStats()
    sink = build_metrics_sink(settings, stats)

    try:
        summary = asyncio.run(_run(settings, sink, duration_seconds))
    except StoreUnavailableError as e:
        typer.echo(f"Error: store unavailable: {e}", err=True)
        raise typer.Exit(code=1) from e

    payload = build_report(summary, stats)
    typer.echo(orjson.dumps(payload, option=orjson.OPT_INDENT_2).decode())

    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_bytes(
            orjson.dumps(payload, option=orjson.OPT_INDENT_2 | orjson.OPT_SORT_KEYS)
        )
        typer.echo(f"Summary written to {output}", err=True)


def build_report(summary: RunSummary, stats: OperationStats) -> dict[str, Any]:
    payload = summary.to_dict()
    payload["metrics"] = stats.report()
    return payload


async def _run(
    settings: Settings, sink: MetricsSink, duration_seconds: float | None
) -> RunSummary:
    store = RedisStore.from_settings(settings)
    engine = LoadEngine(store, sink, settings)
    install_stop_handlers(engine.request_stop)
    # Worker tasks inherit run_id from this context
    with LogContext(run_id=uuid.uuid4().hex[:12]):
        try:
            return await engine.run(duration_seconds)
        finally:
            await store.close()
