"""CLI command for populating the dataset without running load.

Usage:
    kvload preset
    DATA_SET_SIZE=500000 PRESET_THREAD_NUM=200 kvload preset
"""

from __future__ import annotations

import asyncio

import typer

from kvload.cli.common import load_settings
from kvload.config import Settings
from kvload.keyspace import KeyspaceManager, compute_shortfall
from kvload.observability.metrics import NoOpMetricsSink
from kvload.store.redis import RedisStore
from kvload.workload.preset import PresetCoordinator, PresetResult

app = typer.Typer(help="Write missing keys up to the target dataset size")


@app.callback(invoke_without_command=True)
def preset() -> None:
    """Scan the store and preset keys until it holds DATA_SET_SIZE keys."""
    settings = load_settings()
    try:
        observed, result = asyncio.run(_preset(settings))
    except Exception as e:
        typer.echo(f"Error: preset failed: {type(e).__name__}: {e}", err=True)
        raise typer.Exit(code=1) from e

    if result is None:
        typer.echo(f"Store already holds {observed} keys (target {settings.dataset_size})")
        return

    typer.echo(
        f"Preset {result.written}/{result.attempted} keys "
        f"({result.failed} failed) in {result.duration_seconds:.2f}s"
    )
    if result.failed:
        raise typer.Exit(code=1)


async def _preset(settings: Settings) -> tuple[int, PresetResult | None]:
    store = RedisStore.from_settings(settings)
    try:
        observed = await store.scan_all_keys()
        shortfall = compute_shortfall(settings.dataset_size, len(observed))
        if shortfall == 0:
            return len(observed), None

        manager = KeyspaceManager(prefix=settings.key_prefix, seed=settings.key_seed)
        keys = manager.generate_ids(shortfall, exclude=observed)
        coordinator = PresetCoordinator(
            store,
            NoOpMetricsSink(),
            pool_size=settings.preset_thread_num,
            data_size=settings.data_size,
        )
        return len(observed), await coordinator.preset_all(keys)
    finally:
        await store.close()
