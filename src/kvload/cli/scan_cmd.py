"""CLI command for counting keys in the store.

Usage:
    kvload scan
"""

from __future__ import annotations

import asyncio

import typer

from kvload.cli.common import load_settings
from kvload.config import Settings
from kvload.store.redis import RedisStore

app = typer.Typer(help="Count keys currently in the store")


@app.callback(invoke_without_command=True)
def scan() -> None:
    """Print the number of keys matching KEY_PREFIX."""
    settings = load_settings()
    try:
        count = asyncio.run(_count_keys(settings))
    except Exception as e:
        typer.echo(f"Error: scan failed: {type(e).__name__}: {e}", err=True)
        raise typer.Exit(code=1) from e
    typer.echo(str(count))


async def _count_keys(settings: Settings) -> int:
    store = RedisStore.from_settings(settings)
    try:
        return len(await store.scan_all_keys())
    finally:
        await store.close()
