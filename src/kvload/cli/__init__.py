"""CLI commands for kvload.

Provides command-line interface using Typer:
- kvload run: Preset missing keys and drive the read/update workload
- kvload preset: Populate the dataset only
- kvload scan: Count keys in the store

Configuration comes from the environment (see kvload.config.Settings).

Usage:
    kvload --help
    kvload run --duration 5m --output summary.json
    REDIS_CLUSTER_ENABLE=true REDIS_CLUSTER_NODES_URL=a:6379,b:6379 kvload run
"""

import typer

from kvload.cli.preset_cmd import app as preset_app
from kvload.cli.run_cmd import app as run_app
from kvload.cli.scan_cmd import app as scan_app

# Main CLI application
app = typer.Typer(
    name="kvload",
    help="kvload: rate-limited read/update load generator for key-value stores",
    no_args_is_help=True,
)

app.add_typer(run_app, name="run")
app.add_typer(preset_app, name="preset")
app.add_typer(scan_app, name="scan")


@app.callback()
def callback() -> None:
    """kvload: rate-limited read/update load generator for key-value stores."""
    pass


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
