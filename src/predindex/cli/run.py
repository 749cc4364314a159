"""Run command: reconciliation loop + expiry sweeper in the foreground."""

from __future__ import annotations

import asyncio
import signal
import sys

import typer

from predindex.errors import ConfigurationError
from predindex.indexer.service import IndexerService

app = typer.Typer(help="Run the indexer loops")


@app.callback(invoke_without_command=True)
def run(ctx: typer.Context) -> None:
    """Poll the chain and keep odds, volume and history current until Ctrl+C."""
    if ctx.invoked_subcommand is not None:
        return
    settings = ctx.obj["settings"]
    try:
        service = IndexerService.from_settings(settings)
    except ConfigurationError as e:
        typer.echo(f"Configuration error: {e}")
        raise typer.Exit(1)
    stop_event = asyncio.Event()

    def shutdown() -> None:
        stop_event.set()

    loop = asyncio.new_event_loop()
    if sys.platform != "win32":
        loop.add_signal_handler(signal.SIGINT, shutdown)
        loop.add_signal_handler(signal.SIGTERM, shutdown)
    try:
        typer.echo("Starting indexer (Ctrl+C to stop)...")
        loop.run_until_complete(service.run(stop_event=stop_event))
    except KeyboardInterrupt:
        pass
    finally:
        loop.run_until_complete(service.close())
        loop.close()
    typer.echo("Stopped.")
