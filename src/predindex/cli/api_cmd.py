"""API server command."""

import typer

from predindex.api.main import run_api

app = typer.Typer(help="Start the HTTP API")


@app.callback(invoke_without_command=True)
def api(
    ctx: typer.Context,
    host: str | None = typer.Option(None, "--host", help="Bind host (default from config)"),
    port: int | None = typer.Option(None, "--port", help="Bind port (default from config)"),
    with_indexer: bool = typer.Option(
        False, "--with-indexer", help="Run the reconciliation loop and expiry sweeper in the same process",
    ),
) -> None:
    if ctx.invoked_subcommand is not None:
        return
    settings = ctx.obj["settings"]
    if with_indexer and not settings.package_id:
        typer.echo("Configuration error: chain.package_id is not set (or PACKAGE_ID env var)")
        raise typer.Exit(1)
    run_api(
        host=host or settings.api_host,
        port=port or settings.api_port,
        with_indexer=with_indexer,
        profile=ctx.obj.get("profile"),
    )
