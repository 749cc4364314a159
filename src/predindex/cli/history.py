"""History subcommand: show, export."""

from __future__ import annotations

from datetime import datetime, timezone

import typer

from predindex.history import DEFAULT_RANGE, query_history, resolve_range
from predindex.storage.db import get_connection, init_schema
from predindex.storage.export import export_history_to_parquet
from predindex.storage.markets import get_market

app = typer.Typer(help="Price history queries and export")


@app.command("show")
def show(
    ctx: typer.Context,
    market_id: int = typer.Argument(..., help="Local market id"),
    range_name: str = typer.Option(DEFAULT_RANGE, "--range", "-r", help="5m, 1h, 6h, 1d, 1w or 1M"),
    limit: int = typer.Option(20, "--limit", "-n", help="Show at most the last N points"),
) -> None:
    """Print history points for a lookback range."""
    settings = ctx.obj["settings"]
    conn = get_connection(settings.db_path)
    init_schema(conn)
    try:
        market = get_market(conn, market_id)
        if market is None:
            typer.echo(f"Market not found: {market_id}")
            raise typer.Exit(1)
        range_name, _ = resolve_range(range_name)
        points = query_history(conn, market, range_name)
        typer.echo(f"{market.name}  ({len(points)} points, range {range_name})")
        for p in points[-limit:]:
            when = datetime.fromtimestamp(p.timestamp / 1000, tz=timezone.utc).isoformat()
            odds = ", ".join(f"{o:.4f}" for o in p.odds)
            typer.echo(f"  {when}  [{odds}]  vol={p.volume:.4f}")
    finally:
        conn.close()


@app.command("export")
def export(
    ctx: typer.Context,
    market: int | None = typer.Option(None, "--market", "-m", help="Filter by market id"),
    output: str = typer.Option("history.parquet", "--output", "-o", help="Output path"),
) -> None:
    """Export stored history points to Parquet."""
    settings = ctx.obj["settings"]
    conn = get_connection(settings.db_path)
    init_schema(conn)
    try:
        count = export_history_to_parquet(conn, output, market_id=market)
        typer.echo(f"Exported {count} history points to {output}")
    finally:
        conn.close()
