"""Markets subcommand: add, list, remove."""

from __future__ import annotations

import typer

from predindex.storage.db import get_connection, init_schema
from predindex.storage.markets import delete_market, insert_market, list_markets

app = typer.Typer(help="Tracked market management")


@app.command("add")
def add(
    ctx: typer.Context,
    name: str = typer.Option(..., "--name", "-n", help="Human-readable market question"),
    address: str = typer.Option(..., "--address", "-a", help="On-chain market object id"),
    option: list[str] = typer.Option(
        ["Yes", "No"], "--option", "-o", help="Option label (repeat for each option, in order)"
    ),
    end_date: str | None = typer.Option(None, "--end-date", help="RFC 3339 timestamp or YYYY-MM-DD"),
    description: str | None = typer.Option(None, "--description", "-d"),
) -> None:
    """Import a deployed market so the indexer starts tracking it."""
    if len(option) < 2:
        typer.echo("A market needs at least two options.")
        raise typer.Exit(1)
    settings = ctx.obj["settings"]
    conn = get_connection(settings.db_path)
    init_schema(conn)
    try:
        market = insert_market(
            conn, name=name, address=address, options=option, description=description, end_date=end_date
        )
        typer.echo(f"Added market {market.market_id}: {market.name} ({market.address})")
    finally:
        conn.close()


@app.command("list")
def list_cmd(ctx: typer.Context) -> None:
    """List markets with cached volume, odds and resolution."""
    settings = ctx.obj["settings"]
    conn = get_connection(settings.db_path)
    init_schema(conn)
    try:
        rows = list_markets(conn)
        for m in rows:
            odds = ", ".join(f"{p:.3f}" for p in (m.odds or []))
            state = f"resolved winner={m.winner}" if m.resolved else "active"
            typer.echo(f"  {m.market_id:>4}  {m.total_volume:>12.4f}  [{odds}]  {state}  {m.name[:50]}")
        typer.echo(f"Total: {len(rows)} markets")
    finally:
        conn.close()


@app.command("remove")
def remove(
    ctx: typer.Context,
    market_id: int = typer.Argument(..., help="Local market id"),
) -> None:
    """Delete a market and its stored history."""
    settings = ctx.obj["settings"]
    conn = get_connection(settings.db_path)
    init_schema(conn)
    try:
        if not delete_market(conn, market_id):
            typer.echo(f"Market not found: {market_id}")
            raise typer.Exit(1)
        typer.echo(f"Removed market {market_id}")
    finally:
        conn.close()
