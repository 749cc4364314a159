"""Chain subcommand: direct node queries."""

from __future__ import annotations

import asyncio

import typer

from predindex.errors import MalformedSnapshot, TransientChainError
from predindex.ingestion.sui.client import SuiChainReader
from predindex.pricing import compute_prices

app = typer.Typer(help="Query the chain node")


@app.command("gas-price")
def gas_price(ctx: typer.Context) -> None:
    """Print the current reference gas price."""
    settings = ctx.obj["settings"]

    async def _fetch() -> int:
        async with SuiChainReader(settings.rpc_url, timeout=settings.request_timeout_sec) as reader:
            return await reader.get_gas_price()

    try:
        price = asyncio.run(_fetch())
    except TransientChainError as e:
        typer.echo(f"Chain error: {e}")
        raise typer.Exit(1)
    typer.echo(f"Reference gas price: {price}")


@app.command("object")
def show_object(
    ctx: typer.Context,
    address: str = typer.Argument(..., help="Market object id"),
) -> None:
    """Fetch a market object and print its decoded stakes and resolution."""
    settings = ctx.obj["settings"]

    async def _fetch():
        async with SuiChainReader(settings.rpc_url, timeout=settings.request_timeout_sec) as reader:
            return await reader.get_object(address)

    try:
        snapshot = asyncio.run(_fetch())
    except (TransientChainError, MalformedSnapshot) as e:
        typer.echo(f"Chain error: {e}")
        raise typer.Exit(1)
    quote = compute_prices(snapshot.total_stakes) if snapshot.total_stakes else None
    typer.echo(f"Object: {snapshot.object_id}")
    typer.echo(f"Stakes: {snapshot.total_stakes}")
    if quote is not None:
        typer.echo(f"Odds: [{', '.join(f'{o:.4f}' for o in quote.odds)}]  Volume: {quote.volume:.4f}")
    typer.echo(f"Resolved: {snapshot.resolved}  Winner: {snapshot.winner}")
