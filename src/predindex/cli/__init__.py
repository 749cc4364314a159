"""Typer CLI: `predindex`."""
