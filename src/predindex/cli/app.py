"""Root CLI app - entry point and command registration."""

from pathlib import Path

import typer

from predindex.config import configure_logging, get_settings

app = typer.Typer(
    name="predindex",
    help="PredIndex - odds, volume and history read models for on-chain prediction markets.",
    no_args_is_help=True,
)


@app.callback()
def main(
    ctx: typer.Context,
    config_dir: Path | None = typer.Option(
        None, "--config-dir", "-C", help="Config directory (default: ./config or package config)"
    ),
    profile: str | None = typer.Option(
        None, "--profile", "-p", help="Config profile (e.g. dev) to overlay on default.toml"
    ),
) -> None:
    """Configure logging and store options in context."""
    settings = get_settings(profile, config_dir)
    configure_logging(settings)
    ctx.obj = {"settings": settings, "config_dir": config_dir, "profile": profile}


# Subcommands registered from other modules
from predindex.cli import api_cmd, chain, history, markets, run  # noqa: E402

app.add_typer(markets.app, name="markets")
app.add_typer(history.app, name="history")
app.add_typer(run.app, name="run")
app.add_typer(api_cmd.app, name="api")
app.add_typer(chain.app, name="chain")


def main_entry() -> None:
    app()


if __name__ == "__main__":
    main_entry()
