"""Root Typer app — global options and command group registration."""

from __future__ import annotations

from typing import Optional

import typer

from pocketbase_provider import __version__
from pocketbase_provider.commands import collection, config_cmd
from pocketbase_provider.output.formatter import setup_logging

app = typer.Typer(
    name="pocketbase-provider",
    help="Declarative management of PocketBase collections.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def version_callback(value: bool) -> None:
    if value:
        print(f"pocketbase-provider {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: Optional[bool] = typer.Option(
        None, "--version", "-V", callback=version_callback, is_eager=True, help="Show version and exit."
    ),
    verbose: int = typer.Option(
        0, "--verbose", "-v", count=True, help="Log more (-v info, -vv debug)."
    ),
) -> None:
    """PocketBase collections as code — validate, plan, apply, import."""
    setup_logging(verbose)


app.add_typer(config_cmd.app, name="config")
app.add_typer(collection.app, name="collection")


def main() -> None:
    app()
