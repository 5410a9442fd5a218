"""Root callback: global options."""

from pathlib import Path
from typing import Optional

import typer

from . import app
from ._common import console


@app.callback(invoke_without_command=True)
def root(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None,
        "-c",
        "--config",
        help="Configuration file (TOML)",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    version: bool = typer.Option(
        False,
        "--version",
        help="Show version and exit",
    ),
):
    """
    Migrate console.log / info / warn / error / debug calls onto a
    component logger facade, with backups, validation and rollback.

    [bold cyan]Examples:[/bold cyan]

      console-migrator migrate --dry-run

      console-migrator migrate --component Core

      console-migrator rollback all
    """
    ctx.ensure_object(dict)
    ctx.obj["config"] = config

    if version:
        from .. import __version__

        console.print(
            f"[bold cyan]Console Migrator[/bold cyan] version [green]{__version__}[/green]"
        )
        raise typer.Exit(0)

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        raise typer.Exit(0)
