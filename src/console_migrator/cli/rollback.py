"""Rollback command."""

from pathlib import Path
from typing import Optional

import typer
from rich.markup import escape

from .. import api
from ..exceptions import MigratorError
from ..logging_config import setup_logging
from . import app
from ._common import console, fail, project_option, resolve_config


@app.command()
def rollback(
    ctx: typer.Context,
    target: str = typer.Argument(
        ...,
        help='"all", a component name, or a file path',
    ),
    project: Path = project_option(),
    run_id: Optional[str] = typer.Option(
        None,
        "--run-id",
        help="Run to roll back (default: latest run with backups)",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Do not ask for confirmation",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
):
    """
    Restore original file content from a run's backups.

    [bold cyan]Examples:[/bold cyan]

      console-migrator rollback all

      console-migrator rollback Core --run-id migration-20240101T120000-000000-abc123

      console-migrator rollback src/core/engine.ts --force
    """
    logger = setup_logging(verbose=verbose)
    if not force:
        scope = f"run {run_id}" if run_id else "the latest run"
        typer.confirm(f"Roll back {target} from {scope}?", abort=True)

    try:
        result = api.rollback(target, project, run_id=run_id, config=resolve_config(ctx, project, verbose))
    except MigratorError as e:
        fail(e, logger, verbose)

    for path in result.restored:
        console.print(f"  [green]restored[/green] {escape(path)}")
    for path in result.already_restored:
        console.print(f"  [dim]already restored[/dim] {escape(path)}")
    for path, reason in result.failed.items():
        console.print(f"  [red]failed[/red] {escape(path)}: {escape(reason)}")

    if not result.success:
        console.print(f"[red bold]{len(result.failed)} file(s) could not be restored[/red bold]")
        raise typer.Exit(1)
    console.print(f"[green]{len(result.restored)} file(s) restored[/green]")
