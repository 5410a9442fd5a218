"""Cleanup command."""

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
def cleanup(
    ctx: typer.Context,
    project: Path = project_option(),
    run_id: Optional[str] = typer.Option(
        None,
        "--run-id",
        help="Only delete this run's backups (default: every run)",
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
    Delete retained backups. Cleaned runs can no longer be rolled back.

    [bold cyan]Examples:[/bold cyan]

      console-migrator cleanup

      console-migrator cleanup --run-id migration-20240101T120000-000000-abc123 --force
    """
    logger = setup_logging(verbose=verbose)
    if not force:
        scope = f"run {run_id}" if run_id else "every run"
        typer.confirm(f"Delete backups of {scope}?", abort=True)

    try:
        removed = api.cleanup(project, run_id=run_id, config=resolve_config(ctx, project, verbose))
    except MigratorError as e:
        fail(e, logger, verbose)

    for rid, count in removed.items():
        console.print(f"  [green]removed[/green] {count} backup(s) of {escape(rid)}")
    console.print(f"[green]{sum(removed.values())} backup(s) deleted[/green]")
