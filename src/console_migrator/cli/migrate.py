"""Migrate command."""

from pathlib import Path
from typing import List, Optional

import typer

from .. import api
from ..exceptions import MigrationFailed, MigratorError
from ..formatters import TextFormatter
from ..logging_config import setup_logging
from . import app
from ._common import console, fail, project_option, resolve_config
from .progress import MigrationProgress


@app.command()
def migrate(
    ctx: typer.Context,
    project: Path = project_option(),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        "-n",
        help="Scan and report without touching any file",
    ),
    component: Optional[List[str]] = typer.Option(
        None,
        "--component",
        help="Only migrate this component (repeatable)",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging",
    ),
    no_progress: bool = typer.Option(
        False,
        "--no-progress",
        help="Hide the progress bar",
    ),
):
    """
    Rewrite console calls into component-logger calls.

    Every modified file is backed up first. Files that fail validation are
    restored automatically; the rest can be undone with [bold]rollback[/bold]
    or the generated rollback.sh.

    [bold cyan]Examples:[/bold cyan]

      console-migrator migrate --dry-run

      console-migrator migrate --component Core --component MCP

      console-migrator migrate -p ../service --verbose
    """
    logger = setup_logging(verbose=verbose)
    try:
        config = resolve_config(ctx, project, verbose)
        if no_progress or verbose:
            report = api.migrate(project, dry_run=dry_run, component=component or None, config=config)
        else:
            with MigrationProgress(console) as progress:
                report = api.migrate(
                    project,
                    dry_run=dry_run,
                    component=component or None,
                    config=config,
                    listeners=[progress],
                )
    except MigrationFailed as e:
        TextFormatter(console).render(e.report)
        fail(e, logger, verbose)
    except MigratorError as e:
        fail(e, logger, verbose)

    TextFormatter(console).render(report)
    if report.validation is not None and not report.validation.passed:
        raise typer.Exit(1)
