"""Validate command."""

from pathlib import Path
from typing import List, Optional

import typer
from rich.markup import escape

from .. import api
from ..exceptions import MigratorError
from ..logging_config import setup_logging
from . import app
from ._common import console, fail, project_option, resolve_config


@app.command()
def validate(
    ctx: typer.Context,
    project: Path = project_option(),
    component: Optional[List[str]] = typer.Option(
        None,
        "--component",
        help="Only validate this component (repeatable)",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
):
    """
    Re-check migrated files against their backed-up originals.

    Read-only: failing files are listed, not rolled back. Exits 1 on failure.
    """
    logger = setup_logging(verbose=verbose)
    try:
        config = resolve_config(ctx, project, verbose)
        summary = api.validate(project, component=component or None, config=config)
    except MigratorError as e:
        fail(e, logger, verbose)

    console.print(f"[bold]Files validated:[/bold] {summary.files_validated}")
    for name, passed in summary.checks.items():
        label = "[green]passed[/green]" if passed else "[red]failed[/red]"
        console.print(f"  {name.capitalize()}: {label}")
    for issue in summary.issues:
        console.print(f"  [red]x[/red] {escape(issue)}")
    for warning in summary.warnings:
        console.print(f"  [yellow]![/yellow] {escape(warning)}")

    if not summary.passed:
        console.print("[red bold]Validation failed[/red bold]")
        raise typer.Exit(1)
    console.print("[green bold]Validation passed[/green bold]")
