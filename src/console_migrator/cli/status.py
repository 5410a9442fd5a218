"""Status command -- list recorded migration runs."""

import json
from dataclasses import asdict
from pathlib import Path

import typer
from rich.table import Table

from .. import api
from ..exceptions import MigratorError
from ..logging_config import setup_logging
from . import app
from ._common import console, fail, project_option, resolve_config


@app.command()
def status(
    ctx: typer.Context,
    project: Path = project_option(),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output in machine-readable JSON format",
    ),
):
    """
    List past migration runs stored under .console-migrator/runs.

    [bold cyan]Examples:[/bold cyan]

      console-migrator status

      console-migrator status --json
    """
    logger = setup_logging(verbose=False)
    try:
        runs = api.status(project, config=resolve_config(ctx, project))
    except MigratorError as e:
        fail(e, logger)

    if json_output:
        print(json.dumps([asdict(r) for r in runs], indent=2))
        return

    if not runs:
        console.print(
            "[yellow]No migration runs found.[/yellow] "
            "Run [bold]console-migrator migrate[/bold] first."
        )
        return

    table = Table(title="Migration runs")
    table.add_column("Run", style="bold")
    table.add_column("Date")
    table.add_column("State")
    table.add_column("Files", justify="right")
    table.add_column("Migrated", justify="right", style="green")
    table.add_column("Skipped", justify="right", style="yellow")
    table.add_column("Failed", justify="right", style="red")
    table.add_column("Coverage", justify="right")
    table.add_column("Backups", justify="right")
    for run in runs:
        state_style = {"COMPLETE": "green", "FAILED": "red"}.get(run.state, "yellow")
        table.add_row(
            run.run_id,
            run.timestamp[:19],
            f"[{state_style}]{run.state}[/]",
            str(run.files_processed),
            str(run.calls_migrated),
            str(run.calls_skipped),
            str(run.failed_files),
            f"{run.coverage:.1f}%",
            str(run.backups_retained),
        )
    console.print(table)
