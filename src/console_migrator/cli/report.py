"""Report command -- render a run's report."""

from pathlib import Path
from typing import Optional

import click
import typer

from .. import api
from ..exceptions import MigratorError
from ..logging_config import setup_logging
from . import app
from ._common import console, fail, project_option, resolve_config


@app.command()
def report(
    ctx: typer.Context,
    project: Path = project_option(),
    fmt: str = typer.Option(
        "text",
        "--format",
        "-f",
        help="Output format",
        click_type=click.Choice(["text", "json", "html"], case_sensitive=False),
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Write the report to this file instead of stdout",
    ),
    run_id: Optional[str] = typer.Option(
        None,
        "--run-id",
        help="Run to report on (default: latest)",
    ),
):
    """
    Render a migration report as text, JSON or standalone HTML.

    [bold cyan]Examples:[/bold cyan]

      console-migrator report

      console-migrator report --format html --output migration-report.html
    """
    logger = setup_logging(verbose=False)
    try:
        rendered = api.report(
            project,
            fmt=fmt.lower(),
            output_path=output,
            run_id=run_id,
            config=resolve_config(ctx, project),
        )
    except MigratorError as e:
        fail(e, logger)

    if output is not None:
        console.print(f"Report saved to: [bold green]{output}[/bold green]")
    else:
        print(rendered, end="" if rendered.endswith("\n") else "\n")
