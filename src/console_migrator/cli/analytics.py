"""Analytics command -- remaining console calls across the tree."""

import json
from pathlib import Path

import typer
from rich.markup import escape
from rich.table import Table

from .. import api
from ..exceptions import MigratorError
from ..logging_config import setup_logging
from . import app
from ._common import console, fail, project_option, resolve_config


@app.command()
def analytics(
    ctx: typer.Context,
    project: Path = project_option(),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output in machine-readable JSON format",
    ),
):
    """
    Count console calls still in the tree, per component and method.

    [bold cyan]Examples:[/bold cyan]

      console-migrator analytics

      console-migrator analytics --json
    """
    logger = setup_logging(verbose=False)
    try:
        result = api.analytics(project, config=resolve_config(ctx, project))
    except MigratorError as e:
        fail(e, logger)

    if json_output:
        print(json.dumps(result.to_dict(), indent=2))
        return

    console.print(
        f"[bold]Remaining calls:[/bold] {result.remaining_calls} in "
        f"{result.files_with_calls}/{result.files_scanned} file(s)  "
        f"[bold]Migrated:[/bold] {result.migrated_calls}  "
        f"[bold]Completion:[/bold] {result.completion:.1f}%"
    )

    if result.remaining_by_component:
        table = Table(title="By component")
        table.add_column("Component", style="bold")
        table.add_column("Remaining", justify="right", style="yellow")
        table.add_column("Migrated", justify="right", style="green")
        names = sorted(set(result.remaining_by_component) | set(result.migrated_by_component))
        for name in names:
            table.add_row(
                name,
                str(result.remaining_by_component.get(name, 0)),
                str(result.migrated_by_component.get(name, 0)),
            )
        console.print(table)

    if result.remaining_by_pattern:
        console.print("\n[bold]By method[/bold]")
        for pattern, count in sorted(result.remaining_by_pattern.items(), key=lambda kv: -kv[1]):
            console.print(f"  {pattern}: {count}")

    if result.distribution:
        d = result.distribution
        console.print(
            f"\n[bold]Calls per file[/bold]  mean {d['mean']}  median {d['median']}  "
            f"p90 {d['p90']}  max {d['max']:.0f}"
        )

    if result.top_files:
        console.print("\n[bold]Top files[/bold]")
        for path, count in result.top_files:
            console.print(f"  {count:>5}  {escape(path)}")

    if result.recommendations:
        console.print("\n[bold]Recommendations[/bold]")
        for rec in result.recommendations:
            console.print(f"  * {rec}")
