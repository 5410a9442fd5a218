"""Rich/text formatter for migration reports."""

from io import StringIO
from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from ..models import FileStatus, MigrationReport
from .base import BaseFormatter


def _state_label(report: MigrationReport) -> str:
    if report.dry_run:
        return "[cyan]DRY RUN[/cyan]"
    if report.state == "COMPLETE":
        if report.validation is not None and not report.validation.passed:
            return "[yellow]COMPLETE (with rollbacks)[/yellow]"
        return "[green]COMPLETE[/green]"
    if report.state == "FAILED":
        return "[red bold]FAILED[/red bold]"
    return f"[yellow]{report.state}[/yellow]"


def _check_label(passed: Optional[bool]) -> str:
    if passed is None:
        return "[dim]not run[/dim]"
    return "[green]passed[/green]" if passed else "[red]failed[/red]"


class TextFormatter(BaseFormatter):
    """Summary panel, component table, validation status and recommendations.

    ``render`` prints with colour to a terminal console; ``format`` returns
    the same layout as plain text.
    """

    def __init__(self, console: Optional[Console] = None, width: int = 100):
        self.console = console
        self.width = width

    def render(self, report: MigrationReport) -> None:
        self._print(self.console or Console(), report)

    def format(self, report: MigrationReport) -> str:
        buffer = StringIO()
        console = Console(file=buffer, width=self.width, color_system=None, force_terminal=False)
        self._print(console, report)
        return buffer.getvalue()

    def _print(self, console: Console, report: MigrationReport) -> None:
        totals = report.totals()
        summary = (
            f"Run: [bold]{report.run_id}[/bold]\n"
            f"Date: {report.timestamp}\n"
            f"Status: {_state_label(report)}\n"
            f"Duration: {report.duration_seconds:.2f}s\n\n"
            f"Files processed: {totals['files_processed']}  "
            f"([green]{totals['success_files']} ok[/green], "
            f"[yellow]{totals['partial_files']} partial[/yellow], "
            f"[red]{totals['failed_files']} failed[/red])\n"
            f"Calls found: {totals['calls_found']}  "
            f"migrated: {totals['calls_migrated']}  skipped: {totals['calls_skipped']}\n"
            f"Coverage: [bold]{report.coverage:.1f}%[/bold]"
        )
        if report.error:
            summary += f"\n[red]Error: {escape(report.error)}[/red]"
        console.print(
            Panel(summary, title="[bold cyan]Console Migration Report[/bold cyan]", expand=False)
        )

        table = Table(title="Component breakdown", show_lines=False)
        table.add_column("Component", style="bold")
        table.add_column("Files", justify="right")
        table.add_column("Found", justify="right")
        table.add_column("Migrated", justify="right", style="green")
        table.add_column("Skipped", justify="right", style="yellow")
        table.add_column("Failed", justify="right", style="red")
        for name, records in report.components.items():
            if not records:
                continue
            table.add_row(
                name,
                str(len(records)),
                str(sum(r.calls_found for r in records)),
                str(sum(r.calls_migrated for r in records)),
                str(sum(r.calls_skipped for r in records)),
                str(sum(1 for r in records if r.status is FileStatus.FAILED)),
            )
        if table.row_count:
            console.print(table)

        if report.method_breakdown:
            console.print("\n[bold]Patterns applied[/bold] (files)")
            for pattern, count in sorted(report.method_breakdown.items()):
                console.print(f"  {pattern}: {count}")

        if report.validation is not None or not report.dry_run:
            checks = report.validation.checks if report.validation else {}
            console.print("\n[bold]Validation[/bold]")
            for name in ("syntax", "imports", "equivalence", "performance"):
                console.print(f"  {name.capitalize()}: {_check_label(checks.get(name))}")
            if report.validation and report.validation.files_rolled_back:
                console.print(
                    f"  Rolled back: {escape(', '.join(report.validation.files_rolled_back))}"
                )
            if report.validation and report.validation.warnings:
                console.print("\n[bold]Warnings[/bold]")
                for warning in report.validation.warnings:
                    console.print(f"  ! {warning}", markup=False, highlight=False)

        issues = [i for r in report.records for i in r.issues]
        errors = [f"{r.path}: {r.error}" for r in report.records if r.error]
        if errors:
            console.print("\n[bold]Failed files[/bold]")
            for line in errors:
                console.print(f"  x {line}", markup=False, highlight=False)
        if issues:
            console.print("\n[bold]Manual review[/bold]")
            for issue in issues:
                console.print(f"  - {issue}", markup=False, highlight=False)

        if report.rollback_script:
            console.print(f"\nRollback script: {report.rollback_script}", markup=False, highlight=False)

        if report.recommendations:
            console.print("\n[bold]Recommendations[/bold]")
            for rec in report.recommendations:
                console.print(f"  * {rec}")
