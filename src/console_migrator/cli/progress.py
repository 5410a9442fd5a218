"""Progress display for migration runs."""

from __future__ import annotations

from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)

from ..models import ProgressEvent, Stage

_DESCRIPTIONS = {
    Stage.SCANNING: "Scanning",
    Stage.MIGRATING: "Migrating",
    Stage.VALIDATING: "Validating",
    Stage.COMPLETE: "Done",
}


class MigrationProgress:
    """Rich progress bar driven by orchestrator ProgressEvents.

    Instances are callables, so they register directly as listeners::

        with MigrationProgress(console) as progress:
            api.migrate(root, listeners=[progress])
    """

    def __init__(self, console: Console | None = None):
        self.console = console or Console()
        self._progress: Progress | None = None
        self._task_id: TaskID | None = None

    def __enter__(self) -> "MigrationProgress":
        self.start()
        return self

    def __exit__(self, *exc) -> None:
        self.stop()

    def start(self) -> None:
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold]{task.description}"),
            BarColumn(bar_width=40, complete_style="cyan", finished_style="green"),
            TaskProgressColumn(),
            TimeElapsedColumn(),
            console=self.console,
            transient=False,
        )
        self._progress.start()
        self._task_id = self._progress.add_task("Starting...", total=None)

    def __call__(self, event: ProgressEvent) -> None:
        if self._progress is None or self._task_id is None:
            return
        description = _DESCRIPTIONS.get(event.stage, event.stage.value.title())
        if event.component is not None:
            description = f"{description} {event.component.value}"
        if event.stage is Stage.COMPLETE:
            description = f"[green]Done![/] {event.migrated_calls} call(s) migrated"
        elif event.migrated_calls:
            description = f"{description} ({event.migrated_calls} migrated)"
        self._progress.update(
            self._task_id,
            total=max(event.total_files, 1),
            completed=event.processed_files if event.total_files else 1,
            description=description,
        )

    def stop(self) -> None:
        if self._progress is not None:
            self._progress.stop()
            self._progress = None
        self.console.print()
