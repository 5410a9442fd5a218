"""Run-level coordination of a migration.

The orchestrator walks components in their fixed order, hands each to the
:class:`ComponentMigrationSystem`, validates every file that was rewritten,
rolls back files that fail validation and finally persists the report and
rollback artifacts. Its state machine::

    IDLE -> SCANNING -> MIGRATING -> VALIDATING -> REPORTING -> COMPLETE
                            |             |
                            +--> FAILED <-+

A dry run goes straight from SCANNING to COMPLETE without writing anything.
"""

from __future__ import annotations

import dataclasses
import threading
import time
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Tuple, Union

from ..components import DirectoryClassifier, FileClassifier
from ..config import MigrationConfig, default_config
from ..exceptions import (
    InvalidPathError,
    MigratorError,
    MigrationFailed,
    OrchestrationError,
    ScanError,
    ValidationError,
)
from ..logging_config import attach_run_log, detach_run_log, get_logger
from ..models import (
    ComponentTag,
    FileStatus,
    FileValidation,
    MigrationRecord,
    MigrationReport,
    ProgressEvent,
    Stage,
    ValidationSummary,
)
from ..scanning import decode_source
from ..storage import BackupStore, RunStore, new_run_id
from ..validation import MigrationValidator
from .component import ComponentMigrationSystem
from .stats import MigrationStatistics

logger = get_logger(__name__)

ProgressListener = Callable[[ProgressEvent], None]

INCOMPLETE = "INCOMPLETE"

_TRANSITIONS: Dict[Stage, Tuple[Stage, ...]] = {
    Stage.IDLE: (Stage.SCANNING,),
    Stage.SCANNING: (Stage.MIGRATING, Stage.COMPLETE),
    Stage.MIGRATING: (Stage.VALIDATING, Stage.REPORTING, Stage.FAILED),
    Stage.VALIDATING: (Stage.REPORTING, Stage.FAILED),
    Stage.REPORTING: (Stage.COMPLETE,),
    Stage.COMPLETE: (),
    Stage.FAILED: (),
}

LARGE_MIGRATION_CALLS = 10000
LARGE_CODEBASE_CALLS = 5000
COVERAGE_TARGET = 95.0


class CancellationToken:
    """Thread-safe flag checked between files. Callable as a stop check."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def __call__(self) -> bool:
        return self._event.is_set()


class MigrationOrchestrator:
    """Drives one migration run from scanning to the persisted report."""

    def __init__(
        self,
        project_root: Union[str, Path],
        config: Optional[MigrationConfig] = None,
        classifier: Optional[FileClassifier] = None,
        validator: Optional[MigrationValidator] = None,
        token: Optional[CancellationToken] = None,
    ):
        self.config = config or default_config
        self.project_root = Path(project_root).resolve()
        if not self.project_root.is_dir():
            raise InvalidPathError(self.project_root, "not a directory")
        self.classifier = classifier or DirectoryClassifier(self.config)
        self.backups = BackupStore(self.project_root, self.config)
        self.runs = RunStore(self.project_root, self.config)
        self.stats = MigrationStatistics()
        self.system = ComponentMigrationSystem(
            self.project_root,
            self.config,
            classifier=self.classifier,
            backups=self.backups,
            stats=self.stats,
        )
        self.validator = validator or MigrationValidator(self.config)
        self.token = token or CancellationToken()
        self.state = Stage.IDLE
        self.run_id: Optional[str] = None
        self._listeners: List[ProgressListener] = []
        self._validation_results: List[FileValidation] = []
        self._rolled_back: List[str] = []

    # ── Observers ──────────────────────────────────────────────

    def add_listener(self, listener: ProgressListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: ProgressListener) -> None:
        self._listeners.remove(listener)

    def _emit(self, event: ProgressEvent) -> None:
        for listener in self._listeners:
            listener(event)

    # ── State machine ──────────────────────────────────────────

    def _transition(self, target: Stage) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise OrchestrationError(
                f"Illegal state transition {self.state.value} -> {target.value}"
            )
        logger.debug(f"State {self.state.value} -> {target.value}")
        self.state = target

    def cancel(self) -> None:
        self.token.cancel()

    # ── Run ────────────────────────────────────────────────────

    def _select(self, components: Optional[Iterable[ComponentTag]]) -> List[ComponentTag]:
        if components is None:
            return list(ComponentTag)
        wanted = set(components)
        return [tag for tag in ComponentTag if tag in wanted]

    def run(
        self,
        components: Optional[Iterable[ComponentTag]] = None,
        dry_run: bool = False,
    ) -> MigrationReport:
        """Execute a run and return its report.

        Raises:
            OrchestrationError: If the orchestrator was already used
            MigrationFailed: If the backup store or filesystem failed; the
                partial report is attached and has been persisted
        """
        if self.state is not Stage.IDLE:
            raise OrchestrationError("An orchestrator runs only once")
        started = time.monotonic()
        self.run_id = new_run_id()
        selected = self._select(components)

        self._transition(Stage.SCANNING)
        files = {tag: self.system.files_for(tag) for tag in selected}
        total = sum(len(paths) for paths in files.values())
        logger.info(f"Run {self.run_id}: {total} candidate file(s) in {len(selected)} component(s)")
        self._emit(ProgressEvent(Stage.SCANNING, 0, total))

        if dry_run:
            return self._preview(files, total, started)

        handler = attach_run_log(self.runs.log_path(self.run_id))
        records: Dict[str, List[MigrationRecord]] = {}
        validation: Optional[ValidationSummary] = None
        try:
            self._transition(Stage.MIGRATING)
            processed = 0
            migrated_calls = 0
            for tag in selected:
                if self.token.cancelled:
                    break
                recs = records.setdefault(tag.value, [])
                self.system.migrate_component(
                    tag, self.run_id, should_stop=self.token, files=files[tag], into=recs
                )
                processed += len(recs)
                migrated_calls += sum(r.calls_migrated for r in recs)
                self._emit(ProgressEvent(Stage.MIGRATING, processed, total, tag, migrated_calls))

            if self.config.validate:
                self._transition(Stage.VALIDATING)
                validation = self._validate(records)

            self._transition(Stage.REPORTING)
            report = self._finish(records, validation, started)
            self._transition(Stage.COMPLETE)
            self._emit(ProgressEvent(Stage.COMPLETE, processed, total, None, report.calls_migrated))
            return report
        except OrchestrationError as e:
            logger.error(f"Run {self.run_id} failed: {e}")
            if Stage.FAILED in _TRANSITIONS[self.state]:
                self._transition(Stage.FAILED)
            else:
                self.state = Stage.FAILED
            if validation is None and self._validation_results:
                validation = self.validator.summarize(self._validation_results, self._rolled_back)
            report = self._build_report(
                records, validation, started, state=Stage.FAILED.value, error=str(e)
            )
            try:
                script = self.runs.write_rollback_script(self.run_id, self.backups.entries(self.run_id))
                report = dataclasses.replace(report, rollback_script=str(script))
                self.runs.save_report(report)
            except (MigratorError, OSError) as persist_error:
                logger.error(f"Could not persist report of failed run: {persist_error}")
            raise MigrationFailed(e, report) from e
        finally:
            detach_run_log(handler)

    # ── Phases ─────────────────────────────────────────────────

    def _preview(
        self, files: Dict[ComponentTag, List[Path]], total: int, started: float
    ) -> MigrationReport:
        counts = self.system.scanner.count_calls(p for paths in files.values() for p in paths)
        records: Dict[str, List[MigrationRecord]] = {}
        processed = 0
        for tag, paths in files.items():
            # Files with nothing to migrate are left out of the preview
            with_calls = [p for p in paths if counts.get(p, 0) != 0]
            records[tag.value] = self.system.preview_component(tag, with_calls)
            processed += len(paths)
            self._emit(ProgressEvent(Stage.SCANNING, processed, total, tag))
        self._transition(Stage.COMPLETE)
        report = self._build_report(records, None, started, state=Stage.COMPLETE.value, dry_run=True)
        logger.info(f"Dry run: {report.calls_found} call(s) in {report.files_processed} file(s)")
        return report

    def _validate(self, records: Dict[str, List[MigrationRecord]]) -> ValidationSummary:
        """Validate every backed-up file, rolling back the ones that fail.

        ``records`` is updated in place as each file is settled, so an
        :class:`OrchestrationError` part way through leaves it accurate.
        """
        to_validate = sum(1 for rs in records.values() for r in rs if r.backup_path)
        results = self._validation_results
        rolled_back = self._rolled_back
        for name, recs in records.items():
            for index, record in enumerate(recs):
                if record.backup_path is None:
                    continue
                try:
                    results.append(self._validate_record(record))
                except ValidationError as e:
                    results.append(e.result)
                    try:
                        self.backups.restore(record.path, self.run_id)
                    except (MigratorError, OSError) as restore_error:
                        raise OrchestrationError(
                            f"Cannot roll back {record.path} after failed validation",
                            details={"error": str(restore_error)},
                        )
                    rolled_back.append(record.path)
                    self._forget(record)
                    recs[index] = dataclasses.replace(
                        record,
                        success=False,
                        status=FileStatus.FAILED,
                        calls_migrated=0,
                        calls_skipped=record.calls_found,
                        patterns=[],
                        backup_path=None,
                        error="validation-failed: " + "; ".join(e.issues),
                    )
                    logger.warning(f"{record.path}: rolled back after failed validation")
                    continue
                if self.config.backup_retention == "on-failure-only":
                    self.backups.discard(record.path, self.run_id)
                    recs[index] = dataclasses.replace(record, backup_path=None)
            self._emit(
                ProgressEvent(
                    Stage.VALIDATING,
                    len(results),
                    to_validate,
                    ComponentTag.parse(name),
                )
            )
        return self.validator.summarize(results, rolled_back)

    def _validate_record(self, record: MigrationRecord) -> FileValidation:
        original_path = self.project_root / record.backup_path
        current_path = self.project_root / record.path
        try:
            original = decode_source(original_path.read_bytes(), original_path)
            migrated = decode_source(current_path.read_bytes(), current_path)
        except (OSError, ScanError) as e:
            raise OrchestrationError(
                f"Cannot read {record.path} for validation", details={"error": str(e)}
            )
        return self.validator.require_valid(record.path, original, migrated, record.component)

    def _forget(self, record: MigrationRecord) -> None:
        """Drop a rolled-back file's calls from the statistics."""
        original_path = self.project_root / record.path
        try:
            text = decode_source(original_path.read_bytes(), original_path)
        except (OSError, ScanError):
            return
        sites = self.system.scanner.scan(text, record.path)
        self.stats.forget_sites(record.component, [s for s in sites if s.resolved])

    def _finish(
        self,
        records: Dict[str, List[MigrationRecord]],
        validation: Optional[ValidationSummary],
        started: float,
    ) -> MigrationReport:
        cancelled = self.token.cancelled
        state = INCOMPLETE if cancelled else Stage.COMPLETE.value
        report = self._build_report(records, validation, started, state=state)
        script = self.runs.write_rollback_script(self.run_id, self.backups.entries(self.run_id))
        report = dataclasses.replace(report, rollback_script=str(script))
        self.runs.save_report(report)
        logger.info(
            f"Run {self.run_id} {state.lower()}: {report.calls_migrated}/{report.calls_found} "
            f"call(s) migrated in {report.files_processed} file(s)"
        )
        return report

    def _build_report(
        self,
        records: Dict[str, List[MigrationRecord]],
        validation: Optional[ValidationSummary],
        started: float,
        state: str,
        dry_run: bool = False,
        error: Optional[str] = None,
    ) -> MigrationReport:
        report = MigrationReport(
            run_id=self.run_id or "",
            timestamp=datetime.now().isoformat(),
            project_root=str(self.project_root),
            state=state,
            completed=state == Stage.COMPLETE.value,
            dry_run=dry_run,
            components={name: list(recs) for name, recs in records.items()},
            validation=validation,
            duration_seconds=round(time.monotonic() - started, 3),
            error=error,
            statistics=self.stats.to_dict(),
        )
        return dataclasses.replace(report, recommendations=recommendations_for(report))


def recommendations_for(report: MigrationReport) -> List[str]:
    """Follow-up advice derived from a report."""
    recs: List[str] = []
    if report.dry_run:
        if report.calls_found > LARGE_CODEBASE_CALLS:
            recs.append("Large codebase detected: consider migrating one component at a time")
        if report.components.get(ComponentTag.MCP.value):
            recs.append("MCP components detected: their logging must go to stderr")
        if report.calls_skipped:
            recs.append(f"{report.calls_skipped} call site(s) cannot be delimited and need manual review")
        return recs

    if report.state == INCOMPLETE:
        recs.append("Run was cancelled: re-run the migration to process the remaining files")
    if report.calls_migrated > LARGE_MIGRATION_CALLS:
        recs.append("Large number of calls migrated: monitor the performance impact")
    if report.calls_skipped:
        recs.append(f"Review {report.calls_skipped} call site(s) left for manual review")
    if report.failed_files:
        recs.append(f"Investigate {report.failed_files} file(s) that could not be migrated")
    if report.validation is not None:
        if report.validation.files_rolled_back:
            recs.append(
                f"{len(report.validation.files_rolled_back)} file(s) were rolled back after failed validation"
            )
        if report.validation.warnings:
            recs.append("Review validation warnings for potential issues")
    if report.calls_found and report.coverage < COVERAGE_TARGET:
        recs.append(
            f"Migration coverage is {report.coverage:.1f}%: consider another pass after manual fixes"
        )
    if report.calls_migrated:
        recs.append("Run the project's test suite before removing backups")
    return recs
