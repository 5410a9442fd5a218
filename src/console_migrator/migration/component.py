"""Per-component, per-file migration.

Each file goes through scan -> backup -> rewrite -> atomic write and ends up
as exactly one :class:`MigrationRecord`. File-level problems become failed or
partial records; only :class:`OrchestrationError` (backup store or
filesystem unusable) leaves this module.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

from ..components import DirectoryClassifier, FileClassifier
from ..config import MigrationConfig, default_config
from ..exceptions import MigratorError, OrchestrationError, ScanError
from ..logging_config import get_logger
from ..models import ComponentTag, FileStatus, MigrationRecord, content_hash
from ..rewriting import Rewriter
from ..scanning import CallSiteScanner, decode_source
from ..storage import BackupStore, atomic_write_bytes
from .stats import MigrationStatistics

logger = get_logger(__name__)

StopCheck = Callable[[], bool]


class ComponentMigrationSystem:
    """Migrates the files of one component at a time, sequentially."""

    def __init__(
        self,
        project_root: Union[str, Path],
        config: Optional[MigrationConfig] = None,
        classifier: Optional[FileClassifier] = None,
        backups: Optional[BackupStore] = None,
        stats: Optional[MigrationStatistics] = None,
    ):
        self.config = config or default_config
        self.project_root = Path(project_root).resolve()
        self.classifier = classifier or DirectoryClassifier(self.config)
        self.scanner = CallSiteScanner(self.config)
        self.rewriter = Rewriter(self.config)
        self.backups = backups or BackupStore(self.project_root, self.config)
        self.stats = stats or MigrationStatistics()

    def _relpath(self, path: Path) -> str:
        return self.backups.relpath(path)

    def files_for(self, component: ComponentTag) -> List[Path]:
        return self.classifier.files_for(self.project_root, component)

    # ── Migration ──────────────────────────────────────────────

    def migrate_component(
        self,
        component: ComponentTag,
        run_id: str,
        should_stop: Optional[StopCheck] = None,
        files: Optional[Sequence[Path]] = None,
        into: Optional[List[MigrationRecord]] = None,
    ) -> List[MigrationRecord]:
        """Migrate every file of ``component``.

        ``should_stop`` is checked before each file; once it returns True the
        remaining files are left untouched and the records so far returned.
        Records are appended to ``into`` as each file finishes, so a caller
        still holds them when :class:`OrchestrationError` interrupts the loop.
        """
        paths = list(files) if files is not None else self.files_for(component)
        records: List[MigrationRecord] = into if into is not None else []
        for path in paths:
            if should_stop is not None and should_stop():
                logger.warning(
                    f"{component.value}: stopped after {len(records)} of {len(paths)} files"
                )
                break
            records.append(self.migrate_file(path, component, run_id))
        return records

    def migrate_file(self, path: Path, component: ComponentTag, run_id: str) -> MigrationRecord:
        path = Path(path)
        rel = self._relpath(path)

        try:
            data = self.scanner.read_bytes(path)
            text = decode_source(data, path)
        except ScanError as e:
            logger.warning(f"{rel}: {e.reason}")
            return self._failed(rel, component, "", 0, f"scan-failed: {e.reason}")

        original_hash = content_hash(data)
        sites = self.scanner.scan(text, rel)
        if not sites:
            record = MigrationRecord(
                path=rel,
                component=component,
                original_hash=original_hash,
                calls_found=0,
                calls_migrated=0,
                calls_skipped=0,
                patterns=[],
                success=True,
                status=FileStatus.SUCCESS,
            )
            self.stats.record_file(record)
            return record

        if not any(s.resolved for s in sites):
            record = self._failed(
                rel,
                component,
                original_hash,
                len(sites),
                "no call site could be delimited",
                issues=[f"{rel}:{s.line}: {s.pattern} skipped, manual review" for s in sites],
            )
            self.stats.record_file(record)
            return record

        entry = self.backups.backup(path, run_id, component)
        result = self.rewriter.rewrite(text, sites, component, rel)

        try:
            atomic_write_bytes(path, result.content.encode("utf-8"))
        except OSError as e:
            logger.error(f"{rel}: write failed ({e}), restoring from backup")
            self._restore_after_write_failure(path, rel, run_id, original_hash)
            return self._failed(rel, component, original_hash, len(sites), f"write-failed: {e}")

        status = FileStatus.PARTIAL if result.skipped else FileStatus.SUCCESS
        record = MigrationRecord(
            path=rel,
            component=component,
            original_hash=original_hash,
            calls_found=len(sites),
            calls_migrated=len(result.migrated),
            calls_skipped=len(result.skipped),
            patterns=result.patterns,
            success=not result.skipped,
            status=status,
            issues=result.issues,
            backup_path=entry.backup_path,
        )
        self.stats.record_sites(component, result.migrated)
        self.stats.record_file(record)
        logger.info(
            f"{rel}: migrated {record.calls_migrated}/{record.calls_found} call(s)"
            + (f", {record.calls_skipped} skipped" if record.calls_skipped else "")
        )
        return record

    def _restore_after_write_failure(
        self, path: Path, rel: str, run_id: str, original_hash: str
    ) -> None:
        try:
            self.backups.restore(path, run_id)
            return
        except (MigratorError, OSError) as e:
            restore_error = e
        # An atomic write that failed leaves the original in place
        try:
            current = content_hash(path.read_bytes())
        except OSError:
            current = None
        if current == original_hash:
            self.backups.discard(path, run_id)
            return
        raise OrchestrationError(
            f"Cannot restore {rel} after a failed write",
            details={"run_id": run_id, "error": str(restore_error)},
        )

    def _failed(
        self,
        rel: str,
        component: ComponentTag,
        original_hash: str,
        calls_found: int,
        error: str,
        issues: Optional[List[str]] = None,
    ) -> MigrationRecord:
        return MigrationRecord(
            path=rel,
            component=component,
            original_hash=original_hash,
            calls_found=calls_found,
            calls_migrated=0,
            calls_skipped=calls_found,
            patterns=[],
            success=False,
            status=FileStatus.FAILED,
            error=error,
            issues=issues or [],
        )

    # ── Preview ────────────────────────────────────────────────

    def preview_component(
        self, component: ComponentTag, files: Optional[Sequence[Path]] = None
    ) -> List[MigrationRecord]:
        """Records describing what :meth:`migrate_component` would do. Writes nothing."""
        paths = list(files) if files is not None else self.files_for(component)
        records: List[MigrationRecord] = []
        for path in paths:
            rel = self._relpath(Path(path))
            try:
                text, sites = self.scanner.scan_file(Path(path), rel)
            except ScanError as e:
                records.append(self._failed(rel, component, "", 0, f"scan-failed: {e.reason}"))
                continue
            original_hash = content_hash(text.encode("utf-8"))
            if sites and not any(s.resolved for s in sites):
                records.append(
                    self._failed(rel, component, original_hash, len(sites), "no call site could be delimited")
                )
                continue
            result = self.rewriter.rewrite(text, sites, component, rel)
            records.append(
                MigrationRecord(
                    path=rel,
                    component=component,
                    original_hash=original_hash,
                    calls_found=len(sites),
                    calls_migrated=len(result.migrated),
                    calls_skipped=len(result.skipped),
                    patterns=result.patterns,
                    success=not result.skipped,
                    status=FileStatus.PARTIAL if result.skipped else FileStatus.SUCCESS,
                    issues=result.issues,
                )
            )
        return records
