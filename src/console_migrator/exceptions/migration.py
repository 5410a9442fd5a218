"""Migration errors: scanning, rewriting, validation, orchestration, rollback.

File-level errors (ScanError, RewriteError, ValidationError) are captured in
the file's MigrationRecord. Only OrchestrationError aborts a run.
"""

from pathlib import Path
from typing import TYPE_CHECKING, Optional

from .base import MigratorError

if TYPE_CHECKING:
    from ..models import FileValidation, MigrationReport


class ScanError(MigratorError):
    """Raised when a file cannot be decoded as text."""

    def __init__(self, filepath: Path, reason: str):
        super().__init__(
            f"Cannot scan file: {filepath}",
            details={"filepath": str(filepath), "reason": reason},
        )
        self.filepath = filepath
        self.reason = reason


class RewriteError(MigratorError):
    """Raised when a call site's argument list cannot be delimited."""

    def __init__(self, filepath: str, line: int, reason: str):
        super().__init__(
            f"Cannot rewrite call site at {filepath}:{line}",
            details={"filepath": filepath, "line": str(line), "reason": reason},
        )
        self.filepath = filepath
        self.line = line
        self.reason = reason


class ValidationError(MigratorError):
    """Raised when a migrated file fails a post-migration check."""

    def __init__(self, filepath: str, issues: list[str], result: Optional["FileValidation"] = None):
        super().__init__(
            f"Validation failed for {filepath}",
            details={"filepath": filepath, "issues": "; ".join(issues)},
        )
        self.filepath = filepath
        self.issues = issues
        self.result = result


class OrchestrationError(MigratorError):
    """Raised when the backup store or filesystem is unavailable. Fatal."""

    pass


class BackupNotFoundError(MigratorError):
    """Raised when restoring a file that was never backed up."""

    def __init__(self, filepath: str, run_id: Optional[str] = None):
        details = {"filepath": filepath}
        if run_id:
            details["run_id"] = run_id
        super().__init__(f"No backup found for {filepath}", details=details)
        self.filepath = filepath
        self.run_id = run_id


class BackupIntegrityError(MigratorError):
    """Raised when a backup's content no longer matches its recorded hash."""

    def __init__(self, filepath: str, expected: str, actual: str):
        super().__init__(
            f"Backup for {filepath} is corrupted",
            details={"filepath": filepath, "expected": expected[:12], "actual": actual[:12]},
        )
        self.filepath = filepath


class MigrationFailed(MigratorError):
    """Raised by the orchestrator after a fatal error; carries the partial report."""

    def __init__(self, cause: MigratorError, report: "MigrationReport"):
        super().__init__(f"Migration run {report.run_id} failed: {cause.message}")
        self.cause = cause
        self.report = report


class RunNotFoundError(MigratorError):
    """Raised when a run id (or any run at all) is not on disk."""

    def __init__(self, run_id: Optional[str] = None):
        if run_id:
            super().__init__(f"Migration run not found: {run_id}", details={"run_id": run_id})
        else:
            super().__init__("No migration runs recorded for this project")
        self.run_id = run_id
