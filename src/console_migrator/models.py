"""Data models for console-migrator."""

from __future__ import annotations

import hashlib
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class Method(Enum):
    """Canonical diagnostic-print methods."""

    MESSAGE = "message"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    DEBUG = "debug"


# Source token (console.<token>) -> canonical method
SOURCE_TOKENS: Dict[str, Method] = {
    "log": Method.MESSAGE,
    "info": Method.INFO,
    "warn": Method.WARNING,
    "error": Method.ERROR,
    "debug": Method.DEBUG,
}

# Canonical method -> structured logger method
LOGGER_METHODS: Dict[Method, str] = {
    Method.MESSAGE: "info",
    Method.INFO: "info",
    Method.WARNING: "warning",
    Method.ERROR: "error",
    Method.DEBUG: "debug",
}


class Priority(Enum):
    CRITICAL = 0
    HIGH = 1
    MEDIUM = 2
    LOW = 3


class ComponentTag(Enum):
    """Logical components, declared in migration order."""

    CORE = "Core"
    MCP = "MCP"
    CLI = "CLI"
    SWARM = "Swarm"
    MEMORY = "Memory"
    TERMINAL = "Terminal"
    MIGRATION = "Migration"
    HOOKS = "Hooks"
    ENTERPRISE = "Enterprise"

    @property
    def priority(self) -> Priority:
        return _PRIORITIES[self]

    @classmethod
    def parse(cls, name: str) -> "ComponentTag":
        """Look up a component by value or member name, case-insensitively."""
        lowered = name.strip().lower()
        for tag in cls:
            if tag.value.lower() == lowered or tag.name.lower() == lowered:
                return tag
        raise ValueError(f"Unknown component: {name}")


_PRIORITIES = {
    ComponentTag.CORE: Priority.CRITICAL,
    ComponentTag.MCP: Priority.CRITICAL,
    ComponentTag.CLI: Priority.HIGH,
    ComponentTag.SWARM: Priority.HIGH,
    ComponentTag.MEMORY: Priority.MEDIUM,
    ComponentTag.TERMINAL: Priority.MEDIUM,
    ComponentTag.MIGRATION: Priority.MEDIUM,
    ComponentTag.HOOKS: Priority.LOW,
    ComponentTag.ENTERPRISE: Priority.LOW,
}


class FileStatus(Enum):
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


class Stage(Enum):
    """Orchestrator states."""

    IDLE = "IDLE"
    SCANNING = "SCANNING"
    MIGRATING = "MIGRATING"
    VALIDATING = "VALIDATING"
    REPORTING = "REPORTING"
    COMPLETE = "COMPLETE"
    FAILED = "FAILED"


def content_hash(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


@dataclass(frozen=True)
class CallSite:
    """One located diagnostic-print invocation.

    ``start``/``end`` are character offsets into the decoded text; ``end`` is
    one past the closing parenthesis for resolved sites and one past the
    opening parenthesis otherwise.
    """

    path: str
    start: int
    end: int
    line: int
    method: Method
    source_token: str
    args_text: Optional[str]
    function: Optional[str] = None
    resolved: bool = True
    receiver: str = "console"

    @property
    def pattern(self) -> str:
        return f"{self.receiver}.{self.source_token}"


@dataclass(frozen=True)
class MigrationRecord:
    """Per-file outcome of a migration."""

    path: str
    component: ComponentTag
    original_hash: str
    calls_found: int
    calls_migrated: int
    calls_skipped: int
    patterns: List[str]
    success: bool
    status: FileStatus
    error: Optional[str] = None
    issues: List[str] = field(default_factory=list)
    backup_path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["component"] = self.component.value
        data["status"] = self.status.value
        return data

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "MigrationRecord":
        return cls(
            path=d["path"],
            component=ComponentTag.parse(d["component"]),
            original_hash=d.get("original_hash", ""),
            calls_found=d.get("calls_found", 0),
            calls_migrated=d.get("calls_migrated", 0),
            calls_skipped=d.get("calls_skipped", 0),
            patterns=list(d.get("patterns", [])),
            success=d.get("success", False),
            status=FileStatus(d.get("status", "failed")),
            error=d.get("error"),
            issues=list(d.get("issues", [])),
            backup_path=d.get("backup_path"),
        )


@dataclass(frozen=True)
class BackupEntry:
    """Persisted original content of one file within one run."""

    path: str
    backup_path: str
    original_hash: str
    run_id: str
    component: Optional[str] = None
    created_at: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "BackupEntry":
        return cls(
            path=d["path"],
            backup_path=d["backup_path"],
            original_hash=d["original_hash"],
            run_id=d["run_id"],
            component=d.get("component"),
            created_at=d.get("created_at", ""),
        )


@dataclass(frozen=True)
class ProgressEvent:
    stage: Stage
    processed_files: int
    total_files: int
    component: Optional[ComponentTag] = None
    migrated_calls: int = 0

    @property
    def percent(self) -> float:
        if self.total_files == 0:
            return 100.0
        return 100.0 * self.processed_files / self.total_files


@dataclass(frozen=True)
class CheckResult:
    name: str
    passed: bool
    message: str = ""


@dataclass(frozen=True)
class FileValidation:
    path: str
    checks: List[CheckResult]
    warnings: List[str] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return all(c.passed for c in self.checks)

    @property
    def issues(self) -> List[str]:
        return [f"{self.path}: [{c.name}] {c.message}" for c in self.checks if not c.passed]


@dataclass(frozen=True)
class ValidationSummary:
    """Aggregate validator outcome across files."""

    passed: bool
    issues: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    checks: Dict[str, bool] = field(default_factory=dict)
    files_validated: int = 0
    files_rolled_back: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ValidationSummary":
        return cls(
            passed=d.get("passed", False),
            issues=list(d.get("issues", [])),
            warnings=list(d.get("warnings", [])),
            checks=dict(d.get("checks", {})),
            files_validated=d.get("files_validated", 0),
            files_rolled_back=list(d.get("files_rolled_back", [])),
        )


@dataclass(frozen=True)
class RollbackResult:
    """Outcome of a multi-file rollback."""

    restored: List[str] = field(default_factory=list)
    already_restored: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return not self.failed


@dataclass(frozen=True)
class MigrationReport:
    """Aggregate outcome of one run. Never mutated once built."""

    run_id: str
    timestamp: str
    project_root: str
    state: str
    completed: bool
    dry_run: bool
    components: Dict[str, List[MigrationRecord]]
    validation: Optional[ValidationSummary] = None
    rollback_script: Optional[str] = None
    recommendations: List[str] = field(default_factory=list)
    duration_seconds: float = 0.0
    error: Optional[str] = None
    statistics: Dict[str, Any] = field(default_factory=dict)

    @property
    def records(self) -> List[MigrationRecord]:
        return [r for recs in self.components.values() for r in recs]

    @property
    def files_processed(self) -> int:
        return len(self.records)

    @property
    def calls_found(self) -> int:
        return sum(r.calls_found for r in self.records)

    @property
    def calls_migrated(self) -> int:
        return sum(r.calls_migrated for r in self.records)

    @property
    def calls_skipped(self) -> int:
        return sum(r.calls_skipped for r in self.records)

    @property
    def success_files(self) -> int:
        return sum(1 for r in self.records if r.status is FileStatus.SUCCESS)

    @property
    def partial_files(self) -> int:
        return sum(1 for r in self.records if r.status is FileStatus.PARTIAL)

    @property
    def failed_files(self) -> int:
        return sum(1 for r in self.records if r.status is FileStatus.FAILED)

    @property
    def coverage(self) -> float:
        """Percentage of found call sites that were migrated."""
        if self.calls_found == 0:
            return 100.0
        return 100.0 * self.calls_migrated / self.calls_found

    @property
    def component_breakdown(self) -> Dict[str, int]:
        return {
            name: sum(r.calls_migrated for r in recs) for name, recs in self.components.items()
        }

    @property
    def method_breakdown(self) -> Dict[str, int]:
        """Applied pattern -> number of files it was applied in."""
        counts: Dict[str, int] = {}
        for r in self.records:
            for p in r.patterns:
                counts[p] = counts.get(p, 0) + 1
        return counts

    def totals(self) -> Dict[str, Any]:
        return {
            "files_processed": self.files_processed,
            "calls_found": self.calls_found,
            "calls_migrated": self.calls_migrated,
            "calls_skipped": self.calls_skipped,
            "success_files": self.success_files,
            "partial_files": self.partial_files,
            "failed_files": self.failed_files,
            "coverage": round(self.coverage, 2),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "timestamp": self.timestamp,
            "project_root": self.project_root,
            "state": self.state,
            "completed": self.completed,
            "dry_run": self.dry_run,
            "duration_seconds": self.duration_seconds,
            "totals": self.totals(),
            "component_breakdown": self.component_breakdown,
            "method_breakdown": self.method_breakdown,
            "components": {
                name: [r.to_dict() for r in recs] for name, recs in self.components.items()
            },
            "validation": self.validation.to_dict() if self.validation else None,
            "rollback_script": self.rollback_script,
            "recommendations": list(self.recommendations),
            "error": self.error,
            "statistics": dict(self.statistics),
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "MigrationReport":
        validation = d.get("validation")
        return cls(
            run_id=d["run_id"],
            timestamp=d.get("timestamp", ""),
            project_root=d.get("project_root", ""),
            state=d.get("state", Stage.COMPLETE.value),
            completed=d.get("completed", True),
            dry_run=d.get("dry_run", False),
            components={
                name: [MigrationRecord.from_dict(r) for r in recs]
                for name, recs in d.get("components", {}).items()
            },
            validation=ValidationSummary.from_dict(validation) if validation else None,
            rollback_script=d.get("rollback_script"),
            recommendations=list(d.get("recommendations", [])),
            duration_seconds=d.get("duration_seconds", 0.0),
            error=d.get("error"),
            statistics=dict(d.get("statistics", {})),
        )


@dataclass(frozen=True)
class RunSummary:
    """One row of ``status`` output."""

    run_id: str
    timestamp: str
    state: str
    files_processed: int
    calls_migrated: int
    calls_skipped: int
    failed_files: int
    coverage: float
    backups_retained: int

    @classmethod
    def from_report(cls, report: MigrationReport, backups_retained: int) -> "RunSummary":
        return cls(
            run_id=report.run_id,
            timestamp=report.timestamp,
            state=report.state,
            files_processed=report.files_processed,
            calls_migrated=report.calls_migrated,
            calls_skipped=report.calls_skipped,
            failed_files=report.failed_files,
            coverage=report.coverage,
            backups_retained=backups_retained,
        )
