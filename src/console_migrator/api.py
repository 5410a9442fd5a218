"""Public API for console-migrator.

The operations behind the CLI. Each takes the project root and an
optional :class:`MigrationConfig` (auto-discovered with :func:`load_config`
when omitted).

Example:
    >>> from console_migrator import api
    >>>
    >>> preview = api.migrate("/path/to/project", dry_run=True)
    >>> preview.calls_found
    42
    >>> report = api.migrate("/path/to/project", component="Core")
    >>> api.rollback("all", "/path/to/project", run_id=report.run_id)
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np

from .components import DirectoryClassifier
from .config import CONFIG_FILENAME, MigrationConfig, load_config
from .exceptions import InvalidConfigError, InvalidPathError, RunNotFoundError, ScanError
from .formatters import get_formatter
from .logging_config import get_logger, setup_logging
from .migration import CancellationToken, MigrationOrchestrator, ProgressListener
from .migration.orchestrator import LARGE_CODEBASE_CALLS
from .models import (
    ComponentTag,
    MigrationReport,
    RollbackResult,
    RunSummary,
    ValidationSummary,
)
from .scanning import CallSiteScanner, decode_source
from .storage import BackupStore, RunStore
from .validation import MigratedFile, MigrationValidator

logger = get_logger(__name__)

ComponentArg = Union[None, str, ComponentTag, Sequence[Union[str, ComponentTag]]]

TOP_FILES = 10


def _root(project_root: Union[str, Path]) -> Path:
    root = Path(project_root).resolve()
    if not root.is_dir():
        raise InvalidPathError(root, "project root is not a directory")
    return root


def _components(component: ComponentArg) -> Optional[List[ComponentTag]]:
    if component is None:
        return None
    items = [component] if isinstance(component, (str, ComponentTag)) else list(component)
    tags: List[ComponentTag] = []
    for item in items:
        if isinstance(item, ComponentTag):
            tags.append(item)
            continue
        try:
            tags.append(ComponentTag.parse(item))
        except ValueError:
            valid = ", ".join(t.value for t in ComponentTag)
            raise InvalidConfigError("component", item, f"expected one of {valid}")
    return tags


def _config(root: Path, config: Optional[MigrationConfig], **overrides) -> MigrationConfig:
    """Explicit config, or one discovered with the project's own TOML file on top."""
    if config is not None:
        return config
    project_file = root / CONFIG_FILENAME
    return load_config(project_file if project_file.is_file() else None, **overrides)


# ── migrate ────────────────────────────────────────────────────


def migrate(
    project_root: Union[str, Path] = ".",
    dry_run: bool = False,
    component: ComponentArg = None,
    verbose: bool = False,
    config: Optional[MigrationConfig] = None,
    listeners: Iterable[ProgressListener] = (),
    token: Optional[CancellationToken] = None,
) -> MigrationReport:
    """Migrate (or preview) the project's diagnostic-print calls.

    Args:
        project_root: Project directory
        dry_run: Scan and report only; no file is written
        component: Restrict the run to one or more components
        verbose: Enable DEBUG logging
        config: Configuration (auto-discovered when None)
        listeners: Callables receiving a ProgressEvent after each component
        token: Cancellation token checked between files

    Returns:
        The run's MigrationReport (persisted unless ``dry_run``)

    Raises:
        MigrationFailed: If the run aborted; carries the partial report
        InvalidPathError: If the project root does not exist
    """
    if verbose:
        setup_logging(verbose=True)
    root = _root(project_root)
    config = _config(root, config, verbose=verbose or None)
    orchestrator = MigrationOrchestrator(root, config, token=token)
    for listener in listeners:
        orchestrator.add_listener(listener)
    return orchestrator.run(_components(component), dry_run=dry_run)


# ── validate ───────────────────────────────────────────────────


def _latest_entries(backups: BackupStore, component: Optional[List[ComponentTag]]):
    """Most recent live backup per file, across all runs."""
    latest = {}
    for entry in backups.entries():
        latest[entry.path] = entry
    wanted = {t.value for t in component} if component else None
    return [e for e in latest.values() if wanted is None or e.component in wanted]


def validate(
    project_root: Union[str, Path] = ".",
    component: ComponentArg = None,
    config: Optional[MigrationConfig] = None,
) -> ValidationSummary:
    """Re-validate migrated files against their backed-up originals.

    Read-only: files that fail are reported, not rolled back.
    """
    root = _root(project_root)
    config = _config(root, config)
    backups = BackupStore(root, config)
    validator = MigrationValidator(config)

    files: List[MigratedFile] = []
    unreadable: List[str] = []
    for entry in _latest_entries(backups, _components(component)):
        try:
            original_path = root / entry.backup_path
            current_path = root / entry.path
            original = decode_source(original_path.read_bytes(), original_path)
            current = decode_source(current_path.read_bytes(), current_path)
        except (OSError, ScanError) as e:
            unreadable.append(f"{entry.path}: cannot read for validation ({e})")
            continue
        tag = ComponentTag.parse(entry.component) if entry.component else None
        files.append(MigratedFile(entry.path, original, current, tag))

    summary = validator.validate_migration(files)
    if not files and not unreadable:
        return ValidationSummary(
            passed=True,
            warnings=["No migrated files with backups to validate"],
            checks=summary.checks,
        )
    if unreadable:
        return ValidationSummary(
            passed=False,
            issues=summary.issues + unreadable,
            warnings=summary.warnings,
            checks=summary.checks,
            files_validated=summary.files_validated,
        )
    return summary


# ── status ─────────────────────────────────────────────────────


def status(
    project_root: Union[str, Path] = ".", config: Optional[MigrationConfig] = None
) -> List[RunSummary]:
    """One summary per recorded run, oldest first."""
    root = _root(project_root)
    config = _config(root, config)
    runs = RunStore(root, config)
    backups = BackupStore(root, config)
    summaries = []
    for run_id in runs.list_runs():
        report = runs.load_report(run_id)
        summaries.append(RunSummary.from_report(report, len(backups.entries(run_id))))
    return summaries


# ── rollback ───────────────────────────────────────────────────


def _latest_backup_run(backups: BackupStore) -> str:
    """Latest run still holding backups, else the latest run that had any."""
    run_ids = backups.run_ids()
    if not run_ids:
        raise RunNotFoundError()
    live = [r for r in run_ids if backups.entries(r)]
    return live[-1] if live else run_ids[-1]


def rollback(
    target: str,
    project_root: Union[str, Path] = ".",
    run_id: Optional[str] = None,
    config: Optional[MigrationConfig] = None,
) -> RollbackResult:
    """Restore original content.

    Args:
        target: ``"all"``, a component name, or a file path
        project_root: Project directory
        run_id: Run to roll back (default: the latest run with backups)

    Raises:
        RunNotFoundError: If no run with backups exists
        BackupNotFoundError: If ``target`` is a file that was never backed up
    """
    root = _root(project_root)
    config = _config(root, config)
    backups = BackupStore(root, config)

    if target.lower() == "all":
        rid = run_id or _latest_backup_run(backups)
        if rid not in backups.run_ids():
            raise RunNotFoundError(rid)
        result = backups.restore_run(rid)
        logger.info(f"Rolled back run {rid}: {len(result.restored)} file(s) restored")
        return result

    is_file = (root / target).is_file() or Path(target).is_file()
    if not is_file:
        try:
            tag = ComponentTag.parse(target)
        except ValueError:
            tag = None
        if tag is not None:
            rid = run_id or _latest_backup_run(backups)
            return backups.restore_component(tag, rid)

    rel = backups.relpath(target)
    if backups.restore(rel, run_id):
        return RollbackResult(restored=[rel])
    return RollbackResult(already_restored=[rel])


# ── cleanup ────────────────────────────────────────────────────


def cleanup(
    project_root: Union[str, Path] = ".",
    run_id: Optional[str] = None,
    config: Optional[MigrationConfig] = None,
) -> Dict[str, int]:
    """Delete retained backups once migrated files have been accepted.

    Args:
        project_root: Project directory
        run_id: Only this run's backups (default: every run)

    Returns:
        Run id -> number of backups removed, for runs that had any

    Raises:
        RunNotFoundError: If no run (or not ``run_id``) has a backup manifest
    """
    root = _root(project_root)
    config = _config(root, config)
    backups = BackupStore(root, config)
    runs = backups.run_ids()
    if not runs or (run_id is not None and run_id not in runs):
        raise RunNotFoundError(run_id)
    removed: Dict[str, int] = {}
    for rid in [run_id] if run_id else runs:
        count = backups.cleanup(rid)
        if count:
            removed[rid] = count
    return removed


# ── report ─────────────────────────────────────────────────────


def report(
    project_root: Union[str, Path] = ".",
    fmt: str = "text",
    output_path: Optional[Union[str, Path]] = None,
    run_id: Optional[str] = None,
    config: Optional[MigrationConfig] = None,
) -> str:
    """Render a run's report as text, JSON or HTML.

    Writes to ``output_path`` when given; always returns the rendered text.
    """
    root = _root(project_root)
    config = _config(root, config)
    formatter = get_formatter(fmt)
    loaded = RunStore(root, config).load_report(run_id)
    rendered = formatter.format(loaded)
    if output_path is not None:
        out = Path(output_path)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(rendered, encoding="utf-8")
        logger.info(f"Report written to {out}")
    return rendered


# ── analytics ──────────────────────────────────────────────────


@dataclass
class Analytics:
    """Current state of the tree plus what the latest run migrated."""

    remaining_by_component: Dict[str, int] = field(default_factory=dict)
    remaining_by_pattern: Dict[str, int] = field(default_factory=dict)
    files_scanned: int = 0
    files_with_calls: int = 0
    unreadable_files: int = 0
    distribution: Dict[str, float] = field(default_factory=dict)
    top_files: List[Tuple[str, int]] = field(default_factory=list)
    migrated_by_component: Dict[str, int] = field(default_factory=dict)
    migrated_by_pattern: Dict[str, int] = field(default_factory=dict)
    latest_run: Optional[str] = None
    recommendations: List[str] = field(default_factory=list)

    @property
    def remaining_calls(self) -> int:
        return sum(self.remaining_by_component.values())

    @property
    def migrated_calls(self) -> int:
        return sum(self.migrated_by_component.values())

    @property
    def completion(self) -> float:
        total = self.remaining_calls + self.migrated_calls
        if total == 0:
            return 100.0
        return 100.0 * self.migrated_calls / total

    def to_dict(self) -> Dict[str, Any]:
        return {
            "remaining_calls": self.remaining_calls,
            "migrated_calls": self.migrated_calls,
            "completion": round(self.completion, 2),
            "remaining_by_component": self.remaining_by_component,
            "remaining_by_pattern": self.remaining_by_pattern,
            "files_scanned": self.files_scanned,
            "files_with_calls": self.files_with_calls,
            "unreadable_files": self.unreadable_files,
            "distribution": self.distribution,
            "top_files": [{"path": p, "calls": c} for p, c in self.top_files],
            "migrated_by_component": self.migrated_by_component,
            "migrated_by_pattern": self.migrated_by_pattern,
            "latest_run": self.latest_run,
            "recommendations": self.recommendations,
        }


def _distribution(counts: List[int]) -> Dict[str, float]:
    if not counts:
        return {}
    arr = np.asarray(counts, dtype=float)
    return {
        "mean": round(float(np.mean(arr)), 2),
        "median": float(np.median(arr)),
        "p90": round(float(np.percentile(arr, 90)), 2),
        "max": float(np.max(arr)),
    }


def _analytics_recommendations(a: Analytics) -> List[str]:
    recs: List[str] = []
    if a.remaining_calls > LARGE_CODEBASE_CALLS:
        recs.append("Large codebase detected: consider migrating one component at a time")
    if a.remaining_by_component.get(ComponentTag.MCP.value):
        recs.append("MCP components still print to the console: stderr compliance will be enforced")
    if a.top_files and a.remaining_calls:
        top = a.top_files[:3]
        share = 100.0 * sum(c for _, c in top) / a.remaining_calls
        if len(a.top_files) > 3 and share >= 50:
            recs.append(
                f"{len(top)} file(s) hold {share:.0f}% of remaining calls: refactor them first"
            )
    if a.migrated_calls and a.remaining_calls:
        recs.append(
            f"Migration is {a.completion:.1f}% complete: review remaining calls manually"
        )
    if not a.remaining_calls and a.migrated_calls:
        recs.append("No console calls remain; review usage analytics to tune logger levels")
    return recs


def analytics(
    project_root: Union[str, Path] = ".", config: Optional[MigrationConfig] = None
) -> Analytics:
    """Count remaining diagnostic calls per component and method."""
    root = _root(project_root)
    config = _config(root, config)
    classifier = DirectoryClassifier(config)
    scanner = CallSiteScanner(config)

    result = Analytics()
    by_component: Counter = Counter()
    by_pattern: Counter = Counter()
    per_file: Dict[str, int] = {}
    for tag, paths in classifier.classify_tree(root).items():
        for path in paths:
            rel = path.relative_to(root).as_posix()
            result.files_scanned += 1
            try:
                text = decode_source(scanner.read_bytes(path), path)
            except ScanError:
                result.unreadable_files += 1
                continue
            sites = scanner.find_remaining(text, rel, include_nested=True)
            if not sites:
                continue
            by_component[tag.value] += len(sites)
            by_pattern.update(s.pattern for s in sites)
            per_file[rel] = len(sites)

    result.remaining_by_component = dict(by_component)
    result.remaining_by_pattern = dict(by_pattern)
    result.files_with_calls = len(per_file)
    result.distribution = _distribution(list(per_file.values()))
    result.top_files = sorted(per_file.items(), key=lambda kv: (-kv[1], kv[0]))[:TOP_FILES]

    runs = RunStore(root, config)
    latest = runs.latest_run_id()
    if latest is not None:
        stats = runs.load_report(latest).statistics
        result.latest_run = latest
        result.migrated_by_component = dict(stats.get("by_component", {}))
        result.migrated_by_pattern = dict(stats.get("by_pattern", {}))

    result.recommendations = _analytics_recommendations(result)
    return result
