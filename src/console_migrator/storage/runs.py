"""Per-run persistence: reports, rollback scripts and run logs."""

from __future__ import annotations

import secrets
import shlex
import stat
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence, Union

from ..config import MigrationConfig, default_config
from ..exceptions import RunNotFoundError
from ..logging_config import get_logger
from ..models import BackupEntry, MigrationReport
from .files import atomic_write_json, atomic_write_text, read_json

logger = get_logger(__name__)

REPORT_NAME = "report.json"
ROLLBACK_SCRIPT_NAME = "rollback.sh"
ROLLBACK_MANIFEST_NAME = "rollback.json"
RUN_LOG_NAME = "migration.log"


def new_run_id() -> str:
    """Sortable, unique run identifier."""
    return f"migration-{datetime.now().strftime('%Y%m%dT%H%M%S-%f')}-{secrets.token_hex(3)}"


class RunStore:
    """Reads and writes the files of each run under ``<state>/runs/<run_id>``."""

    def __init__(self, project_root: Union[str, Path], config: Optional[MigrationConfig] = None):
        self.config = config or default_config
        self.project_root = Path(project_root).resolve()
        self.runs_dir = self.project_root / self.config.state_dir / "runs"

    def run_dir(self, run_id: str, create: bool = False) -> Path:
        path = self.runs_dir / run_id
        if create:
            path.mkdir(parents=True, exist_ok=True)
        return path

    def log_path(self, run_id: str) -> Path:
        return self.run_dir(run_id, create=True) / RUN_LOG_NAME

    # ── Reports ────────────────────────────────────────────────

    def save_report(self, report: MigrationReport) -> Path:
        path = self.run_dir(report.run_id, create=True) / REPORT_NAME
        atomic_write_json(path, report.to_dict())
        logger.debug(f"Saved report to {path}")
        return path

    def load_report(self, run_id: Optional[str] = None) -> MigrationReport:
        """Load a run's report; the most recent run's if ``run_id`` is None.

        Raises:
            RunNotFoundError: If no such report exists
        """
        if run_id is None:
            run_id = self.latest_run_id()
            if run_id is None:
                raise RunNotFoundError()
        path = self.run_dir(run_id) / REPORT_NAME
        if not path.exists():
            raise RunNotFoundError(run_id)
        return MigrationReport.from_dict(read_json(path))

    def list_runs(self) -> List[str]:
        """Run ids with a saved report, oldest first."""
        if not self.runs_dir.is_dir():
            return []
        return sorted(p.parent.name for p in self.runs_dir.glob(f"*/{REPORT_NAME}"))

    def latest_run_id(self) -> Optional[str]:
        runs = self.list_runs()
        return runs[-1] if runs else None

    # ── Rollback artifacts ─────────────────────────────────────

    def write_rollback_script(self, run_id: str, entries: Sequence[BackupEntry]) -> Path:
        """Write ``rollback.sh`` and ``rollback.json`` for a run.

        The script replays ``rollback all`` for the run through the CLI, which
        restores files in reverse migration order.
        """
        run_dir = self.run_dir(run_id, create=True)
        files = [e.to_dict() for e in reversed(list(entries))]
        atomic_write_json(
            run_dir / ROLLBACK_MANIFEST_NAME,
            {
                "run_id": run_id,
                "created_at": datetime.now().isoformat(),
                "project_root": str(self.project_root),
                "files": files,
            },
        )

        lines = [
            "#!/bin/sh",
            f"# Rollback for migration run {run_id}",
            f"# Restores {len(files)} file(s) from their backups.",
            "set -e",
            'PYTHON="${PYTHON:-python3}"',
            (
                f'exec "$PYTHON" -m console_migrator rollback all '
                f"--run-id {shlex.quote(run_id)} "
                f"--project {shlex.quote(str(self.project_root))} --force"
            ),
            "",
        ]
        script = run_dir / ROLLBACK_SCRIPT_NAME
        atomic_write_text(script, "\n".join(lines))
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return script
