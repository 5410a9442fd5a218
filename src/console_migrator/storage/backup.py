"""Backup and rollback store.

Layout under the project's state directory::

    runs/<run_id>/backups.json        manifest (entries + restored paths)
    runs/<run_id>/backups/<relpath>   original bytes of each migrated file

Within a run the store is append-only: a file is backed up at most once, so
the backup always holds the content from before the run touched it. Every
write goes through a temp file, fsync and an atomic rename, and the manifest
is updated only after the backup bytes are durable.
"""

from __future__ import annotations

import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ..config import MigrationConfig, default_config
from ..exceptions import BackupIntegrityError, BackupNotFoundError, OrchestrationError
from ..logging_config import get_logger
from ..models import BackupEntry, ComponentTag, RollbackResult, content_hash
from .files import atomic_write_bytes, atomic_write_json, read_json

logger = get_logger(__name__)

MANIFEST_NAME = "backups.json"
BACKUP_DIRNAME = "backups"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class BackupStore:
    """Persist original file content per run and restore it on demand."""

    def __init__(self, project_root: Union[str, Path], config: Optional[MigrationConfig] = None):
        self.config = config or default_config
        self.project_root = Path(project_root).resolve()
        self.state_root = self.project_root / self.config.state_dir
        self.runs_dir = self.state_root / "runs"

    # ── Paths ──────────────────────────────────────────────────

    def relpath(self, path: Union[str, Path]) -> str:
        """Project-relative POSIX path of ``path``."""
        p = Path(path)
        if not p.is_absolute():
            p = self.project_root / p
        try:
            return p.resolve().relative_to(self.project_root).as_posix()
        except ValueError:
            return p.as_posix()

    def run_dir(self, run_id: str) -> Path:
        return self.runs_dir / run_id

    def _manifest_path(self, run_id: str) -> Path:
        return self.run_dir(run_id) / MANIFEST_NAME

    def _load_manifest(self, run_id: str) -> Dict[str, Any]:
        path = self._manifest_path(run_id)
        if not path.exists():
            return {"run_id": run_id, "entries": [], "restored": [], "discarded": []}
        data = read_json(path)
        data.setdefault("entries", [])
        data.setdefault("restored", [])
        data.setdefault("discarded", [])
        return data

    def _save_manifest(self, run_id: str, manifest: Dict[str, Any]) -> None:
        atomic_write_json(self._manifest_path(run_id), manifest)

    def run_ids(self) -> List[str]:
        """Run ids that have a backup manifest, oldest first."""
        if not self.runs_dir.is_dir():
            return []
        return sorted(p.parent.name for p in self.runs_dir.glob(f"*/{MANIFEST_NAME}"))

    # ── Backup ─────────────────────────────────────────────────

    def backup(
        self, path: Union[str, Path], run_id: str, component: Optional[ComponentTag] = None
    ) -> BackupEntry:
        """Copy the file's current bytes into the run's backup area.

        Raises:
            OrchestrationError: If the original cannot be read or the backup
                cannot be written; no file may be modified after this fails
        """
        rel = self.relpath(path)
        manifest = self._load_manifest(run_id)
        for raw in manifest["entries"]:
            if raw["path"] == rel:
                return BackupEntry.from_dict(raw)

        source = self.project_root / rel
        backup_path = self.run_dir(run_id) / BACKUP_DIRNAME / rel
        try:
            data = source.read_bytes()
            atomic_write_bytes(backup_path, data)
        except OSError as e:
            raise OrchestrationError(
                f"Cannot back up {rel}", details={"run_id": run_id, "error": str(e)}
            )

        entry = BackupEntry(
            path=rel,
            backup_path=backup_path.relative_to(self.project_root).as_posix(),
            original_hash=content_hash(data),
            run_id=run_id,
            component=component.value if component else None,
            created_at=_now_iso(),
        )
        manifest["entries"].append(entry.to_dict())
        if rel in manifest["restored"]:
            manifest["restored"].remove(rel)
        try:
            self._save_manifest(run_id, manifest)
        except OSError as e:
            raise OrchestrationError(
                f"Cannot update backup manifest for run {run_id}", details={"error": str(e)}
            )
        logger.debug(f"Backed up {rel} -> {entry.backup_path}")
        return entry

    # ── Lookup ─────────────────────────────────────────────────

    def entries(self, run_id: Optional[str] = None) -> List[BackupEntry]:
        """Live entries of one run, or of every run, in backup order."""
        run_ids = [run_id] if run_id else self.run_ids()
        result: List[BackupEntry] = []
        for rid in run_ids:
            result.extend(BackupEntry.from_dict(e) for e in self._load_manifest(rid)["entries"])
        return result

    def find_entry(
        self, path: Union[str, Path], run_id: Optional[str] = None
    ) -> Optional[BackupEntry]:
        """Entry for ``path`` in ``run_id``, or in the most recent run having one."""
        rel = self.relpath(path)
        run_ids = [run_id] if run_id else list(reversed(self.run_ids()))
        for rid in run_ids:
            for raw in self._load_manifest(rid)["entries"]:
                if raw["path"] == rel:
                    return BackupEntry.from_dict(raw)
        return None

    def _was_restored(self, rel: str, run_id: Optional[str]) -> bool:
        run_ids = [run_id] if run_id else self.run_ids()
        return any(rel in self._load_manifest(rid)["restored"] for rid in run_ids)

    # ── Restore ────────────────────────────────────────────────

    def restore(self, path: Union[str, Path], run_id: Optional[str] = None) -> bool:
        """Write the backed-up bytes back to the file.

        Returns:
            True if the file was restored, False if it had already been
            restored earlier (no-op)

        Raises:
            BackupNotFoundError: If the file was never backed up
            BackupIntegrityError: If the backup no longer matches its hash
        """
        rel = self.relpath(path)
        entry = self.find_entry(rel, run_id)
        if entry is None:
            if self._was_restored(rel, run_id):
                logger.debug(f"{rel} already restored")
                return False
            raise BackupNotFoundError(rel, run_id)

        backup_file = self.project_root / entry.backup_path
        try:
            data = backup_file.read_bytes()
        except OSError as e:
            raise BackupNotFoundError(rel, entry.run_id) from e
        actual = content_hash(data)
        if actual != entry.original_hash:
            raise BackupIntegrityError(rel, entry.original_hash, actual)

        atomic_write_bytes(self.project_root / rel, data)

        manifest = self._load_manifest(entry.run_id)
        manifest["entries"] = [e for e in manifest["entries"] if e["path"] != rel]
        if rel not in manifest["restored"]:
            manifest["restored"].append(rel)
        self._save_manifest(entry.run_id, manifest)
        backup_file.unlink()
        logger.info(f"Restored {rel} from run {entry.run_id}")
        return True

    def _restore_many(self, entries: List[BackupEntry], run_id: str) -> RollbackResult:
        restored: List[str] = []
        already: List[str] = []
        failed: Dict[str, str] = {}
        # Reverse migration order
        for entry in reversed(entries):
            try:
                if self.restore(entry.path, run_id):
                    restored.append(entry.path)
                else:
                    already.append(entry.path)
            except (BackupNotFoundError, BackupIntegrityError, OSError) as e:
                logger.error(f"Could not restore {entry.path}: {e}")
                failed[entry.path] = str(e)
        return RollbackResult(restored=restored, already_restored=already, failed=failed)

    def restore_run(self, run_id: str) -> RollbackResult:
        """Restore every file of a run, continuing past failures."""
        manifest = self._load_manifest(run_id)
        entries = [BackupEntry.from_dict(e) for e in manifest["entries"]]
        result = self._restore_many(entries, run_id)
        previously = [p for p in manifest["restored"] if p not in result.restored]
        return RollbackResult(
            restored=result.restored,
            already_restored=result.already_restored + previously,
            failed=result.failed,
        )

    def restore_component(self, component: ComponentTag, run_id: str) -> RollbackResult:
        entries = [e for e in self.entries(run_id) if e.component == component.value]
        return self._restore_many(entries, run_id)

    # ── Retention ──────────────────────────────────────────────

    def discard(self, path: Union[str, Path], run_id: str) -> bool:
        """Drop a file's backup without restoring it. Returns False if absent."""
        rel = self.relpath(path)
        manifest = self._load_manifest(run_id)
        remaining = [e for e in manifest["entries"] if e["path"] != rel]
        if len(remaining) == len(manifest["entries"]):
            return False
        dropped = next(e for e in manifest["entries"] if e["path"] == rel)
        manifest["entries"] = remaining
        manifest["discarded"].append(rel)
        self._save_manifest(run_id, manifest)
        backup_file = self.project_root / dropped["backup_path"]
        if backup_file.exists():
            backup_file.unlink()
        logger.debug(f"Discarded backup of {rel} (run {run_id})")
        return True

    def cleanup(self, run_id: str) -> int:
        """Remove all backups of a run. Returns the number of entries dropped."""
        manifest = self._load_manifest(run_id)
        count = len(manifest["entries"])
        backup_root = self.run_dir(run_id) / BACKUP_DIRNAME
        if backup_root.exists():
            shutil.rmtree(backup_root)
        manifest["discarded"].extend(e["path"] for e in manifest["entries"])
        manifest["entries"] = []
        if self.run_dir(run_id).exists():
            self._save_manifest(run_id, manifest)
        logger.info(f"Removed {count} backup(s) of run {run_id}")
        return count
