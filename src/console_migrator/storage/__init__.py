"""On-disk state: backups, reports and rollback artifacts."""

from .backup import BackupStore
from .files import atomic_write_bytes, atomic_write_json, atomic_write_text, read_json
from .runs import RunStore, new_run_id

__all__ = [
    "BackupStore",
    "RunStore",
    "new_run_id",
    "atomic_write_bytes",
    "atomic_write_text",
    "atomic_write_json",
    "read_json",
]
