"""Exception hierarchy for console-migrator."""

from .base import MigratorError
from .config import ConfigurationError, InvalidConfigError, InvalidPathError
from .migration import (
    BackupIntegrityError,
    BackupNotFoundError,
    MigrationFailed,
    OrchestrationError,
    RewriteError,
    RunNotFoundError,
    ScanError,
    ValidationError,
)

__all__ = [
    "MigratorError",
    "ScanError",
    "RewriteError",
    "ValidationError",
    "OrchestrationError",
    "BackupNotFoundError",
    "BackupIntegrityError",
    "MigrationFailed",
    "RunNotFoundError",
    "ConfigurationError",
    "InvalidPathError",
    "InvalidConfigError",
]
