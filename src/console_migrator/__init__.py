"""
Console Migrator - move diagnostic console calls onto a structured logger

Scans a JavaScript/TypeScript tree for console.log / info / warn / error /
debug calls, rewrites them into component-logger calls component by
component, validates every rewritten file, and keeps backups so any run can
be rolled back.
"""

__version__ = "0.1.0"

from .api import analytics, cleanup, migrate, report, rollback, status, validate
from .config import MigrationConfig, load_config
from .exceptions import MigrationFailed, MigratorError
from .models import ComponentTag, MigrationReport

__all__ = [
    "migrate",  # Main entry point
    "validate",
    "status",
    "rollback",
    "report",
    "analytics",
    "cleanup",
    "MigrationConfig",
    "load_config",
    "MigrationReport",
    "ComponentTag",
    "MigratorError",
    "MigrationFailed",
]
