"""Component-level migration and run orchestration."""

from .component import ComponentMigrationSystem
from .orchestrator import (
    INCOMPLETE,
    CancellationToken,
    MigrationOrchestrator,
    ProgressListener,
    recommendations_for,
)
from .stats import MigrationStatistics

__all__ = [
    "ComponentMigrationSystem",
    "MigrationOrchestrator",
    "MigrationStatistics",
    "CancellationToken",
    "ProgressListener",
    "INCOMPLETE",
    "recommendations_for",
]
