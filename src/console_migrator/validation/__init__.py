"""Post-migration validation."""

from .mock_logger import CapturedCall, CapturingLogger
from .validator import (
    CHECK_NAMES,
    BaselineProvider,
    CallCountBaseline,
    LoggerCall,
    MigratedFile,
    MigrationValidator,
)

__all__ = [
    "MigrationValidator",
    "MigratedFile",
    "LoggerCall",
    "BaselineProvider",
    "CallCountBaseline",
    "CapturingLogger",
    "CapturedCall",
    "CHECK_NAMES",
]
