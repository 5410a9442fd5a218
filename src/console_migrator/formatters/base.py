"""Base formatter interface for migration report rendering."""

from abc import ABC, abstractmethod

from ..models import MigrationReport


class BaseFormatter(ABC):
    """Abstract base class for report formatters."""

    @abstractmethod
    def format(self, report: MigrationReport) -> str:
        """Return formatted string representation of the report."""

    def render(self, report: MigrationReport) -> None:
        """Print the report to stdout."""
        print(self.format(report))
