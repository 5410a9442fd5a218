"""Migration statistics owned by the orchestrator.

Counts are keyed ``<pattern>@<Component>`` (for example
``console.log@Core``) with the ``file:line`` locations of each migrated call.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from typing import Dict, Iterable, List

from ..models import CallSite, ComponentTag, MigrationRecord


class MigrationStatistics:
    """Accumulates per-run counts of migrated calls."""

    def __init__(self) -> None:
        self.calls: Counter = Counter()
        self.locations: Dict[str, List[str]] = defaultdict(list)
        self.files_by_component: Counter = Counter()
        self.calls_per_file: Dict[str, int] = {}

    @staticmethod
    def key(site: CallSite, component: ComponentTag) -> str:
        return f"{site.pattern}@{component.value}"

    def record_sites(self, component: ComponentTag, sites: Iterable[CallSite]) -> None:
        for site in sites:
            key = self.key(site, component)
            self.calls[key] += 1
            self.locations[key].append(f"{site.path}:{site.line}")

    def record_file(self, record: MigrationRecord) -> None:
        self.files_by_component[record.component.value] += 1
        self.calls_per_file[record.path] = record.calls_found

    def forget_sites(self, component: ComponentTag, sites: Iterable[CallSite]) -> None:
        """Undo :meth:`record_sites` for a file that was rolled back."""
        for site in sites:
            key = self.key(site, component)
            location = f"{site.path}:{site.line}"
            if location in self.locations.get(key, []):
                self.locations[key].remove(location)
                self.calls[key] -= 1
                if self.calls[key] <= 0:
                    del self.calls[key]
                    self.locations.pop(key, None)

    @property
    def total_migrated(self) -> int:
        return sum(self.calls.values())

    def by_component(self) -> Dict[str, int]:
        totals: Counter = Counter()
        for key, count in self.calls.items():
            totals[key.split("@", 1)[1]] += count
        return dict(totals)

    def by_pattern(self) -> Dict[str, int]:
        totals: Counter = Counter()
        for key, count in self.calls.items():
            totals[key.split("@", 1)[0]] += count
        return dict(totals)

    def to_dict(self) -> Dict[str, object]:
        return {
            "total_migrated": self.total_migrated,
            "calls": dict(self.calls),
            "by_component": self.by_component(),
            "by_pattern": self.by_pattern(),
            "files_by_component": dict(self.files_by_component),
        }
