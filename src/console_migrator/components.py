"""Directory-to-component classification.

The migration engine never decides which component a file belongs to; it is
handed a ``FileClassifier``. ``DirectoryClassifier`` is the default rule set:
a file belongs to the first component whose directory name appears among the
file's parent directories, falling back to Core.
"""

from __future__ import annotations

import fnmatch
import os
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol, Tuple

from .config import MigrationConfig, default_config
from .exceptions import InvalidConfigError
from .logging_config import get_logger
from .models import ComponentTag

logger = get_logger(__name__)


class FileClassifier(Protocol):
    def classify(self, relpath: str) -> Optional[ComponentTag]:
        ...

    def files_for(self, project_root: Path, component: ComponentTag) -> List[Path]:
        ...


class DirectoryClassifier:
    """Classify source files by the directories they live under."""

    def __init__(self, config: Optional[MigrationConfig] = None):
        self.config = config or default_config
        self.rules: List[Tuple[str, ComponentTag]] = []
        for name, dirs in self.config.component_dirs.items():
            try:
                tag = ComponentTag.parse(name)
            except ValueError:
                raise InvalidConfigError("components", name, "unknown component")
            for d in dirs:
                self.rules.append((d.lower(), tag))
        self._extensions = {e.lower() for e in self.config.extensions}

    def is_candidate(self, relpath: str) -> bool:
        """True if the file has a migratable extension and is not excluded."""
        posix = relpath.replace(os.sep, "/")
        lowered = posix.lower()
        if not any(lowered.endswith(ext) for ext in self._extensions):
            return False
        state_prefix = self.config.state_dir.strip("/") + "/"
        if posix.startswith(state_prefix):
            return False
        return not any(fnmatch.fnmatch(posix, pat) for pat in self.config.exclude_patterns)

    def classify(self, relpath: str) -> Optional[ComponentTag]:
        if not self.is_candidate(relpath):
            return None
        parts = [p.lower() for p in Path(relpath).parts[:-1]]
        for directory, tag in self.rules:
            if directory in parts:
                return tag
        return ComponentTag.CORE

    def iter_candidates(self, project_root: Path) -> Iterable[Path]:
        """Yield candidate files under ``project_root`` in sorted order."""
        root = Path(project_root)
        state_dir = self.config.state_dir.strip("/")
        for dirpath, dirnames, filenames in os.walk(root):
            rel_dir = os.path.relpath(dirpath, root)
            # Prune excluded directories early
            dirnames[:] = sorted(
                d
                for d in dirnames
                if d not in ("node_modules", ".git")
                and not (rel_dir == "." and d == state_dir)
            )
            for name in sorted(filenames):
                full = Path(dirpath) / name
                rel = full.relative_to(root).as_posix()
                if self.is_candidate(rel):
                    yield full

    def classify_tree(self, project_root: Path) -> Dict[ComponentTag, List[Path]]:
        groups: Dict[ComponentTag, List[Path]] = {tag: [] for tag in ComponentTag}
        root = Path(project_root)
        for path in self.iter_candidates(root):
            tag = self.classify(path.relative_to(root).as_posix())
            if tag is not None:
                groups[tag].append(path)
        logger.debug(
            "Classified tree: "
            + ", ".join(f"{t.value}={len(p)}" for t, p in groups.items() if p)
        )
        return groups

    def files_for(self, project_root: Path, component: ComponentTag) -> List[Path]:
        return self.classify_tree(project_root)[component]
