"""Call-site scanner for diagnostic-print calls.

Detection is pattern based: the receiver token (``console``), a dot, one of
the five method tokens and an opening parenthesis, all at code positions
(see :mod:`.lexer`). The argument list is delimited by bracket matching. A
site whose brackets cannot be matched is still reported, with
``resolved=False``, so the rewriter can skip it explicitly.
"""

from __future__ import annotations

import os
import re
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from ..config import MigrationConfig, default_config
from ..exceptions import ScanError
from ..logging_config import get_logger
from ..models import SOURCE_TOKENS, CallSite
from .functions import enclosing_function, find_functions
from .lexer import DelimiterIssue, code_mask, delimiter_issues, find_matching

logger = get_logger(__name__)

_BINARY_SNIFF_BYTES = 8192


def decode_source(data: bytes, path: Path) -> str:
    """Decode file bytes as UTF-8 text or raise ScanError."""
    if b"\x00" in data[:_BINARY_SNIFF_BYTES]:
        raise ScanError(path, "binary content")
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ScanError(path, f"not valid UTF-8: {e.reason} at byte {e.start}")
    return text


class CallSiteScanner:
    """Find ``console.<method>(...)`` call sites in source text."""

    def __init__(self, config: Optional[MigrationConfig] = None):
        self.config = config or default_config
        tokens = "|".join(sorted(SOURCE_TOKENS))
        self._call_re = re.compile(
            rf"(?<![\w$.])({re.escape(self.config.receiver)})\s*\.\s*({tokens})\s*\("
        )
        self._marker_re = re.compile(rf"\b{re.escape(self.config.facade_function)}\b")

    # ── Markers ─────────────────────────────────────────────────

    def is_migrated(self, text: str) -> bool:
        """True if the file already acquires the structured logger."""
        mask = code_mask(text)
        return any(mask[m.start()] for m in self._marker_re.finditer(text))

    # ── Scanning ────────────────────────────────────────────────

    def scan(self, text: str, path: str = "<memory>") -> List[CallSite]:
        """Return call sites in ``text``, earliest first.

        A file that already carries the facade import yields no call sites.
        Calls nested inside another call's arguments are included; the
        rewriter reports them as skipped.
        """
        if self.is_migrated(text):
            logger.debug(f"{path}: already migrated, skipping")
            return []
        return self._find(text, path, include_nested=True)

    def find_remaining(
        self, text: str, path: str = "<memory>", include_nested: bool = False
    ) -> List[CallSite]:
        """Return call sites regardless of migration markers.

        With ``include_nested`` calls inside another call's arguments are
        reported as well.
        """
        return self._find(text, path, include_nested)

    def _find(self, text: str, path: str, include_nested: bool = False) -> List[CallSite]:
        mask = code_mask(text)
        matches = [
            m
            for m in self._call_re.finditer(text)
            if mask[m.start()] and mask[m.end() - 1]
        ]
        if not matches:
            return []

        functions = find_functions(text, mask)
        sites: List[CallSite] = []
        for m in matches:
            token = m.group(2)
            paren = m.end() - 1
            close = find_matching(text, mask, paren)
            line = text.count("\n", 0, m.start()) + 1
            if close is None:
                sites.append(
                    CallSite(
                        path=path,
                        start=m.start(),
                        end=m.end(),
                        line=line,
                        method=SOURCE_TOKENS[token],
                        source_token=token,
                        args_text=None,
                        function=enclosing_function(functions, m.start()),
                        resolved=False,
                        receiver=m.group(1),
                    )
                )
                continue
            sites.append(
                CallSite(
                    path=path,
                    start=m.start(),
                    end=close + 1,
                    line=line,
                    method=SOURCE_TOKENS[token],
                    source_token=token,
                    args_text=text[paren + 1 : close],
                    function=enclosing_function(functions, m.start()),
                    receiver=m.group(1),
                )
            )
        return sites if include_nested else self._drop_nested(sites)

    @staticmethod
    def _drop_nested(sites: List[CallSite]) -> List[CallSite]:
        """Drop sites lying inside another resolved site's argument list."""
        kept: List[CallSite] = []
        outer_end = -1
        for site in sites:
            if site.start < outer_end:
                continue
            kept.append(site)
            if site.resolved:
                outer_end = site.end
        return kept

    def scan_file(self, path: Path, relpath: Optional[str] = None) -> Tuple[str, List[CallSite]]:
        """Read, decode and scan a file. Raises ScanError if unreadable."""
        data = self.read_bytes(path)
        text = decode_source(data, path)
        return text, self.scan(text, relpath or str(path))

    def read_bytes(self, path: Path) -> bytes:
        try:
            size = path.stat().st_size
            if size > self.config.max_file_size_bytes:
                raise ScanError(path, f"file is {size} bytes, limit is {self.config.max_file_size_bytes}")
            return path.read_bytes()
        except OSError as e:
            raise ScanError(path, f"OS error: {e}")

    # ── Structure checks ───────────────────────────────────────

    def delimiter_issues(self, text: str) -> List[DelimiterIssue]:
        return delimiter_issues(text)

    # ── Read-only bulk counting ────────────────────────────────

    def count_calls(self, paths: Iterable[Path]) -> Dict[Path, int]:
        """Count call sites per file in parallel. Unreadable files count -1.

        Reads only; safe to run concurrently.
        """
        path_list = list(paths)
        workers = self.config.scan_workers or min(8, (os.cpu_count() or 2))

        def _count(p: Path) -> Tuple[Path, int]:
            try:
                _text, sites = self.scan_file(p)
                return p, len(sites)
            except ScanError as e:
                logger.debug(f"Count skipped {p}: {e}")
                return p, -1

        if len(path_list) < 2 or workers == 1:
            return dict(_count(p) for p in path_list)
        with ThreadPoolExecutor(max_workers=workers) as executor:
            return dict(executor.map(_count, path_list))
