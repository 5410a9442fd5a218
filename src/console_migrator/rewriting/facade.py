"""Structured-logger facade: statement templates and their detection.

Everything the rewriter emits and the validator looks for is derived from the
facade settings in :class:`MigrationConfig`, so both sides always agree on
what an import, an acquisition and a logger call look like.
"""

from __future__ import annotations

import posixpath
import re
from typing import Optional

from ..config import MigrationConfig, default_config
from ..models import ComponentTag
from ..scanning.lexer import code_mask, find_matching

_SHEBANG = re.compile(r"#![^\n]*(?:\n|$)")
_DIRECTIVE = re.compile(r"""[ \t]*(['"])use strict\1[ \t]*;?[^\n]*(?:\n|$)""")

# Top-level module statements start in column 0.
_IMPORT_START = re.compile(r"^import\b(?!\s*[(.])", re.MULTILINE)
_REQUIRE_START = re.compile(
    r"^(?:(?:const|let|var)\s+[^=\n]+?=\s*)?require\s*\(", re.MULTILINE
)
_ESM_SYNTAX = re.compile(r"^(?:import\b(?!\s*[(.])|export\b)", re.MULTILINE)


def newline_of(text: str) -> str:
    """The newline sequence a file uses."""
    return "\r\n" if "\r\n" in text else "\n"


def quote_js(value: str) -> str:
    """Single-quoted JavaScript string literal."""
    return "'" + value.replace("\\", "\\\\").replace("'", "\\'") + "'"


def is_commonjs(text: str, relpath: str, mask: Optional[bytearray] = None) -> bool:
    """True if the file uses ``require`` and never ES-module syntax."""
    lowered = relpath.lower()
    if lowered.endswith(".cjs") or lowered.endswith(".cts"):
        return True
    if lowered.endswith(".mjs") or lowered.endswith(".mts"):
        return False
    if mask is None:
        mask = code_mask(text)
    if any(mask[m.start()] for m in _ESM_SYNTAX.finditer(text)):
        return False
    return any(mask[m.start()] for m in _REQUIRE_START.finditer(text))


def _line_end(text: str, index: int) -> int:
    """Index just past the newline ending the line that contains ``index``."""
    nl = text.find("\n", index)
    return len(text) if nl == -1 else nl + 1


def _import_end(text: str, mask: bytearray, start: int) -> int:
    """End of the line that closes the import statement starting at ``start``.

    The statement closes at its module specifier, the first string literal
    that directly follows code. ``import {`` lists may span several lines.
    """
    n = len(text)
    j = start
    while j < n:
        c = text[j]
        if not mask[j] and c in ("'", '"'):
            k = j - 1
            while k > start and text[k].isspace():
                k -= 1
            if mask[k]:
                while j < n and not mask[j]:
                    j += 1
                return _line_end(text, j) if j < n else n
        if mask[j] and c == ";":
            return _line_end(text, j)
        j += 1
    return n


def _require_end(text: str, mask: bytearray, open_paren: int) -> int:
    close = find_matching(text, mask, open_paren)
    if close is None:
        return _line_end(text, open_paren)
    return _line_end(text, close)


def insertion_point(text: str, mask: Optional[bytearray] = None) -> int:
    """Offset at which the facade import and acquisition are inserted.

    After the last top-level import or require statement if there is one,
    otherwise after a shebang line and a ``"use strict"`` directive.
    """
    if mask is None:
        mask = code_mask(text)
    end = -1
    for m in _IMPORT_START.finditer(text):
        if mask[m.start()]:
            end = max(end, _import_end(text, mask, m.start()))
    for m in _REQUIRE_START.finditer(text):
        if mask[m.start()]:
            end = max(end, _require_end(text, mask, m.end() - 1))
    if end >= 0:
        return end

    pos = 0
    shebang = _SHEBANG.match(text)
    if shebang:
        pos = shebang.end()
    directive = _DIRECTIVE.match(text, pos)
    if directive:
        pos = directive.end()
    return pos


class Facade:
    """Templates for the component logger facade."""

    def __init__(self, config: Optional[MigrationConfig] = None):
        self.config = config or default_config
        fn = re.escape(self.config.facade_function)
        ident = re.escape(self.config.logger_identifier)
        self._import_re = re.compile(
            rf"^import\s*\{{[^}}]*\b{fn}\b[^}}]*\}}\s*from\b"
            rf"|^(?:const|let|var)\s*\{{[^}}]*\b{fn}\b[^}}]*\}}\s*=\s*require\s*\(",
            re.MULTILINE,
        )
        self._acquisition_re = re.compile(
            rf"\b(?:const|let|var)\s+{ident}\s*=\s*{fn}\s*\("
        )
        self._usage_re = re.compile(rf"(?<![\w$.]){ident}\s*\.")

    # ── Templates ──────────────────────────────────────────────

    def module_path_for(self, relpath: str) -> str:
        """Import specifier of the facade module as seen from ``relpath``."""
        source_dir = posixpath.dirname(relpath.replace("\\", "/"))
        target = posixpath.relpath(self.config.facade_module, source_dir or ".")
        if not target.startswith("."):
            target = "./" + target
        return target

    def import_statement(self, relpath: str, commonjs: bool = False) -> str:
        module = quote_js(self.module_path_for(relpath))
        fn = self.config.facade_function
        if commonjs:
            return f"const {{ {fn} }} = require({module});"
        return f"import {{ {fn} }} from {module};"

    def acquisition_statement(self, component: ComponentTag) -> str:
        return (
            f"const {self.config.logger_identifier} = "
            f"{self.config.facade_function}({quote_js(component.value)});"
        )

    def call_id(
        self, component: ComponentTag, relpath: str, function: Optional[str], line: int
    ) -> str:
        return f"{component.value.lower()}:{relpath}:{function or '<module>'}:{line}"

    def call(self, method: str, args_text: str, call_id: Optional[str] = None) -> str:
        ident = self.config.logger_identifier
        if call_id is not None and method in self.config.metadata_methods:
            return f"{ident}.{self.config.call_id_method}({quote_js(call_id)}).{method}({args_text})"
        return f"{ident}.{method}({args_text})"

    # ── Detection ──────────────────────────────────────────────

    def _count(self, pattern: re.Pattern, text: str, mask: Optional[bytearray]) -> int:
        if mask is None:
            mask = code_mask(text)
        return sum(1 for m in pattern.finditer(text) if mask[m.start()])

    def import_count(self, text: str, mask: Optional[bytearray] = None) -> int:
        return self._count(self._import_re, text, mask)

    def acquisition_count(self, text: str, mask: Optional[bytearray] = None) -> int:
        return self._count(self._acquisition_re, text, mask)

    def usage_count(self, text: str, mask: Optional[bytearray] = None) -> int:
        """Number of ``<logger>.`` member accesses at code positions."""
        return self._count(self._usage_re, text, mask)

    def usage_pattern(self) -> re.Pattern:
        return self._usage_re
