"""Best-effort enclosing-function lookup.

Finds named function bodies (declarations, function/arrow expressions bound
to a name, class and object methods) and answers "which named function
contains this offset". Anonymous callbacks are attributed to the nearest
named function around them.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional

from .lexer import find_matching

_NAME = r"[A-Za-z_$][\w$]*"

# Every pattern ends at the parameter list's opening parenthesis.
_PATTERNS = [
    re.compile(rf"\bfunction\b\s*\*?\s*({_NAME})\s*(?:<[^>\n]*>)?\s*\("),
    re.compile(
        rf"\b(?:const|let|var)\s+({_NAME})\s*(?::[^=\n]+)?=\s*(?:async\s*)?"
        rf"(?:function\b\s*\*?\s*(?:{_NAME})?\s*)?\("
    ),
    re.compile(
        rf"^[ \t]*(?:(?:public|private|protected|static|async|override|readonly|get|set)\s+)*"
        rf"\*?({_NAME})\s*(?:<[^>\n]*>)?\(",
        re.MULTILINE,
    ),
    re.compile(
        rf"^[ \t]*(?:(?:public|private|protected|static|readonly)\s+)*({_NAME})\s*"
        rf"(?::[^=\n]+)?=\s*(?:async\s*)?\(",
        re.MULTILINE,
    ),
    re.compile(rf"\b({_NAME})\s*:\s*(?:async\s*)?(?:function\b\s*\*?\s*(?:{_NAME})?\s*)?\("),
]

# Single-parameter arrows without parentheses: ``const f = x => {``
_BARE_ARROW = re.compile(rf"\b(?:const|let|var)\s+({_NAME})\s*=\s*(?:async\s+)?{_NAME}\s*=>\s*\{{")

_NOT_FUNCTIONS = frozenset(
    {
        "if",
        "for",
        "while",
        "switch",
        "catch",
        "return",
        "function",
        "with",
        "do",
        "else",
        "typeof",
        "await",
        "new",
        "super",
        "import",
        "require",
    }
)

_BODY_LOOKAHEAD = 300


@dataclass(frozen=True)
class FunctionSpan:
    name: str
    body_start: int
    body_end: int


def _body_after(text: str, mask: bytearray, close: int) -> Optional[int]:
    """Index of the body's ``{`` following a parameter list, if any."""
    n = len(text)
    j = close + 1
    limit = min(n, j + _BODY_LOOKAHEAD)
    while j < limit:
        if mask[j]:
            c = text[j]
            if c == "{":
                return j
            if text.startswith("=>", j):
                k = j + 2
                while k < n and text[k].isspace():
                    k += 1
                return k if k < n and text[k] == "{" else None
            if c in ";}),":
                return None
        j += 1
    return None


def find_functions(text: str, mask: bytearray) -> List[FunctionSpan]:
    spans: dict[int, FunctionSpan] = {}
    for pattern in _PATTERNS:
        for m in pattern.finditer(text):
            name = m.group(1)
            paren = m.end() - 1
            if name in _NOT_FUNCTIONS or not mask[m.start(1)] or not mask[paren]:
                continue
            close = find_matching(text, mask, paren)
            if close is None:
                continue
            body = _body_after(text, mask, close)
            if body is None or body in spans:
                continue
            end = find_matching(text, mask, body)
            if end is None:
                continue
            spans[body] = FunctionSpan(name, body, end)
    for m in _BARE_ARROW.finditer(text):
        body = m.end() - 1
        if not mask[body] or body in spans:
            continue
        end = find_matching(text, mask, body)
        if end is not None:
            spans[body] = FunctionSpan(m.group(1), body, end)
    return sorted(spans.values(), key=lambda s: s.body_start)


def enclosing_function(spans: List[FunctionSpan], offset: int) -> Optional[str]:
    """Name of the innermost function whose body contains ``offset``."""
    best: Optional[FunctionSpan] = None
    for span in spans:
        if span.body_start > offset:
            break
        if span.body_start < offset < span.body_end:
            best = span
    return best.name if best else None
