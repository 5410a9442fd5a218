"""Tolerant tokenizer for JavaScript/TypeScript source text.

This is not a parser. It classifies every character of a file as *code* or
*not code* (comments, string literals, template-literal text, regex
literals) so that pattern matching and bracket matching only look at code.
It never fails: unterminated strings end at the newline, unterminated
comments and template literals run to end of file.

Template substitutions (``${ ... }``) are code; the ``${`` and the closing
``}`` themselves are not, so they never take part in bracket matching.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional

OPENERS = {"(": ")", "[": "]", "{": "}"}
CLOSERS = {")": "(", "]": "[", "}": "{"}

# A "/" after one of these starts a regex literal rather than a division.
_REGEX_PRECEDERS = set("(,=:[!&|?{};+-*%<>~^")
_REGEX_KEYWORDS = frozenset(
    {
        "return",
        "typeof",
        "instanceof",
        "case",
        "do",
        "else",
        "in",
        "of",
        "new",
        "delete",
        "void",
        "throw",
        "yield",
        "await",
    }
)

_IDENT_CHARS = re.compile(r"[\w$]")


@dataclass(frozen=True)
class DelimiterIssue:
    """One bracket problem found while walking the code mask."""

    line: int
    char: str
    kind: str  # "unexpected", "unclosed", "mismatched"

    def describe(self) -> str:
        if self.kind == "unclosed":
            return f"line {self.line}: '{self.char}' is never closed"
        if self.kind == "mismatched":
            return f"line {self.line}: '{self.char}' closes a different bracket"
        return f"line {self.line}: unexpected '{self.char}'"


def _skip_quoted(text: str, i: int, quote: str) -> int:
    """Return the index just past the string literal starting at ``i``."""
    n = len(text)
    j = i + 1
    while j < n:
        c = text[j]
        if c == "\\":
            j += 2
            continue
        if c == quote:
            return j + 1
        if c == "\n":
            return j
        j += 1
    return n


def _scan_template_text(text: str, i: int) -> tuple[int, bool]:
    """Scan template-literal text starting at ``i``.

    Returns ``(index, opened_substitution)``: the index just past the closing
    backtick (or end of text), or just past ``${`` when a substitution opens.
    """
    n = len(text)
    j = i
    while j < n:
        c = text[j]
        if c == "\\":
            j += 2
            continue
        if c == "`":
            return j + 1, False
        if c == "$" and j + 1 < n and text[j + 1] == "{":
            return j + 2, True
        j += 1
    return n, False


def _previous_significant(text: str, mask: bytearray, i: int) -> tuple[str, str]:
    """Return (char, word) of the last non-space character before ``i``."""
    j = i - 1
    while j >= 0 and text[j].isspace():
        j -= 1
    if j < 0:
        return "", ""
    c = text[j]
    if mask[j] and _IDENT_CHARS.match(c):
        k = j
        while k >= 0 and mask[k] and _IDENT_CHARS.match(text[k]):
            k -= 1
        return c, text[k + 1 : j + 1]
    return c, ""


def _regex_end(text: str, i: int) -> Optional[int]:
    """Return the index past a regex literal starting at ``i``, if it is one."""
    n = len(text)
    j = i + 1
    in_class = False
    while j < n:
        c = text[j]
        if c == "\\":
            j += 2
            continue
        if c == "\n":
            return None
        if in_class:
            if c == "]":
                in_class = False
        elif c == "[":
            in_class = True
        elif c == "/":
            j += 1
            while j < n and _IDENT_CHARS.match(text[j]):
                j += 1
            return j
        j += 1
    return None


def code_mask(text: str) -> bytearray:
    """Mark each character of ``text`` with 1 if it is code, 0 otherwise."""
    n = len(text)
    mask = bytearray(n)
    # Brace depth at which each open template substitution started
    substitutions: List[int] = []
    depth = 0
    i = 0
    while i < n:
        c = text[i]
        nxt = text[i + 1] if i + 1 < n else ""

        if c == "/" and nxt == "/":
            j = text.find("\n", i)
            i = n if j == -1 else j
            continue
        if c == "/" and nxt == "*":
            j = text.find("*/", i + 2)
            i = n if j == -1 else j + 2
            continue
        if c in ("'", '"'):
            i = _skip_quoted(text, i, c)
            continue
        if c == "`":
            i, opened = _scan_template_text(text, i + 1)
            if opened:
                substitutions.append(depth)
            continue
        if c == "/":
            prev, word = _previous_significant(text, mask, i)
            if prev == "" or prev in _REGEX_PRECEDERS or word in _REGEX_KEYWORDS:
                end = _regex_end(text, i)
                if end is not None:
                    i = end
                    continue
        if c == "}" and substitutions and substitutions[-1] == depth:
            substitutions.pop()
            i, opened = _scan_template_text(text, i + 1)
            if opened:
                substitutions.append(depth)
            continue

        if c == "{":
            depth += 1
        elif c == "}":
            depth -= 1
        mask[i] = 1
        i += 1
    return mask


def find_matching(text: str, mask: bytearray, open_index: int) -> Optional[int]:
    """Return the index of the bracket closing the one at ``open_index``.

    Returns None if a closer of the wrong kind is met first or the text ends
    before the bracket is closed.
    """
    stack: List[str] = []
    n = len(text)
    j = open_index
    while j < n:
        if mask[j]:
            c = text[j]
            if c in OPENERS:
                stack.append(c)
            elif c in CLOSERS:
                if not stack or stack[-1] != CLOSERS[c]:
                    return None
                stack.pop()
                if not stack:
                    return j
        j += 1
    return None


def delimiter_issues(text: str, mask: Optional[bytearray] = None) -> List[DelimiterIssue]:
    """Walk all code characters and report bracket problems."""
    if mask is None:
        mask = code_mask(text)
    issues: List[DelimiterIssue] = []
    stack: List[tuple[str, int]] = []
    line = 1
    for j, c in enumerate(text):
        if c == "\n":
            line += 1
            continue
        if not mask[j]:
            continue
        if c in OPENERS:
            stack.append((c, line))
        elif c in CLOSERS:
            want = CLOSERS[c]
            if stack and stack[-1][0] == want:
                stack.pop()
            elif any(opener == want for opener, _ in stack):
                while stack and stack[-1][0] != want:
                    opener, opened_at = stack.pop()
                    issues.append(DelimiterIssue(opened_at, opener, "unclosed"))
                stack.pop()
                issues.append(DelimiterIssue(line, c, "mismatched"))
            else:
                issues.append(DelimiterIssue(line, c, "unexpected"))
    for opener, opened_at in stack:
        issues.append(DelimiterIssue(opened_at, opener, "unclosed"))
    return issues


def line_of(text: str, index: int) -> int:
    return text.count("\n", 0, index) + 1
