"""Post-migration validation.

Four independent checks run on every migrated file:

- **syntax**: the rewrite introduced no new delimiter problems
- **imports**: one facade import and one logger acquisition, consistent use
- **equivalence**: replaying the logger calls against :class:`CapturingLogger`
  reproduces the original sequence of diagnostic calls
- **performance**: logger operations stay within ``max_overhead_ratio`` of
  the baseline

Component rules (MCP stdout use, Enterprise sensitive data, Memory debug
volume) and remaining console calls only produce warnings.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Protocol, Sequence, Tuple

from ..config import MigrationConfig, default_config
from ..exceptions import ValidationError
from ..logging_config import get_logger
from ..models import (
    LOGGER_METHODS,
    CallSite,
    CheckResult,
    ComponentTag,
    FileValidation,
    ValidationSummary,
)
from ..rewriting import Facade
from ..scanning import CallSiteScanner, code_mask, find_matching
from .mock_logger import LOGGER_LEVELS, CapturingLogger

logger = get_logger(__name__)

CHECK_NAMES = ("syntax", "imports", "equivalence", "performance")

_MEMBER_CALL = re.compile(r"\s*([A-Za-z_$][\w$]*)\s*\(")
_DOT = re.compile(r"\s*\.\s*")
_SENSITIVE = re.compile(r"password|passwd|secret|token|api[_-]?key|credential", re.IGNORECASE)
_STDOUT_TOKENS = ("log", "info")
DEBUG_VOLUME_THRESHOLD = 25


@dataclass(frozen=True)
class MigratedFile:
    """Input to the validator: one file before and after migration."""

    path: str
    original: str
    migrated: str
    component: Optional[ComponentTag] = None


@dataclass(frozen=True)
class LoggerCall:
    """One ``<logger>[.withCallId(...)].<level>(...)`` chain in rewritten text."""

    start: int
    method: str
    args_text: Optional[str]
    call_id: Optional[str] = None

    @property
    def broken(self) -> bool:
        return self.args_text is None


class BaselineProvider(Protocol):
    def baseline(self, path: str, original: str) -> float:
        ...


class CallCountBaseline:
    """Baseline of one logging operation per original diagnostic call."""

    def __init__(self, scanner: CallSiteScanner):
        self.scanner = scanner

    def baseline(self, path: str, original: str) -> float:
        return float(len(self.scanner.find_remaining(original, path, include_nested=True)))


def _unquote(literal: str) -> str:
    literal = literal.strip()
    if len(literal) >= 2 and literal[0] == literal[-1] and literal[0] in ("'", '"', "`"):
        return literal[1:-1].replace("\\'", "'").replace("\\\\", "\\")
    return literal


class MigrationValidator:
    """Runs the post-migration checks on rewritten files."""

    def __init__(
        self,
        config: Optional[MigrationConfig] = None,
        baseline: Optional[BaselineProvider] = None,
    ):
        self.config = config or default_config
        self.scanner = CallSiteScanner(self.config)
        self.facade = Facade(self.config)
        self.baseline = baseline or CallCountBaseline(self.scanner)
        self._component_re = re.compile(
            rf"\b{re.escape(self.config.facade_function)}\s*\(\s*['\"]([^'\"]+)['\"]"
        )

    # ── Parsing helpers ────────────────────────────────────────

    def logger_calls(self, text: str, mask: Optional[bytearray] = None) -> List[LoggerCall]:
        """Structured-logger call chains in ``text``, earliest first."""
        if mask is None:
            mask = code_mask(text)
        calls: List[LoggerCall] = []
        for m in self.facade.usage_pattern().finditer(text):
            if not mask[m.start()]:
                continue
            call = self._parse_chain(text, mask, m.start(), m.end())
            if call is not None:
                calls.append(call)
        return calls

    def _parse_chain(
        self, text: str, mask: bytearray, start: int, pos: int
    ) -> Optional[LoggerCall]:
        call_id: Optional[str] = None
        while True:
            m = _MEMBER_CALL.match(text, pos)
            if not m:
                # Property access, not a call
                return None
            name = m.group(1)
            paren = m.end() - 1
            close = find_matching(text, mask, paren)
            if close is None:
                return LoggerCall(start, name, None, call_id)
            args = text[paren + 1 : close]
            if name != self.config.call_id_method:
                return LoggerCall(start, name, args, call_id)
            call_id = _unquote(args)
            dot = _DOT.match(text, close + 1)
            if not dot:
                return LoggerCall(start, name, None, call_id)
            pos = dot.end()

    def _component_of(self, text: str) -> Optional[str]:
        m = self._component_re.search(text)
        return m.group(1) if m else None

    def replay(self, migrated: str, path: str = "<memory>") -> Tuple[CapturingLogger, List[str]]:
        """Replay every logger call into a fresh CapturingLogger.

        Returns the logger and a list of problems (broken chains, unknown
        levels) found while replaying.
        """
        capture = CapturingLogger(component=self._component_of(migrated))
        problems: List[str] = []
        for call in self.logger_calls(migrated):
            line = migrated.count("\n", 0, call.start) + 1
            if call.broken:
                problems.append(f"line {line}: unterminated logger call")
                continue
            if call.method not in LOGGER_LEVELS:
                problems.append(f"line {line}: unknown logger method '{call.method}'")
                continue
            target = capture.with_call_id(call.call_id) if call.call_id is not None else capture
            target.log(call.method, call.args_text or "")
        return capture, problems

    def _sequence(self, text: str, path: str) -> Tuple[List[str], int, List[CallSite]]:
        """Ordered logger levels of all diagnostic calls in ``text``.

        Console calls are mapped to the level they migrate to. Returns the
        sequence, the number of logger calls and the remaining console sites.
        """
        mask = code_mask(text)
        remaining = self.scanner.find_remaining(text, path, include_nested=True)
        calls = [c for c in self.logger_calls(text, mask) if not c.broken]
        events = [(s.start, LOGGER_METHODS[s.method]) for s in remaining]
        events += [(c.start, c.method) for c in calls]
        events.sort()
        return [method for _, method in events], len(calls), remaining

    # ── Checks ─────────────────────────────────────────────────

    def check_syntax(self, original: str, migrated: str, path: str = "<memory>") -> CheckResult:
        before = self.scanner.delimiter_issues(original)
        after = self.scanner.delimiter_issues(migrated)
        if len(after) > len(before):
            new = [i.describe() for i in after[:3]]
            return CheckResult(
                "syntax",
                False,
                f"{len(after) - len(before)} new delimiter issue(s): {'; '.join(new)}",
            )
        return CheckResult("syntax", True, "")

    def check_imports(self, migrated: str, path: str = "<memory>") -> CheckResult:
        mask = code_mask(migrated)
        imports = self.facade.import_count(migrated, mask)
        acquisitions = self.facade.acquisition_count(migrated, mask)
        usages = self.facade.usage_count(migrated, mask)
        problems: List[str] = []
        if imports > 1:
            problems.append(f"facade imported {imports} times")
        if acquisitions > 1:
            problems.append(f"logger acquired {acquisitions} times")
        if usages and not acquisitions:
            problems.append("logger used without acquisition")
        if acquisitions and not imports:
            problems.append("logger acquired without facade import")
        if usages and not imports and not acquisitions:
            problems.append("facade import missing")
        if problems:
            return CheckResult("imports", False, "; ".join(problems))
        return CheckResult("imports", True, "")

    def check_equivalence(
        self, original: str, migrated: str, path: str = "<memory>"
    ) -> CheckResult:
        expected, original_logger_calls, _ = self._sequence(original, path)
        actual, _, remaining = self._sequence(migrated, path)
        capture, problems = self.replay(migrated, path)
        if problems:
            return CheckResult("equivalence", False, "; ".join(problems))

        captured = len(capture.calls) - original_logger_calls
        if captured + len(remaining) + original_logger_calls != len(expected):
            return CheckResult(
                "equivalence",
                False,
                f"captured {captured} logger call(s) + {len(remaining)} remaining console "
                f"call(s) != {len(expected) - original_logger_calls} original call(s)",
            )
        if actual != expected:
            for index, (want, got) in enumerate(zip(expected, actual)):
                if want != got:
                    return CheckResult(
                        "equivalence",
                        False,
                        f"call #{index + 1}: expected {want}, got {got}",
                    )
            return CheckResult("equivalence", False, "call sequence differs")
        return CheckResult("equivalence", True, "")

    def check_performance(
        self, original: str, migrated: str, path: str = "<memory>"
    ) -> CheckResult:
        capture, _ = self.replay(migrated, path)
        remaining = self.scanner.find_remaining(migrated, path, include_nested=True)
        cost = capture.operations + len(remaining)
        baseline = self.baseline.baseline(path, original)
        if baseline <= 0:
            if cost == 0:
                return CheckResult("performance", True, "")
            return CheckResult("performance", False, f"{cost} operation(s) against a zero baseline")
        limit = baseline * (1 + self.config.max_overhead_ratio)
        if cost > limit:
            return CheckResult(
                "performance",
                False,
                f"{cost} logging operation(s) exceed limit {limit:.1f} "
                f"(baseline {baseline:.1f}, ratio {self.config.max_overhead_ratio})",
            )
        return CheckResult("performance", True, "")

    # ── Advisory rules ─────────────────────────────────────────

    def advisories(
        self, migrated: str, path: str, component: Optional[ComponentTag] = None
    ) -> List[str]:
        warnings: List[str] = []
        remaining = self.scanner.find_remaining(migrated, path, include_nested=True)
        if remaining:
            lines = ", ".join(str(s.line) for s in remaining[:5])
            more = "" if len(remaining) <= 5 else ", ..."
            warnings.append(
                f"{path}: {len(remaining)} console call(s) left for manual review (lines {lines}{more})"
            )

        if component is ComponentTag.MCP:
            stdout = [s for s in remaining if s.source_token in _STDOUT_TOKENS]
            if stdout:
                warnings.append(
                    f"{path}: {len(stdout)} console.log/info call(s) write to stdout in an MCP "
                    f"component; MCP servers must log to stderr"
                )

        calls = [c for c in self.logger_calls(migrated) if not c.broken]
        if component is ComponentTag.ENTERPRISE:
            args = [c.args_text or "" for c in calls] + [s.args_text or "" for s in remaining]
            flagged = sum(1 for a in args if _SENSITIVE.search(a))
            if flagged:
                warnings.append(
                    f"{path}: {flagged} log call(s) may include sensitive data "
                    f"(password/token/secret)"
                )

        if component is ComponentTag.MEMORY:
            debug = sum(1 for c in calls if c.method == "debug")
            if debug > DEBUG_VOLUME_THRESHOLD:
                warnings.append(
                    f"{path}: {debug} debug calls; consider sampling high-volume memory logging"
                )
        return warnings

    # ── Entry points ───────────────────────────────────────────

    def validate_file(
        self,
        path: str,
        original: str,
        migrated: str,
        component: Optional[ComponentTag] = None,
    ) -> FileValidation:
        checks = [
            self.check_syntax(original, migrated, path),
            self.check_imports(migrated, path),
            self.check_equivalence(original, migrated, path),
            self.check_performance(original, migrated, path),
        ]
        result = FileValidation(
            path=path, checks=checks, warnings=self.advisories(migrated, path, component)
        )
        if not result.passed:
            logger.warning(f"Validation failed: {'; '.join(result.issues)}")
        return result

    def require_valid(
        self,
        path: str,
        original: str,
        migrated: str,
        component: Optional[ComponentTag] = None,
    ) -> FileValidation:
        """Like :meth:`validate_file`, but a failing file raises.

        Raises:
            ValidationError: Carrying the failed :class:`FileValidation`
        """
        result = self.validate_file(path, original, migrated, component)
        if not result.passed:
            raise ValidationError(path, result.issues, result)
        return result

    def validate_migration(self, files: Iterable[MigratedFile]) -> ValidationSummary:
        """Validate every file; failures never stop the remaining checks."""
        results = [self.validate_file(f.path, f.original, f.migrated, f.component) for f in files]
        return self.summarize(results)

    def summarize(
        self, results: Sequence[FileValidation], rolled_back: Sequence[str] = ()
    ) -> ValidationSummary:
        checks = {name: True for name in CHECK_NAMES}
        issues: List[str] = []
        warnings: List[str] = []
        for result in results:
            for check in result.checks:
                if not check.passed:
                    checks[check.name] = False
            issues.extend(result.issues)
            warnings.extend(result.warnings)
        return ValidationSummary(
            passed=not issues,
            issues=issues,
            warnings=warnings,
            checks=checks,
            files_validated=len(results),
            files_rolled_back=list(rolled_back),
        )
