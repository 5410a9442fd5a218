"""Rewrite diagnostic-print call sites into structured-logger calls.

Argument text is carried over byte for byte; only the callee changes. Sites
are replaced from the end of the file towards the start so that earlier
offsets stay valid while later ones are edited.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Set

from ..config import MigrationConfig, default_config
from ..exceptions import RewriteError
from ..logging_config import get_logger
from ..models import LOGGER_METHODS, CallSite, ComponentTag
from ..scanning.lexer import code_mask
from .facade import Facade, insertion_point, is_commonjs, newline_of

logger = get_logger(__name__)


def nested_sites(sites: Sequence[CallSite]) -> Set[CallSite]:
    """Sites lying inside the argument list of another resolved site.

    The outer call is rewritten with its arguments verbatim, so an inner call
    stays a console call and must be reported as skipped.
    """
    nested: Set[CallSite] = set()
    outer_end = -1
    for site in sorted(sites, key=lambda s: s.start):
        if site.start < outer_end:
            nested.add(site)
            continue
        if site.resolved:
            outer_end = site.end
    return nested


@dataclass
class RewriteResult:
    """New file content plus what happened to each call site."""

    content: str
    migrated: List[CallSite] = field(default_factory=list)
    skipped: List[CallSite] = field(default_factory=list)
    patterns: List[str] = field(default_factory=list)
    issues: List[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.migrated)


class Rewriter:
    """Turns call sites into facade calls and adds the facade import."""

    def __init__(self, config: Optional[MigrationConfig] = None):
        self.config = config or default_config
        self.facade = Facade(self.config)

    def pattern_for(self, site: CallSite) -> str:
        """Human-readable description of the applied mapping."""
        return f"{site.pattern} -> {self.config.logger_identifier}.{LOGGER_METHODS[site.method]}"

    def rewrite_call(self, site: CallSite, component: ComponentTag, relpath: str) -> str:
        """Replacement text for a single call site.

        Raises:
            RewriteError: If the site's argument list was never delimited
        """
        if not site.resolved or site.args_text is None:
            raise RewriteError(relpath, site.line, "argument list could not be delimited")
        method = LOGGER_METHODS[site.method]
        call_id = self.facade.call_id(component, relpath, site.function, site.line)
        return self.facade.call(method, site.args_text, call_id)

    def rewrite(
        self, text: str, sites: Sequence[CallSite], component: ComponentTag, path: str
    ) -> RewriteResult:
        """Apply every resolvable rewrite and record the ones skipped."""
        content = text
        migrated: List[CallSite] = []
        skipped: List[CallSite] = []
        issues: List[str] = []
        boundary = len(text) + 1
        nested = nested_sites(sites)

        for site in sorted(sites, key=lambda s: s.start, reverse=True):
            if site in nested:
                skipped.append(site)
                issues.append(
                    f"{path}:{site.line}: {site.pattern} nested inside another call, manual review"
                )
                continue
            if site.end > boundary:
                skipped.append(site)
                issues.append(f"{path}:{site.line}: {site.pattern} overlaps another call, skipped")
                continue
            try:
                replacement = self.rewrite_call(site, component, path)
            except RewriteError as e:
                skipped.append(site)
                issues.append(f"{path}:{site.line}: {site.pattern} skipped, manual review ({e.reason})")
                logger.debug(str(e))
                continue
            content = content[: site.start] + replacement + content[site.end :]
            boundary = site.start
            migrated.append(site)

        migrated.reverse()
        skipped.reverse()
        issues.reverse()

        if migrated:
            content = self.ensure_import(content, component, path)

        return RewriteResult(
            content=content,
            migrated=migrated,
            skipped=skipped,
            patterns=sorted({self.pattern_for(s) for s in migrated}),
            issues=issues,
        )

    def ensure_import(self, text: str, component: ComponentTag, relpath: str) -> str:
        """Insert the facade import and the logger acquisition, once each."""
        if text.startswith("\ufeff"):
            return "\ufeff" + self.ensure_import(text[1:], component, relpath)
        mask = code_mask(text)
        pieces: List[str] = []
        if not self.facade.import_count(text, mask):
            pieces.append(self.facade.import_statement(relpath, is_commonjs(text, relpath, mask)))
        if not self.facade.acquisition_count(text, mask):
            pieces.append(self.facade.acquisition_statement(component))
        if not pieces:
            return text

        nl = newline_of(text)
        pos = insertion_point(text, mask)
        block = nl.join(pieces) + nl
        if pos > 0 and text[pos - 1] != "\n":
            block = nl + block
        rest = text[pos:]
        if rest and not rest.startswith(("\n", "\r\n")):
            block += nl
        return text[:pos] + block + rest
