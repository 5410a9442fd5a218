"""Tolerant source scanning: code masks, call sites, enclosing functions."""

from .functions import FunctionSpan, enclosing_function, find_functions
from .lexer import DelimiterIssue, code_mask, delimiter_issues, find_matching, line_of
from .scanner import CallSiteScanner, decode_source

__all__ = [
    "CallSiteScanner",
    "decode_source",
    "DelimiterIssue",
    "code_mask",
    "delimiter_issues",
    "find_matching",
    "line_of",
    "FunctionSpan",
    "find_functions",
    "enclosing_function",
]
