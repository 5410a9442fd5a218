"""Call-site rewriting into the structured-logger facade."""

from .facade import Facade, insertion_point, is_commonjs
from .rewriter import RewriteResult, Rewriter

__all__ = ["Facade", "Rewriter", "RewriteResult", "insertion_point", "is_commonjs"]
