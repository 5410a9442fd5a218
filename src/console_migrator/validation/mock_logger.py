"""In-memory stand-in for the structured logger, used to replay migrated calls."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

LOGGER_LEVELS = ("info", "warning", "error", "debug")


@dataclass(frozen=True)
class CapturedCall:
    method: str
    args_text: str
    call_id: Optional[str] = None
    component: Optional[str] = None


class CapturingLogger:
    """Records every invocation instead of emitting it.

    ``with_call_id`` returns a bound logger sharing the same capture list, the
    way the real facade returns a child logger. Each call (the level method
    and every ``with_call_id`` link) counts as one operation.
    """

    def __init__(
        self,
        component: Optional[str] = None,
        call_id: Optional[str] = None,
        _calls: Optional[List[CapturedCall]] = None,
        _ops: Optional[List[int]] = None,
    ):
        self.component = component
        self.call_id = call_id
        self._calls = _calls if _calls is not None else []
        self._ops = _ops if _ops is not None else [0]

    def with_call_id(self, call_id: str) -> "CapturingLogger":
        self._ops[0] += 1
        return CapturingLogger(self.component, call_id, self._calls, self._ops)

    def _capture(self, method: str, args_text: str) -> None:
        self._ops[0] += 1
        self._calls.append(CapturedCall(method, args_text, self.call_id, self.component))

    def info(self, args_text: str = "") -> None:
        self._capture("info", args_text)

    def warning(self, args_text: str = "") -> None:
        self._capture("warning", args_text)

    def error(self, args_text: str = "") -> None:
        self._capture("error", args_text)

    def debug(self, args_text: str = "") -> None:
        self._capture("debug", args_text)

    def log(self, method: str, args_text: str = "") -> None:
        if method not in LOGGER_LEVELS:
            raise AttributeError(f"CapturingLogger has no level '{method}'")
        getattr(self, method)(args_text)

    @property
    def calls(self) -> List[CapturedCall]:
        return list(self._calls)

    @property
    def methods(self) -> List[str]:
        return [c.method for c in self._calls]

    @property
    def operations(self) -> int:
        return self._ops[0]

    def reset(self) -> None:
        self._calls.clear()
        self._ops[0] = 0
