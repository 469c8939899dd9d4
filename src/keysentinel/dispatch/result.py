"""Per-executor outcomes and the aggregated dispatch report.

A dispatch (one changed key, or one explicit by-name request) runs every
selected executor to completion. Each run produces an ``ExecutorOutcome``;
the ordered list of outcomes forms a ``DispatchReport`` that answers both
"did anything fail?" (``failed``) and "which ones?" (``failures``,
``errors``).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from keysentinel.core.errors import categorize_error


@dataclass
class ExecutorOutcome:
    """Result of running one executor once."""

    executor: str
    key: str | None = None
    error: BaseException | None = None
    duration_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "executor": self.executor,
            "ok": self.ok,
            "duration_ms": round(self.duration_ms, 2),
        }
        if self.key is not None:
            result["key"] = self.key
        if self.error is not None:
            result["error_type"] = type(self.error).__name__
            result["error_category"] = categorize_error(self.error).value
            result["error"] = str(self.error)
        return result


@dataclass
class DispatchReport:
    """Ordered outcomes of one dispatch.

    Attributes:
        key: Watch key that triggered the dispatch (``None`` for by-name runs)
        outcomes: One entry per executor invocation, in invocation order
        unresolved: Executor names that did not resolve (by-name runs only)
    """

    key: str | None = None
    outcomes: list[ExecutorOutcome] = field(default_factory=list)
    unresolved: list[str] = field(default_factory=list)

    @property
    def failures(self) -> list[ExecutorOutcome]:
        return [o for o in self.outcomes if not o.ok]

    @property
    def errors(self) -> list[BaseException]:
        """Errors in subscriber order; empty means full success."""
        return [o.error for o in self.outcomes if o.error is not None]

    @property
    def failed(self) -> bool:
        return bool(self.unresolved) or any(not o.ok for o in self.outcomes)

    @property
    def ok(self) -> bool:
        return not self.failed

    @property
    def executed(self) -> list[str]:
        return [o.executor for o in self.outcomes]

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "ok": self.ok,
            "outcomes": [o.to_dict() for o in self.outcomes],
        }
        if self.key is not None:
            result["key"] = self.key
        if self.unresolved:
            result["unresolved"] = list(self.unresolved)
        return result

    def __len__(self) -> int:
        return len(self.outcomes)


__all__ = ["ExecutorOutcome", "DispatchReport"]
