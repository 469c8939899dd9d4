"""Executor wrapping a plain callable."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from keysentinel.core.protocols import ContextValue


class FunctionExecutor:
    """Adapt ``fn(value)`` to the Executor protocol.

    Example:
        >>> def reload(value):
        ...     print("reloading with", value)
        >>> ex = FunctionExecutor("reload", reload)
        >>> ex.execute({"a": 1})
        reloading with {'a': 1}
    """

    def __init__(self, name: str, fn: Callable[[ContextValue | None], Any]):
        self.name = name
        self._fn = fn

    def execute(self, value: ContextValue | None) -> None:
        self._fn(value)

    def __repr__(self) -> str:
        return f"FunctionExecutor({self.name!r})"


def executor(name: str) -> Callable[[Callable[[ContextValue | None], Any]], FunctionExecutor]:
    """Decorator turning a function into a named executor.

    Example:
        >>> @executor("notify")
        ... def notify(value):
        ...     pass
        >>> notify.name
        'notify'
    """

    def decorator(fn: Callable[[ContextValue | None], Any]) -> FunctionExecutor:
        return FunctionExecutor(name, fn)

    return decorator
