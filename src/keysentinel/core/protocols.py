"""
Capability protocols consumed by the dispatcher.

The dispatcher never imports a concrete store client or executor. It
depends on two shapes: something that yields changed key names and can
fetch a nested value tree (``WatchClient``), and something with a name
that can be executed with an optional context value (``Executor``).

Architecture:
    ::

        protocols.py
        ├── WatchClient   — change queue + nested fetch (memory, redis)
        └── Executor      — named unit of work (function, command, template)

Guardrails:
    ❌ DON'T: Return error values from ``Executor.execute``
    ✅ DO: Raise; the dispatcher records the exception as a failed outcome

    ❌ DON'T: Block forever in ``WatchClient.get``
    ✅ DO: Raise ``ContextFetchError`` when the store is unreachable

Tags:
    protocol, executor, client, keysentinel, contracts

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import queue
from collections.abc import Mapping, Sequence
from typing import Any, Protocol, runtime_checkable

# Placed on a change queue by a client whose stream has ended.
STREAM_CLOSED = None

ContextValue = Mapping[str, Any]


@runtime_checkable
class WatchClient(Protocol):
    """
    Key/value store client the dispatcher watches.

    ``changes`` delivers one watch key name per change event, in store
    order. A client whose stream ends puts ``STREAM_CLOSED`` (``None``)
    on the queue.
    """

    @property
    def changes(self) -> queue.Queue[str | None]:
        """Queue of changed watch keys."""
        ...

    def get(self, path: Sequence[str]) -> dict[str, Any]:
        """Fetch the nested value tree rooted at ``path``.

        Raises:
            KeyNotFoundError: Nothing is stored under ``path``
            ContextFetchError: The store could not be read
        """
        ...

    def close(self) -> None:
        """Stop watching and release connections."""
        ...


@runtime_checkable
class Executor(Protocol):
    """
    Named unit of work triggered by a change or by an explicit request.

    ``value`` is the context tree fetched for the changed key, or ``None``
    when the executor is run by name. Failure is signalled by raising.
    """

    name: str

    def execute(self, value: ContextValue | None) -> None:
        ...


__all__ = ["STREAM_CLOSED", "ContextValue", "WatchClient", "Executor"]
