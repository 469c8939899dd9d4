"""
In-memory store client.

Manifesto:
    Single-process setups and test suites need a store that behaves like
    the real thing (writes produce change notifications, reads return a
    nested tree) without running a server.

Keys written with ``set`` land under ``data[namespace][key]`` and put
``key`` on the change queue, mirroring how a watch on the namespace
reports the watch key that changed.

Tags:
    keysentinel, client, in-memory, testing, single-node

Doc-Types:
    api-reference
"""

from __future__ import annotations

import copy
import queue
import threading
from collections.abc import Mapping, Sequence
from typing import Any

from keysentinel.core.errors import KeyNotFoundError
from keysentinel.core.protocols import STREAM_CLOSED

__all__ = ["InMemoryClient"]


class InMemoryClient:
    """Nested-dict store with a change queue.

    Example::

        client = InMemoryClient({"sentinel": {"db": {"host": "10.0.0.2"}}})
        client.get(["sentinel", "db"])      # {"host": "10.0.0.2"}
        client.set("db", {"host": "10.0.0.3"})
        client.changes.get_nowait()         # "db"
    """

    def __init__(
        self,
        data: Mapping[str, Any] | None = None,
        *,
        namespace: str = "sentinel",
    ) -> None:
        self._data: dict[str, Any] = copy.deepcopy(dict(data)) if data else {}
        self._namespace = namespace
        self._changes: queue.Queue[str | None] = queue.Queue()
        self._lock = threading.Lock()
        self._closed = False

    @property
    def changes(self) -> queue.Queue[str | None]:
        return self._changes

    @property
    def closed(self) -> bool:
        return self._closed

    def get(self, path: Sequence[str]) -> dict[str, Any]:
        """Return a deep copy of the tree at ``path``.

        A scalar stored at ``path`` is returned as ``{"value": scalar}``.
        """
        with self._lock:
            node: Any = self._data
            for segment in path:
                if not isinstance(node, Mapping) or segment not in node:
                    raise KeyNotFoundError("/".join(path))
                node = node[segment]
            if isinstance(node, Mapping):
                return copy.deepcopy(dict(node))
            return {"value": copy.deepcopy(node)}

    def set(self, key: str, value: Any, *, notify: bool = True) -> None:
        """Store ``value`` under ``[namespace, key]`` and report the change."""
        with self._lock:
            self._data.setdefault(self._namespace, {})[key] = copy.deepcopy(value)
        if notify:
            self.notify(key)

    def delete(self, key: str, *, notify: bool = True) -> None:
        with self._lock:
            self._data.get(self._namespace, {}).pop(key, None)
        if notify:
            self.notify(key)

    def notify(self, key: str) -> None:
        """Report a change to ``key`` without writing anything."""
        if self._closed:
            return
        self._changes.put(key)

    def close(self) -> None:
        """End the change stream."""
        if self._closed:
            return
        self._closed = True
        self._changes.put(STREAM_CLOSED)
