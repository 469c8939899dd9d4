"""Executor Registry — name index and key index.

Manifesto:
The dispatcher needs two lookups: by name for explicit runs
(``keysentinel exec reload``) and by watch key for change-driven
runs. Both are derived from the same ``add`` calls at startup and
never shrink afterwards.

ARCHITECTURE
────────────
::

    ExecutorRegistry
      ├── .add(keys, executor)   ─ append to each key list, set name entry
      ├── .get(name)             ─ lookup by name (raises if unknown)
      ├── .subscribers(key)      ─ executors for a key, in add order
      ├── .names() / .keys()     ─ registered names / watched keys
      └── .by_name / .by_key     ─ read-only views of both indices

NAME COLLISIONS
───────────────
Re-adding the *same* executor object is always allowed; it appends
again to the key lists. A *different* object claiming a taken name
replaces the name entry (last wins) and logs
``executor.name_collision``. With ``strict=True`` it raises
``DuplicateExecutorError`` instead and nothing is modified.

Not safe for concurrent ``add`` calls.

Tags:
    keysentinel, dispatch, registry, lookup

Doc-Types:
    api-reference
"""

from collections.abc import Iterable, Mapping
from types import MappingProxyType

from keysentinel.core.errors import DuplicateExecutorError, ExecutorNotFoundError
from keysentinel.core.logging import get_logger
from keysentinel.core.protocols import Executor

logger = get_logger(__name__)


class ExecutorRegistry:
    """Append-only executor registry.

    Example:
        >>> registry = ExecutorRegistry()
        >>> registry.add(["upstreams", "certs"], reload_nginx)
        >>> registry.subscribers("certs")
        [reload_nginx]
        >>> registry.get("reload-nginx")
        reload_nginx
    """

    def __init__(self, strict: bool = False):
        self._strict = strict
        self._by_name: dict[str, Executor] = {}
        self._by_key: dict[str, list[Executor]] = {}

    def add(self, keys: Iterable[str], executor: Executor) -> None:
        """Register an executor under every key in ``keys`` and under its name.

        Args:
            keys: Watch keys to subscribe to; may be empty
            executor: Executor to register

        Raises:
            DuplicateExecutorError: In strict mode, when a different
                executor already owns ``executor.name``
        """
        keys = list(keys)
        name = executor.name
        previous = self._by_name.get(name)

        if previous is not None and previous is not executor:
            if self._strict:
                raise DuplicateExecutorError(name)
            logger.warning("executor.name_collision", name=name)

        for key in keys:
            self._by_key.setdefault(key, []).append(executor)
        self._by_name[name] = executor

        logger.debug("executor.registered", name=name, keys=keys)

    def get(self, name: str) -> Executor:
        """Get an executor by name.

        Raises:
            ExecutorNotFoundError: If no executor has that name
        """
        try:
            return self._by_name[name]
        except KeyError:
            raise ExecutorNotFoundError(name) from None

    def subscribers(self, key: str) -> list[Executor]:
        """Executors subscribed to ``key`` in registration order (a copy)."""
        return list(self._by_key.get(key, ()))

    def names(self) -> list[str]:
        """Registered names in first-registration order."""
        return list(self._by_name)

    def keys(self) -> list[str]:
        """Watched keys in first-subscription order."""
        return list(self._by_key)

    def keys_for(self, name: str) -> list[str]:
        """Watch keys the named executor is subscribed to."""
        executor = self.get(name)
        return [key for key, subs in self._by_key.items() if any(s is executor for s in subs)]

    @property
    def by_name(self) -> Mapping[str, Executor]:
        return MappingProxyType(self._by_name)

    @property
    def by_key(self) -> Mapping[str, list[Executor]]:
        return MappingProxyType(self._by_key)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __len__(self) -> int:
        return len(self._by_name)
