"""
Redis store client driven by keyspace notifications.

Manifesto:
    Redis is a common place to keep small pieces of deployment state
    (upstream lists, feature switches, certificate fingerprints). Its
    keyspace notifications give a live stream of changed keys without
    polling.

Key layout
──────────
Nested context lives in flat string keys joined by the separator::

    sentinel:upstreams:web      -> "10.0.0.5:8080"
    sentinel:upstreams:api      -> "10.0.0.6:9000"
    sentinel:limits             -> '{"rps": 200}'

``get(["sentinel", "upstreams"])`` returns ``{"web": ..., "api": ...}``.
A write to any key under ``sentinel:upstreams`` reports the watch key
``upstreams``. Values that parse as JSON are decoded; anything else is
returned as the raw string.

Requires keyspace events to be enabled on the server
(``notify-keyspace-events KA``, or ``configure_keyspace_events=True``).

Tags:
    keysentinel, client, redis, keyspace-notifications, multi-node

Doc-Types:
    api-reference
"""

from __future__ import annotations

import json
import queue
import re
from collections.abc import Mapping, Sequence
from typing import Any

import redis

from keysentinel.core.errors import ClientError, ContextFetchError, KeyNotFoundError
from keysentinel.core.logging import get_logger
from keysentinel.core.protocols import STREAM_CLOSED
from keysentinel.core.settings import SentinelSettings

__all__ = ["RedisClient"]

logger = get_logger(__name__)

_GLOB_SPECIAL = re.compile(r"([*?\[\]\\])")


def _escape_glob(value: str) -> str:
    return _GLOB_SPECIAL.sub(r"\\\1", value)


def _decode(raw: str) -> Any:
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        return raw


class RedisClient:
    """Watch client backed by a Redis database.

    Example::

        client = RedisClient("redis://localhost:6379/0", configure_keyspace_events=True)
        client.start()
        sentinel = Sentinel(client)
        ...
        client.close()
    """

    def __init__(
        self,
        url: str = "redis://localhost:6379/0",
        *,
        namespace: str = "sentinel",
        separator: str = ":",
        configure_keyspace_events: bool = False,
        sleep_time: float = 0.1,
    ) -> None:
        self._url = url
        self._namespace = namespace
        self._separator = separator
        self._configure_events = configure_keyspace_events
        self._sleep_time = sleep_time

        self._redis = redis.from_url(url, decode_responses=True)
        self._db = self._redis.connection_pool.connection_kwargs.get("db", 0)
        self._changes: queue.Queue[str | None] = queue.Queue()
        self._pubsub: Any = None
        self._thread: Any = None
        self._closed = False

    @classmethod
    def from_settings(cls, settings: SentinelSettings) -> RedisClient:
        return cls(
            settings.redis_url,
            namespace=settings.namespace,
            separator=settings.separator,
            configure_keyspace_events=settings.configure_keyspace_events,
        )

    @property
    def changes(self) -> queue.Queue[str | None]:
        """Change queue; subscribes to keyspace events on first access."""
        self.start()
        return self._changes

    @property
    def pattern(self) -> str:
        return f"__keyspace@{self._db}__:{_escape_glob(self._namespace + self._separator)}*"

    # ------------------------------------------------------------------ #
    # Watch
    # ------------------------------------------------------------------ #

    def start(self) -> None:
        """Subscribe to keyspace notifications under the namespace."""
        if self._thread is not None or self._closed:
            return

        try:
            if self._configure_events:
                self._redis.config_set("notify-keyspace-events", "KA")
            self._pubsub = self._redis.pubsub(ignore_subscribe_messages=True)
            self._pubsub.psubscribe(**{self.pattern: self._handle_message})
            self._thread = self._pubsub.run_in_thread(
                sleep_time=self._sleep_time,
                daemon=True,
                exception_handler=self._handle_worker_error,
            )
        except redis.RedisError as exc:
            raise ClientError(f"Failed to subscribe to {self.pattern}", cause=exc) from exc

        logger.info("redis.watch_started", pattern=self.pattern)

    def watch_key(self, channel: str) -> str | None:
        """Map a keyspace channel name to the watch key it belongs to."""
        _, _, store_key = channel.partition(":")
        prefix = self._namespace + self._separator
        if not store_key.startswith(prefix):
            return None
        return store_key[len(prefix):].split(self._separator, 1)[0] or None

    def _handle_message(self, message: Mapping[str, Any]) -> None:
        key = self.watch_key(message.get("channel") or "")
        if key is None:
            return
        logger.debug("redis.key_changed", key=key, op=message.get("data"))
        self._changes.put(key)

    def _handle_worker_error(self, exc: BaseException, pubsub: Any, thread: Any) -> None:
        """Listener thread failed: stop it and end the change stream."""
        logger.error("redis.watch_failed", error=str(exc), error_type=type(exc).__name__)
        thread.stop()
        self._changes.put(STREAM_CLOSED)

    # ------------------------------------------------------------------ #
    # Fetch
    # ------------------------------------------------------------------ #

    def get(self, path: Sequence[str]) -> dict[str, Any]:
        """Rebuild the nested tree stored under ``path``."""
        base = self._separator.join(path)
        child_prefix = base + self._separator

        try:
            raw = self._redis.get(base)
            children = sorted(self._redis.scan_iter(match=_escape_glob(child_prefix) + "*"))
            values = self._redis.mget(children) if children else []
        except redis.ResponseError as exc:
            raise ContextFetchError(f"Unreadable key under {base}: {exc}", cause=exc) from exc
        except redis.RedisError as exc:
            raise ContextFetchError(f"Failed to fetch {base}", cause=exc) from exc

        tree: dict[str, Any] = {}
        for store_key, value in zip(children, values):
            if value is None:
                continue
            segments = store_key[len(child_prefix):].split(self._separator)
            node = tree
            for segment in segments[:-1]:
                child = node.get(segment)
                if not isinstance(child, dict):
                    child = {} if child is None else {"value": child}
                    node[segment] = child
                node = child
            leaf = segments[-1]
            if isinstance(node.get(leaf), dict):
                node[leaf]["value"] = _decode(value)
            else:
                node[leaf] = _decode(value)

        if tree:
            if raw is not None:
                tree.setdefault("value", _decode(raw))
            return tree
        if raw is not None:
            decoded = _decode(raw)
            return dict(decoded) if isinstance(decoded, dict) else {"value": decoded}
        raise KeyNotFoundError(base)

    def set(self, path: Sequence[str], value: Any) -> None:
        """Write ``value`` under ``path``, flattening nested mappings."""
        base = self._separator.join(path)
        if isinstance(value, Mapping):
            for name, child in value.items():
                self.set([*path, str(name)], child)
            return
        encoded = value if isinstance(value, str) else json.dumps(value)
        self._redis.set(base, encoded)

    def close(self) -> None:
        """Stop the listener thread and end the change stream."""
        if self._closed:
            return
        self._closed = True

        if self._thread is not None:
            self._thread.stop()
            self._thread = None
        if self._pubsub is not None:
            self._pubsub.close()
            self._pubsub = None
        self._redis.close()
        self._changes.put(STREAM_CLOSED)
        logger.info("redis.watch_stopped")
