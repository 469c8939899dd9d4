"""Sentinel — turns key-change notifications into executor invocations.

The Sentinel owns an :class:`ExecutorRegistry` and a :class:`WatchClient`.
It offers two ways to run executors:

1. ``run(stop)`` — the watch loop. Each changed key is dispatched to its
   subscribers with a freshly fetched context tree.
2. ``execute(names)`` — on demand, by name, without context.

Usage (programmatic)::

    from keysentinel import Sentinel
    from keysentinel.clients.memory import InMemoryClient

    client = InMemoryClient()
    sentinel = Sentinel(client)
    sentinel.add(["upstreams"], reload_nginx)

    stop = threading.Event()
    thread = sentinel.start_background(stop)
    client.set("upstreams", {"web": "10.0.0.5:8080"})
    ...
    stop.set()
    thread.join()

Usage (CLI)::

    keysentinel watch --config sentinel.yaml
    keysentinel exec reload-nginx
"""

from __future__ import annotations

import queue
import threading
import time
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from keysentinel.core.errors import ContextFetchError, DispatchError, categorize_error
from keysentinel.core.logging import LogContext, get_logger
from keysentinel.core.protocols import STREAM_CLOSED, ContextValue, Executor, WatchClient
from keysentinel.core.settings import SentinelSettings
from keysentinel.dispatch.registry import ExecutorRegistry
from keysentinel.dispatch.result import DispatchReport, ExecutorOutcome

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass
class SentinelStats:
    """Counters for the watch loop."""

    notifications: int = 0
    dispatches: int = 0
    failed_dispatches: int = 0
    dropped: int = 0
    last_key: str | None = None
    last_dispatch_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "notifications": self.notifications,
            "dispatches": self.dispatches,
            "failed_dispatches": self.failed_dispatches,
            "dropped": self.dropped,
            "last_key": self.last_key,
            "last_dispatch_at": self.last_dispatch_at.isoformat() if self.last_dispatch_at else None,
        }


class Sentinel:
    """Registration + dispatch engine.

    Architecture:
        1. ``add()`` binds executors to watch keys before the loop starts.
        2. ``run()`` waits on the client's change queue and the stop event.
        3. For each changed key, ``execute_key()`` fetches
           ``[namespace, key]`` once and runs every subscriber in order.
        4. Failures are collected into a :class:`DispatchReport`; one
           failing executor never prevents the next from running.

    Thread-safety:
        The loop handles one notification at a time. ``execute()`` runs on
        the caller's thread and may overlap with the loop; executors that
        can be reached both ways must synchronize themselves.
    """

    def __init__(
        self,
        client: WatchClient,
        namespace: str = "sentinel",
        *,
        registry: ExecutorRegistry | None = None,
        strict_names: bool = False,
        poll_interval: float = 0.1,
    ):
        """
        Args:
            client: Store client providing the change queue and ``get``.
            namespace: Top-level path segment context trees live under.
            registry: Pre-built registry. A new one is created if ``None``.
            strict_names: Reject a second executor claiming a taken name.
                Ignored when *registry* is given.
            poll_interval: Seconds to wait on the change queue before
                re-checking the stop event.
        """
        self._client = client
        self._namespace = namespace
        self._registry = registry if registry is not None else ExecutorRegistry(strict=strict_names)
        self._poll_interval = poll_interval
        self.stats = SentinelStats()

    @classmethod
    def from_settings(cls, client: WatchClient, settings: SentinelSettings) -> Sentinel:
        return cls(
            client,
            settings.namespace,
            strict_names=settings.strict_names,
            poll_interval=settings.poll_interval,
        )

    @property
    def client(self) -> WatchClient:
        return self._client

    @property
    def namespace(self) -> str:
        return self._namespace

    @property
    def registry(self) -> ExecutorRegistry:
        return self._registry

    # ------------------------------------------------------------------ #
    # Registration
    # ------------------------------------------------------------------ #

    def add(self, keys: Iterable[str], executor: Executor) -> None:
        """Subscribe ``executor`` to each of ``keys`` and index it by name."""
        self._registry.add(keys, executor)

    # ------------------------------------------------------------------ #
    # Change-driven execution
    # ------------------------------------------------------------------ #

    def context_path(self, key: str) -> list[str]:
        return [self._namespace, key]

    def execute_key(self, key: str) -> DispatchReport:
        """Run every executor subscribed to ``key`` with fresh context.

        Never raises for executor or fetch failures; they are recorded in
        the returned report, in subscriber order.
        """
        report = DispatchReport(key=key)
        subscribers = self._registry.subscribers(key)
        if not subscribers:
            logger.debug("dispatch.no_subscribers", key=key)
            return report

        with LogContext(key=key):
            path = self.context_path(key)
            try:
                value = self._client.get(path)
            except ContextFetchError as exc:
                fetch_error: ContextFetchError = exc
            except Exception as exc:
                fetch_error = ContextFetchError(f"Failed to fetch {'/'.join(path)}", cause=exc)
            else:
                logger.debug("dispatch.started", subscribers=len(subscribers))
                for executor in subscribers:
                    report.outcomes.append(self._invoke(executor, value, key))
                return report

            fetch_error.with_context(key=key, path="/".join(path))
            logger.error("dispatch.fetch_failed", path="/".join(path), error=str(fetch_error))
            report.outcomes.extend(
                ExecutorOutcome(executor=executor.name, key=key, error=fetch_error)
                for executor in subscribers
            )
            return report

    def run(self, stop: threading.Event) -> None:
        """Dispatch changes until ``stop`` is set or the change stream closes.

        The stop event is checked before every wait and after every
        received notification, so a stop wins over a notification that
        arrives at the same time. Executor failures are logged, never
        raised.
        """
        changes = self._client.changes
        logger.info(
            "watch.started",
            namespace=self._namespace,
            keys=self._registry.keys(),
            executors=len(self._registry),
        )

        try:
            while not stop.is_set():
                try:
                    key = changes.get(timeout=self._poll_interval)
                except queue.Empty:
                    continue

                if key is STREAM_CLOSED:
                    logger.warning("watch.stream_closed")
                    break

                self.stats.notifications += 1
                if stop.is_set():
                    self.stats.dropped += 1
                    logger.debug("watch.notification_dropped", key=key)
                    break

                self._dispatch(key)
        finally:
            logger.info("watch.stopped", **self.stats.to_dict())

    def start_background(self, stop: threading.Event) -> threading.Thread:
        """Run the watch loop in a daemon thread. Returns the thread."""
        t = threading.Thread(
            target=self.run,
            args=(stop,),
            name=f"sentinel-{self._namespace}",
            daemon=True,
        )
        t.start()
        return t

    def _dispatch(self, key: str) -> None:
        try:
            report = self.execute_key(key)
        except Exception:
            self.stats.failed_dispatches += 1
            logger.exception("dispatch.error", key=key)
            return

        if not report.outcomes:
            return

        self.stats.dispatches += 1
        self.stats.last_key = key
        self.stats.last_dispatch_at = _utcnow()

        if report.failed:
            self.stats.failed_dispatches += 1
            logger.error(
                "dispatch.failed",
                key=key,
                failed=[o.executor for o in report.failures],
                errors=[str(e) for e in report.errors],
            )
        else:
            logger.info("dispatch.completed", key=key, executed=report.executed)

    # ------------------------------------------------------------------ #
    # Explicit execution
    # ------------------------------------------------------------------ #

    def execute(self, names: Iterable[str]) -> DispatchReport:
        """Run the named executors once, without context.

        All names are resolved before anything runs; if any is unknown,
        nothing is executed. Duplicate names run twice.

        Returns:
            Report of a fully successful run

        Raises:
            DispatchError: A name did not resolve, or an executor failed
        """
        report = DispatchReport()
        resolved: list[Executor] = []
        for name in names:
            if name in self._registry:
                resolved.append(self._registry.get(name))
            else:
                report.unresolved.append(name)

        if report.unresolved:
            logger.error("execute.unresolved", names=report.unresolved)
            raise DispatchError(report)

        for executor in resolved:
            report.outcomes.append(self._invoke(executor, None, None))

        if report.failed:
            logger.error("execute.failed", failed=[o.executor for o in report.failures])
            raise DispatchError(report)

        logger.info("execute.completed", executed=report.executed)
        return report

    def execute_all(self) -> DispatchReport:
        """Run every registered executor once, in registration order."""
        return self.execute(self._registry.names())

    def _invoke(self, executor: Executor, value: ContextValue | None, key: str | None) -> ExecutorOutcome:
        outcome = ExecutorOutcome(executor=executor.name, key=key)
        started = time.perf_counter()
        try:
            executor.execute(value)
        except Exception as exc:
            outcome.error = exc
            logger.warning(
                "executor.failed",
                executor=executor.name,
                error_type=type(exc).__name__,
                category=categorize_error(exc).value,
                error=str(exc),
            )
        finally:
            outcome.duration_ms = (time.perf_counter() - started) * 1000
        return outcome


__all__ = ["Sentinel", "SentinelStats"]
