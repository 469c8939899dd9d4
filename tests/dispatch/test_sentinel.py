"""Tests for keysentinel.dispatch.sentinel — key execution, watch loop, execute-by-name."""

from __future__ import annotations

import threading
import time

import pytest

from keysentinel.clients.memory import InMemoryClient
from keysentinel.core.errors import ContextFetchError, DispatchError, KeyNotFoundError
from keysentinel.core.settings import SentinelSettings
from keysentinel.dispatch.sentinel import Sentinel
from tests._support.doubles import MockClient, MockExecutor, wait_for


@pytest.fixture
def sentinel(client, mock1, mock2) -> Sentinel:
    s = Sentinel(client, poll_interval=0.01)
    s.add(["1", "2"], mock1)
    s.add(["2"], mock2)
    return s


# ------------------------------------------------------------------ #
# execute (by name)
# ------------------------------------------------------------------ #


class TestExecute:
    def test_runs_only_named(self, sentinel, mock1, mock2):
        report = sentinel.execute(["mock1"])

        assert report.ok
        assert mock1.calls == 1
        assert mock2.calls == 0

    def test_runs_each_named(self, sentinel, mock1, mock2):
        sentinel.execute(["mock1", "mock2"])
        assert (mock1.calls, mock2.calls) == (1, 1)

    def test_failure_does_not_stop_siblings(self, sentinel, mock1, mock2):
        mock1.error = RuntimeError("oops!")

        with pytest.raises(DispatchError) as exc_info:
            sentinel.execute(["mock1", "mock2"])

        assert (mock1.calls, mock2.calls) == (1, 1)
        assert exc_info.value.errors == [mock1.error]
        assert [o.executor for o in exc_info.value.report.failures] == ["mock1"]
        assert "oops!" in str(exc_info.value)

    def test_empty_names_succeeds_without_running(self, sentinel, mock1, mock2):
        report = sentinel.execute([])

        assert report.ok
        assert len(report) == 0
        assert (mock1.calls, mock2.calls) == (0, 0)

    def test_unknown_name_runs_nothing(self, sentinel, mock1, mock2):
        with pytest.raises(DispatchError) as exc_info:
            sentinel.execute(["sirnotappearinginthisfilm"])

        assert exc_info.value.unresolved == ["sirnotappearinginthisfilm"]
        assert (mock1.calls, mock2.calls) == (0, 0)

    def test_unknown_among_known_runs_nothing(self, sentinel, mock1, mock2):
        with pytest.raises(DispatchError) as exc_info:
            sentinel.execute(["mock1", "ghost", "mock2", "phantom"])

        assert exc_info.value.unresolved == ["ghost", "phantom"]
        assert (mock1.calls, mock2.calls) == (0, 0)

    def test_duplicate_names_run_twice(self, sentinel, mock1):
        report = sentinel.execute(["mock1", "mock1"])
        assert mock1.calls == 2
        assert report.executed == ["mock1", "mock1"]

    def test_passes_no_context(self, sentinel, mock1, client):
        sentinel.execute(["mock1"])
        assert mock1.values == [None]
        assert client.paths == []

    def test_execute_all_in_registration_order(self, sentinel, mock1, mock2):
        report = sentinel.execute_all()
        assert report.executed == ["mock1", "mock2"]
        assert (mock1.calls, mock2.calls) == (1, 1)

    def test_execute_all_raises_on_failure(self, sentinel, mock2):
        mock2.error = ValueError("bad")
        with pytest.raises(DispatchError):
            sentinel.execute_all()


# ------------------------------------------------------------------ #
# execute_key
# ------------------------------------------------------------------ #


class TestExecuteKey:
    def test_single_subscriber(self, sentinel, mock1, mock2):
        report = sentinel.execute_key("1")

        assert report.errors == []
        assert (mock1.calls, mock2.calls) == (1, 0)

    def test_collects_one_error_per_failing_executor(self, client, mock1):
        want = RuntimeError("error!")
        failing = MockExecutor("mock2", error=want)
        s = Sentinel(client)
        s.add(["1", "2"], mock1)
        s.add(["2"], failing)

        assert s.execute_key("1").errors == []
        report = s.execute_key("2")

        assert report.errors == [want]
        assert mock1.calls == 2
        assert failing.calls == 1

    def test_errors_in_subscriber_order(self, client):
        e1, e3 = RuntimeError("first"), RuntimeError("third")
        a, b, c = MockExecutor("a", e1), MockExecutor("b"), MockExecutor("c", e3)
        s = Sentinel(client)
        for ex in (a, b, c):
            s.add(["k"], ex)

        report = s.execute_key("k")

        assert report.errors == [e1, e3]
        assert report.executed == ["a", "b", "c"]
        assert (a.calls, b.calls, c.calls) == (1, 1, 1)

    def test_unknown_key_runs_nothing_and_skips_fetch(self, sentinel, client, mock1, mock2):
        report = sentinel.execute_key("beacon")

        assert report.ok
        assert len(report) == 0
        assert client.paths == []
        assert (mock1.calls, mock2.calls) == (0, 0)

    def test_fetches_namespaced_path_once(self, sentinel, client):
        client.value = {"a": "aye"}
        sentinel.execute_key("2")

        assert client.paths == [["sentinel", "2"]]

    def test_custom_namespace(self, client, mock1):
        s = Sentinel(client, "deploy")
        s.add(["db"], mock1)
        s.execute_key("db")
        assert client.paths == [["deploy", "db"]]

    def test_passes_fetched_value(self, sentinel, client, mock1, mock2):
        client.value = {"a": "aye", "b": {"c": 3}}
        sentinel.execute_key("2")

        assert mock1.values == [{"a": "aye", "b": {"c": 3}}]
        assert mock2.values == [{"a": "aye", "b": {"c": 3}}]

    def test_duplicate_subscription_runs_twice(self, client, mock1):
        s = Sentinel(client)
        s.add(["k"], mock1)
        s.add(["k"], mock1)

        s.execute_key("k")
        assert mock1.calls == 2

    def test_fetch_failure_fails_every_subscriber(self, mock1, mock2):
        cause = ContextFetchError("store down")
        s = Sentinel(MockClient(error=cause))
        s.add(["k"], mock1)
        s.add(["k"], mock2)

        report = s.execute_key("k")

        assert (mock1.calls, mock2.calls) == (0, 0)
        assert [o.executor for o in report.failures] == ["mock1", "mock2"]
        assert report.errors == [cause, cause]
        assert cause.context.key == "k"
        assert cause.context.path == "sentinel/k"

    def test_unexpected_fetch_exception_is_wrapped(self, mock1):
        s = Sentinel(MockClient(error=ConnectionResetError("reset")))
        s.add(["k"], mock1)

        report = s.execute_key("k")

        assert len(report.errors) == 1
        assert isinstance(report.errors[0], ContextFetchError)
        assert isinstance(report.errors[0].__cause__, ConnectionResetError)

    def test_missing_key_is_a_fetch_failure(self, mock1):
        s = Sentinel(InMemoryClient())
        s.add(["k"], mock1)

        report = s.execute_key("k")

        assert isinstance(report.errors[0], KeyNotFoundError)
        assert mock1.calls == 0


# ------------------------------------------------------------------ #
# run
# ------------------------------------------------------------------ #


class TestRun:
    def test_changes_trigger_subscribers_until_stop(self):
        context = {"sentinel": {"sentinel": {"a": "aye", "b": "bee"}}}
        client = InMemoryClient(context)
        ex = MockExecutor("mock")
        s = Sentinel(client, poll_interval=0.01)
        s.add(["sentinel"], ex)
        stop = threading.Event()

        thread = s.start_background(stop)

        client.notify("sentinel")
        assert wait_for(lambda: ex.calls == 1)
        assert ex.values == [{"a": "aye", "b": "bee"}]

        client.notify("beacon")
        assert wait_for(lambda: s.stats.notifications == 2)
        assert ex.calls == 1

        stop.set()
        thread.join(timeout=2)
        assert not thread.is_alive()

    def test_scenario_two_executors(self, sentinel, client, mock1, mock2):
        stop = threading.Event()
        thread = sentinel.start_background(stop)

        client.changes.put("1")
        assert wait_for(lambda: mock1.calls == 1)
        assert mock2.calls == 0

        client.changes.put("2")
        assert wait_for(lambda: mock2.calls == 1)
        assert mock1.calls == 2

        client.changes.put("unrelated")
        assert wait_for(lambda: sentinel.stats.notifications == 3)
        assert (mock1.calls, mock2.calls) == (2, 1)

        stop.set()
        thread.join(timeout=2)
        assert not thread.is_alive()

    def test_stop_without_notifications(self, sentinel):
        stop = threading.Event()
        thread = sentinel.start_background(stop)

        time.sleep(0.02)
        stop.set()
        thread.join(timeout=1)

        assert not thread.is_alive()

    def test_stop_already_set_returns_immediately(self, sentinel, client, mock1):
        client.changes.put("1")
        stop = threading.Event()
        stop.set()

        sentinel.run(stop)

        assert mock1.calls == 0

    def test_executor_failure_does_not_end_loop(self, client, mock2):
        failing = MockExecutor("bad", error=RuntimeError("boom"))
        s = Sentinel(client, poll_interval=0.01)
        s.add(["k"], failing)
        s.add(["k"], mock2)
        stop = threading.Event()
        thread = s.start_background(stop)

        client.changes.put("k")
        client.changes.put("k")
        assert wait_for(lambda: s.stats.failed_dispatches == 2)
        assert mock2.calls == 2
        assert thread.is_alive()

        stop.set()
        thread.join(timeout=2)

    def test_stream_close_ends_loop(self, sentinel, client):
        stop = threading.Event()
        thread = sentinel.start_background(stop)

        client.close()
        thread.join(timeout=2)

        assert not thread.is_alive()
        assert not stop.is_set()

    def test_notifications_processed_in_order(self, client):
        seen: list[str] = []

        class Recorder:
            def __init__(self, name: str):
                self.name = name

            def execute(self, value):
                seen.append(self.name)

        s = Sentinel(client, poll_interval=0.01)
        for key in ("a", "b", "c"):
            s.add([key], Recorder(key))
        for key in ("c", "a", "b", "a"):
            client.changes.put(key)
        client.close()

        s.run(threading.Event())

        assert seen == ["c", "a", "b", "a"]
        assert s.stats.dispatches == 4
        assert s.stats.last_key == "a"

    def test_stats_to_dict(self, sentinel, client):
        client.changes.put("1")
        client.close()
        sentinel.run(threading.Event())

        data = sentinel.stats.to_dict()
        assert data["notifications"] == 1
        assert data["dispatches"] == 1
        assert data["last_key"] == "1"
        assert data["last_dispatch_at"] is not None


class TestConstruction:
    def test_from_settings(self, client):
        settings = SentinelSettings(namespace="deploy", strict_names=True, poll_interval=0.5)
        s = Sentinel.from_settings(client, settings)

        assert s.namespace == "deploy"
        assert s.context_path("db") == ["deploy", "db"]
        s.add([], MockExecutor("x"))
        with pytest.raises(Exception, match="already registered"):
            s.add([], MockExecutor("x"))
