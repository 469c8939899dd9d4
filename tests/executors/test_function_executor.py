"""Tests for keysentinel.executors.function."""

import pytest

from keysentinel.core.protocols import Executor
from keysentinel.executors.function import FunctionExecutor, executor


class TestFunctionExecutor:
    def test_calls_wrapped_function(self):
        seen = []
        ex = FunctionExecutor("record", seen.append)

        ex.execute({"a": 1})
        ex.execute(None)

        assert seen == [{"a": 1}, None]
        assert isinstance(ex, Executor)

    def test_propagates_exceptions(self):
        def boom(value):
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            FunctionExecutor("boom", boom).execute(None)

    def test_decorator(self):
        @executor("notify")
        def notify(value):
            return value

        assert isinstance(notify, FunctionExecutor)
        assert notify.name == "notify"
        assert repr(notify) == "FunctionExecutor('notify')"
