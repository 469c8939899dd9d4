"""Tests for keysentinel.executors.command — subprocess executor."""

from __future__ import annotations

import json
import sys

import pytest

from keysentinel.core.errors import ExecutorError
from keysentinel.executors.command import CONTEXT_ENV_VAR, CommandExecutor


def _python(code: str) -> list[str]:
    return [sys.executable, "-c", code]


class TestCommandExecutor:
    def test_success(self):
        CommandExecutor("ok", _python("pass")).execute({"a": 1})

    def test_context_on_stdin_and_env(self, tmp_path):
        out = tmp_path / "out.json"
        code = (
            "import json, os, sys\n"
            f"data = {{'stdin': sys.stdin.read(), 'env': os.environ.get('{CONTEXT_ENV_VAR}')}}\n"
            f"open({str(out)!r}, 'w').write(json.dumps(data))\n"
        )
        CommandExecutor("dump", _python(code)).execute({"host": "10.0.0.2"})

        data = json.loads(out.read_text())
        assert json.loads(data["stdin"]) == {"host": "10.0.0.2"}
        assert json.loads(data["env"]) == {"host": "10.0.0.2"}

    def test_no_context_leaves_env_unset(self, tmp_path, monkeypatch):
        monkeypatch.setenv(CONTEXT_ENV_VAR, "stale")
        out = tmp_path / "out.txt"
        code = f"import os; open({str(out)!r}, 'w').write(repr(os.environ.get('{CONTEXT_ENV_VAR}')))"

        CommandExecutor("dump", _python(code)).execute(None)

        assert out.read_text() == "None"

    def test_extra_env(self, tmp_path):
        out = tmp_path / "out.txt"
        code = f"import os; open({str(out)!r}, 'w').write(os.environ['GREETING'])"

        CommandExecutor("env", _python(code), env={"GREETING": "hello"}).execute(None)

        assert out.read_text() == "hello"

    def test_non_zero_exit_raises(self):
        ex = CommandExecutor("fail", _python("import sys; sys.stderr.write('bad input'); sys.exit(3)"))

        with pytest.raises(ExecutorError) as exc_info:
            ex.execute(None)

        assert "status 3" in str(exc_info.value)
        assert "bad input" in str(exc_info.value)
        assert exc_info.value.context.executor == "fail"
        assert exc_info.value.context.metadata["returncode"] == 3

    def test_timeout_raises(self):
        ex = CommandExecutor("slow", _python("import time; time.sleep(5)"), timeout=0.2)
        with pytest.raises(ExecutorError, match="timed out"):
            ex.execute(None)

    def test_missing_program_raises(self):
        ex = CommandExecutor("missing", ["/nonexistent/keysentinel-test-binary"])
        with pytest.raises(ExecutorError, match="failed to start"):
            ex.execute(None)

    def test_string_command_requires_shell(self):
        with pytest.raises(ValueError):
            CommandExecutor("bad", "echo hi")

    def test_shell_command(self, tmp_path):
        out = tmp_path / "out.txt"
        CommandExecutor("sh", f"echo shell > {out}", shell=True).execute(None)
        assert out.read_text().strip() == "shell"
