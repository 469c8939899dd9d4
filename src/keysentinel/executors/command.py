"""Executor that runs an external command.

The context value is handed to the command twice: as JSON on stdin and
as JSON in the ``SENTINEL_CONTEXT`` environment variable. When run by
name (no context), stdin is empty and the variable is unset.
"""

from __future__ import annotations

import json
import os
import subprocess
from collections.abc import Mapping, Sequence

from keysentinel.core.errors import ExecutorError
from keysentinel.core.logging import get_logger
from keysentinel.core.protocols import ContextValue

logger = get_logger(__name__)

CONTEXT_ENV_VAR = "SENTINEL_CONTEXT"


class CommandExecutor:
    """Run ``command`` on every execution.

    Args:
        name: Executor name
        command: Argument list, or a string when ``shell=True``
        env: Extra environment variables layered over the process env
        cwd: Working directory
        timeout: Seconds before the command is killed (``None`` = no limit)
        shell: Run through the system shell
    """

    def __init__(
        self,
        name: str,
        command: Sequence[str] | str,
        *,
        env: Mapping[str, str] | None = None,
        cwd: str | os.PathLike[str] | None = None,
        timeout: float | None = None,
        shell: bool = False,
    ):
        if isinstance(command, str) and not shell:
            raise ValueError("string commands require shell=True; pass an argument list instead")
        self.name = name
        self.command = command if isinstance(command, str) else list(command)
        self.env = dict(env or {})
        self.cwd = cwd
        self.timeout = timeout
        self.shell = shell

    def execute(self, value: ContextValue | None) -> None:
        env = {**os.environ, **self.env}
        payload = ""
        if value is not None:
            payload = json.dumps(value, default=str)
            env[CONTEXT_ENV_VAR] = payload
        else:
            env.pop(CONTEXT_ENV_VAR, None)

        logger.debug("command.started", executor=self.name, command=self.command)
        try:
            proc = subprocess.run(
                self.command,
                input=payload,
                capture_output=True,
                text=True,
                env=env,
                cwd=self.cwd,
                timeout=self.timeout,
                shell=self.shell,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            raise ExecutorError(
                f"command timed out after {self.timeout}s", cause=exc
            ).with_context(executor=self.name) from exc
        except OSError as exc:
            raise ExecutorError(f"command failed to start: {exc}", cause=exc).with_context(
                executor=self.name
            ) from exc

        if proc.returncode != 0:
            stderr = (proc.stderr or "").strip()
            raise ExecutorError(
                f"command exited with status {proc.returncode}" + (f": {stderr}" if stderr else "")
            ).with_context(executor=self.name, returncode=proc.returncode)

        logger.debug("command.completed", executor=self.name)

    def __repr__(self) -> str:
        return f"CommandExecutor({self.name!r}, {self.command!r})"
