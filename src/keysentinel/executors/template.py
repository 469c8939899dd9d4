"""
Executor that renders a Jinja2 template from the context tree.

Manifesto:
    The most common reaction to a configuration change is "rewrite this
    file and reload that service". Rendering and reloading belong in one
    executor so the reload never sees a half-written file.

Rendering:
    Top-level keys of the context value are template variables; the full
    value is also available as ``context``. When run by name, the
    context is empty. The rendered text is written to a temporary file
    next to ``dest`` and moved into place, then ``command`` runs (if any).

Tags:
    keysentinel, executor, jinja2, template, config-rendering

Doc-Types:
    api-reference
"""

from __future__ import annotations

import os
import tempfile
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateError, Undefined

from keysentinel.core.errors import ExecutorError
from keysentinel.core.logging import get_logger
from keysentinel.core.protocols import ContextValue
from keysentinel.executors.command import CommandExecutor

logger = get_logger(__name__)


class TemplateExecutor:
    """Render ``src`` into ``dest``, then optionally run ``command``.

    Args:
        name: Executor name
        src: Template file path
        dest: Output file path
        command: Follow-up command (argument list) run after writing
        mode: File mode for ``dest`` (e.g. ``0o644``); keeps the
            temporary file's mode if ``None``
        strict: Fail on undefined template variables
        timeout: Timeout for the follow-up command
    """

    def __init__(
        self,
        name: str,
        src: str | os.PathLike[str],
        dest: str | os.PathLike[str],
        *,
        command: Sequence[str] | None = None,
        mode: int | None = None,
        strict: bool = False,
        timeout: float | None = None,
    ):
        self.name = name
        self.src = Path(src)
        self.dest = Path(dest)
        self.mode = mode
        self.strict = strict
        self.command = (
            CommandExecutor(f"{name}.command", command, timeout=timeout) if command else None
        )
        self._env = Environment(
            loader=FileSystemLoader(str(self.src.parent)),
            undefined=StrictUndefined if strict else Undefined,
            keep_trailing_newline=True,
            autoescape=False,
        )

    def render(self, value: ContextValue | None) -> str:
        """Render the template with ``value`` as variables."""
        variables: dict[str, Any] = dict(value or {})
        variables["context"] = dict(value or {})
        try:
            template = self._env.get_template(self.src.name)
            return template.render(**variables)
        except TemplateError as exc:
            raise ExecutorError(f"failed to render {self.src}: {exc}", cause=exc).with_context(
                executor=self.name
            ) from exc

    def execute(self, value: ContextValue | None) -> None:
        content = self.render(value)
        self._write(content)
        logger.info("template.rendered", executor=self.name, dest=str(self.dest))

        if self.command is not None:
            try:
                self.command.execute(value)
            except ExecutorError as exc:
                exc.with_context(executor=self.name)
                raise

    def _write(self, content: str) -> None:
        self.dest.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.dest.name}.", dir=self.dest.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(content)
            if self.mode is not None:
                os.chmod(tmp_name, self.mode)
            os.replace(tmp_name, self.dest)
        except OSError as exc:
            Path(tmp_name).unlink(missing_ok=True)
            raise ExecutorError(f"failed to write {self.dest}: {exc}", cause=exc).with_context(
                executor=self.name
            ) from exc

    def __repr__(self) -> str:
        return f"TemplateExecutor({self.name!r}, {str(self.src)!r} -> {str(self.dest)!r})"
