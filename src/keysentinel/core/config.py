"""Pydantic models for the YAML executor config.

A config file declares which executors exist and which watch keys each
one subscribes to. The CLI loads it, builds the executors and registers
them on a :class:`~keysentinel.dispatch.sentinel.Sentinel`.

Example YAML::

    namespace: sentinel
    executors:
      - name: nginx
        type: template
        keys: [upstreams]
        src: /etc/keysentinel/nginx.conf.j2
        dest: /etc/nginx/conf.d/upstreams.conf
        command: [nginx, -s, reload]
      - name: notify
        type: command
        keys: [upstreams, certs]
        command: [/usr/local/bin/notify-deploy]
        timeout: 30

Usage::

    from keysentinel.core.config import load_config, build_sentinel

    config = load_config("sentinel.yaml")
    sentinel = build_sentinel(config, client)

Tags:
    keysentinel, config, yaml, declarative

Doc-Types:
    api-reference
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from keysentinel.core.errors import InvalidConfigError
from keysentinel.core.logging import get_logger
from keysentinel.core.protocols import Executor, WatchClient
from keysentinel.core.settings import SentinelSettings
from keysentinel.dispatch.sentinel import Sentinel
from keysentinel.executors import CommandExecutor, TemplateExecutor

logger = get_logger(__name__)


class _ExecutorSpecBase(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1, description="Unique executor name")
    keys: list[str] = Field(default_factory=list, description="Watch keys to subscribe to")


class CommandExecutorSpec(_ExecutorSpecBase):
    """``type: command`` entry."""

    type: Literal["command"]
    command: list[str] | str
    shell: bool = False
    env: dict[str, str] = Field(default_factory=dict)
    cwd: str | None = None
    timeout: float | None = Field(default=None, gt=0)

    @field_validator("command")
    @classmethod
    def validate_command(cls, v: list[str] | str) -> list[str] | str:
        if not v:
            raise ValueError("command must not be empty")
        return v


class TemplateExecutorSpec(_ExecutorSpecBase):
    """``type: template`` entry."""

    type: Literal["template"]
    src: Path
    dest: Path
    command: list[str] | None = None
    mode: int | None = None
    strict: bool = False
    timeout: float | None = Field(default=None, gt=0)

    @field_validator("mode", mode="before")
    @classmethod
    def parse_mode(cls, v: Any) -> Any:
        # "0644" / "644" read as octal
        if isinstance(v, str):
            return int(v, 8)
        return v


ExecutorSpec = Annotated[
    CommandExecutorSpec | TemplateExecutorSpec,
    Field(discriminator="type"),
]


class SentinelConfig(BaseModel):
    """Top-level config document."""

    model_config = ConfigDict(extra="forbid")

    namespace: str | None = Field(default=None, min_length=1)
    executors: list[ExecutorSpec] = Field(default_factory=list)

    @field_validator("executors")
    @classmethod
    def validate_unique_names(cls, v: list[ExecutorSpec]) -> list[ExecutorSpec]:
        """Ensure executor names are unique."""
        names = [spec.name for spec in v]
        if len(names) != len(set(names)):
            duplicates = sorted({n for n in names if names.count(n) > 1})
            raise ValueError(f"Duplicate executor names: {duplicates}")
        return v

    @classmethod
    def from_yaml(cls, yaml_content: str, *, source: str = "<string>") -> SentinelConfig:
        """Parse and validate YAML content.

        Raises:
            InvalidConfigError: If the YAML is malformed or fails validation
        """
        try:
            data = yaml.safe_load(yaml_content)
        except yaml.YAMLError as exc:
            raise InvalidConfigError(source, f"malformed YAML: {exc}", cause=exc) from exc

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise InvalidConfigError(source, "top level must be a mapping")

        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise InvalidConfigError(source, str(exc), cause=exc) from exc

    @classmethod
    def from_yaml_file(cls, path: str | Path) -> SentinelConfig:
        path = Path(path)
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise InvalidConfigError(str(path), f"cannot read file: {exc}", cause=exc) from exc
        return cls.from_yaml(content, source=str(path))


def load_config(path: str | Path) -> SentinelConfig:
    """Load and validate a YAML config file."""
    return SentinelConfig.from_yaml_file(path)


def build_executor(spec: CommandExecutorSpec | TemplateExecutorSpec) -> Executor:
    """Instantiate the executor an entry describes."""
    if isinstance(spec, CommandExecutorSpec):
        return CommandExecutor(
            spec.name,
            spec.command,
            env=spec.env,
            cwd=spec.cwd,
            timeout=spec.timeout,
            shell=spec.shell,
        )
    return TemplateExecutor(
        spec.name,
        spec.src,
        spec.dest,
        command=spec.command,
        mode=spec.mode,
        strict=spec.strict,
        timeout=spec.timeout,
    )


def build_sentinel(
    config: SentinelConfig,
    client: WatchClient,
    settings: SentinelSettings | None = None,
) -> Sentinel:
    """Create a Sentinel for ``client`` and register every configured executor.

    The config's ``namespace`` overrides the settings value when present.
    """
    settings = settings or SentinelSettings()
    sentinel = Sentinel(
        client,
        config.namespace or settings.namespace,
        strict_names=settings.strict_names,
        poll_interval=settings.poll_interval,
    )
    for spec in config.executors:
        try:
            sentinel.add(spec.keys, build_executor(spec))
        except ValueError as exc:
            raise InvalidConfigError(spec.name, str(exc), cause=exc) from exc

    logger.info(
        "config.loaded",
        namespace=sentinel.namespace,
        executors=len(config.executors),
        keys=sentinel.registry.keys(),
    )
    return sentinel


__all__ = [
    "CommandExecutorSpec",
    "TemplateExecutorSpec",
    "ExecutorSpec",
    "SentinelConfig",
    "load_config",
    "build_executor",
    "build_sentinel",
]
