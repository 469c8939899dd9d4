"""Process settings for keysentinel.

Settings come from ``SENTINEL_*`` environment variables and an optional
``.env`` file. The CLI reads them once at startup; command-line options
override individual fields.

Examples:
    >>> import os
    >>> os.environ["SENTINEL_NAMESPACE"] = "deploy"
    >>> reset_settings()
    >>> get_settings().namespace
    'deploy'

Tags:
    settings, configuration, pydantic, environment, keysentinel

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SentinelSettings(BaseSettings):
    """Settings shared by the dispatcher, the clients and the CLI.

    Fields
    ──────
    namespace                 : Top-level path segment that context trees live under
    redis_url                 : Store URL for the Redis client
    separator                 : Path separator inside flat store keys
    poll_interval             : Seconds the run loop waits on the change queue per turn
    strict_names              : Reject a second executor claiming a registered name
    configure_keyspace_events : Enable Redis keyspace notifications on connect
    log_level                 : Structlog log level
    json_logs                 : Force JSON (True) / console (False) logs; auto if unset
    config_file               : Default YAML executor config path
    """

    model_config = SettingsConfigDict(
        env_prefix="SENTINEL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Store ────────────────────────────────────────────────────
    namespace: str = Field(default="sentinel", min_length=1)
    redis_url: str = "redis://localhost:6379/0"
    separator: str = Field(default=":", min_length=1)
    configure_keyspace_events: bool = False

    # ── Dispatch ─────────────────────────────────────────────────
    poll_interval: float = Field(default=0.1, gt=0)
    strict_names: bool = False

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    json_logs: bool | None = None

    config_file: Path | None = None

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.upper()


@lru_cache(maxsize=1)
def get_settings() -> SentinelSettings:
    """Return the process-wide settings, loading them on first use."""
    return SentinelSettings()


def reset_settings() -> None:
    """Drop cached settings (for testing)."""
    get_settings.cache_clear()


__all__ = ["SentinelSettings", "get_settings", "reset_settings"]
