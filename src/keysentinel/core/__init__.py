"""keysentinel core -- protocols, errors, logging and settings.

Layer 1 -- Contracts & Errors
    protocols.py       WatchClient / Executor capability protocols
    errors.py          Structured error hierarchy (SentinelError, DispatchError)

Layer 2 -- Ambient
    logging.py         structlog configuration + LogContext
    settings.py        SENTINEL_* environment settings
    config.py          YAML executor definitions
"""

from keysentinel.core.errors import (
    ClientError,
    ConfigError,
    ContextFetchError,
    DispatchError,
    DuplicateExecutorError,
    ErrorCategory,
    ErrorContext,
    ExecutorError,
    ExecutorNotFoundError,
    InvalidConfigError,
    KeyNotFoundError,
    RegistryError,
    SentinelError,
)
from keysentinel.core.protocols import STREAM_CLOSED, ContextValue, Executor, WatchClient

__all__ = [
    "STREAM_CLOSED",
    "ContextValue",
    "Executor",
    "WatchClient",
    "ErrorCategory",
    "ErrorContext",
    "SentinelError",
    "RegistryError",
    "ExecutorNotFoundError",
    "DuplicateExecutorError",
    "ExecutorError",
    "ClientError",
    "ContextFetchError",
    "KeyNotFoundError",
    "ConfigError",
    "InvalidConfigError",
    "DispatchError",
]
