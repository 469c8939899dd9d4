"""
Structured error types for keysentinel.

Every failure the dispatcher can observe falls into one of a small set of
domains: an executor name that does not resolve, an executor that raised,
a store that could not produce the context tree, a malformed config file,
or the aggregate of several of these after a dispatch. Each domain has its
own ``SentinelError`` subclass carrying a category and structured context
so that log lines and CLI output can report *which* executor and *which*
key were involved without string parsing.

Manifesto:
    - **Typed Error Hierarchy:** One subclass per failure domain
    - **Rich Context:** Errors carry executor, key and path metadata
    - **Error Chaining:** The original exception is kept as ``cause``
    - **Aggregation:** ``DispatchError`` wraps a whole dispatch report

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                       SentinelError                             │
        │  (category, context, cause)                                     │
        ├─────────────────────────────────────────────────────────────────┤
        │  RegistryError          ExecutorError        ClientError        │
        │  (REGISTRY)             (EXECUTION)          (CLIENT)           │
        │       │                                          │              │
        │  ExecutorNotFoundError                     ContextFetchError    │
        │  DuplicateExecutorError                    KeyNotFoundError     │
        │                                                                 │
        │  ConfigError            DispatchError                           │
        │  (CONFIG)               (DISPATCH, wraps a DispatchReport)      │
        │       │                                                         │
        │  InvalidConfigError                                             │
        └─────────────────────────────────────────────────────────────────┘

Examples:
    >>> err = ExecutorError("exit status 2").with_context(executor="reload", key="upstreams")
    >>> err.context.executor
    'reload'
    >>> err.to_dict()["category"]
    'EXECUTION'

Tags:
    error-handling, exception-hierarchy, error-context, keysentinel

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from keysentinel.dispatch.result import DispatchReport


class ErrorCategory(str, Enum):
    """Standard error categories for classification and log routing."""

    REGISTRY = "REGISTRY"
    EXECUTION = "EXECUTION"
    CLIENT = "CLIENT"
    CONFIG = "CONFIG"
    DISPATCH = "DISPATCH"
    INTERNAL = "INTERNAL"
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Attributes:
        executor: Name of the executor involved
        key: Watch key being dispatched
        path: Store path that was being fetched
        metadata: Additional key-value pairs
    """

    executor: str | None = None
    key: str | None = None
    path: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for name in ["executor", "key", "path"]:
            value = getattr(self, name)
            if value is not None:
                result[name] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class SentinelError(Exception):
    """
    Base exception for all keysentinel errors.

    Subclasses set ``default_category``; callers may override it per
    instance. ``cause`` is chained onto ``__cause__`` so tracebacks show
    the original failure.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> SentinelError:
        """
        Add context to this error (fluent API).

        Usage:
            raise ContextFetchError("store unavailable").with_context(
                key="upstreams",
                path="sentinel/upstreams",
            )
        """
        for name, value in kwargs.items():
            if name != "metadata" and hasattr(self.context, name):
                setattr(self.context, name, value)
            else:
                self.context.metadata[name] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# REGISTRY ERRORS
# =============================================================================


class RegistryError(SentinelError):
    """Executor registration or lookup error."""

    default_category = ErrorCategory.REGISTRY


class ExecutorNotFoundError(RegistryError):
    """No executor registered under the requested name."""

    def __init__(self, name: str):
        self.executor_name = name
        super().__init__(f"Executor not found: {name}", context=ErrorContext(executor=name))


class DuplicateExecutorError(RegistryError):
    """A different executor already owns the requested name."""

    def __init__(self, name: str):
        self.executor_name = name
        super().__init__(
            f"Executor name already registered: {name}",
            context=ErrorContext(executor=name),
        )


# =============================================================================
# EXECUTION ERRORS
# =============================================================================


class ExecutorError(SentinelError):
    """An executor failed while handling a change or an explicit request."""

    default_category = ErrorCategory.EXECUTION


# =============================================================================
# CLIENT ERRORS
# =============================================================================


class ClientError(SentinelError):
    """The key/value store client failed."""

    default_category = ErrorCategory.CLIENT


class ContextFetchError(ClientError):
    """The context tree for a key could not be fetched."""


class KeyNotFoundError(ContextFetchError):
    """Nothing is stored under the requested path."""

    def __init__(self, path: str, message: str | None = None):
        self.path = path
        super().__init__(message or f"Key not found: {path}", context=ErrorContext(path=path))


# =============================================================================
# CONFIG ERRORS
# =============================================================================


class ConfigError(SentinelError):
    """Configuration error."""

    default_category = ErrorCategory.CONFIG


class InvalidConfigError(ConfigError):
    """A config file exists but does not describe a valid set of executors."""

    def __init__(self, source: str, message: str, *, cause: BaseException | None = None):
        self.source = source
        super().__init__(
            f"Invalid config {source}: {message}",
            context=ErrorContext(metadata={"source": source}),
            cause=cause,
        )


# =============================================================================
# AGGREGATE
# =============================================================================


class DispatchError(SentinelError):
    """
    One or more executors failed, or one or more names did not resolve.

    Carries the full :class:`~keysentinel.dispatch.result.DispatchReport`
    so callers can inspect which executors failed, not just that
    something did.
    """

    default_category = ErrorCategory.DISPATCH

    def __init__(self, report: DispatchReport):
        self.report = report
        self.unresolved = list(report.unresolved)
        super().__init__(_summarize(report))

    @property
    def errors(self) -> list[BaseException]:
        return self.report.errors

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["report"] = self.report.to_dict()
        return result


def _summarize(report: DispatchReport) -> str:
    parts = []
    if report.unresolved:
        parts.append("unknown executor(s): " + ", ".join(report.unresolved))
    for outcome in report.failures:
        parts.append(f"{outcome.executor}: {outcome.error}")
    return "; ".join(parts) or "dispatch failed"


def categorize_error(error: BaseException) -> ErrorCategory:
    """Get the category of an error."""
    if isinstance(error, SentinelError):
        return error.category
    if isinstance(error, (ConnectionError, OSError)):
        return ErrorCategory.CLIENT
    return ErrorCategory.UNKNOWN


__all__ = [
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
    "categorize_error",
]
