"""
Structured error types for logspine.

Every failure the periodic dump machinery can observe is converted into a
typed error carrying a category, structured context and the chained cause.
The scheduler logs these through ``error.to_dict()`` so that an operator can
see *which* collaborator failed (inner store drain, persistence write, inner
store flush) without the exception ever reaching a logging caller.

Manifesto:
    - **Typed Error Hierarchy:** Drain, write and flush failures are distinct
    - **Rich Context:** Errors carry component/operation metadata for logs
    - **Error Chaining:** The collaborator's original exception is preserved

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                      LogSpineError                               │
        │               (category, context, cause)                         │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  ConfigError          ValidationError      StorageError          │
        │  (CONFIG)             (VALIDATION)         (STORAGE)             │
        │       │                    │                                     │
        │  InvalidConfigError   InvalidLevelError                          │
        │                                                                  │
        │  DumpError            SchedulerStateError                        │
        │  (SCHEDULING)         (SCHEDULING)                               │
        │       │                                                          │
        │  DrainError  WriteError  FlushError                              │
        └─────────────────────────────────────────────────────────────────┘

Examples:
    >>> try:
    ...     raise OSError("disk full")
    ... except OSError as e:
    ...     error = WriteError("Persistence sink rejected batch", cause=e)
    >>> error.category
    <ErrorCategory.SCHEDULING: 'SCHEDULING'>
    >>> error.to_dict()["cause"]
    'disk full'

Guardrails:
    ❌ DON'T: Swallow the collaborator's exception
    ✅ DO: Pass it as cause= for error chaining
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    CONFIG = "CONFIG"
    VALIDATION = "VALIDATION"
    STORAGE = "STORAGE"
    SCHEDULING = "SCHEDULING"
    INTERNAL = "INTERNAL"


@dataclass
class ErrorContext:
    """Structured context attached to errors.

    Attributes:
        component: Component that raised (e.g. "dump-periodically")
        operation: Operation in progress (e.g. "drain", "write", "flush")
        metadata: Additional key-value pairs
    """

    component: str | None = None
    operation: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result: dict[str, Any] = {}
        for key in ["component", "operation"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class LogSpineError(Exception):
    """
    Base exception for all logspine errors.

    Examples:
        >>> error = LogSpineError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>

        >>> error = LogSpineError("Drain failed").with_context(
        ...     component="dump-periodically", operation="drain"
        ... )
        >>> error.context.operation
        'drain'
    """

    # Default category for this error type
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

        # Chain the cause if provided
        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> LogSpineError:
        """
        Add context to this error (fluent API).

        Usage:
            raise DrainError("Failed").with_context(
                component="dump-periodically",
                level="INFO",
            )
        """
        for key, value in kwargs.items():
            if key != "metadata" and hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
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
            result["cause_type"] = type(self.cause).__name__

        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(LogSpineError):
    """Configuration error. Configuration must be fixed."""

    default_category = ErrorCategory.CONFIG


class InvalidConfigError(ConfigError):
    """Configuration value is invalid."""

    def __init__(self, key: str, value: Any, message: str | None = None):
        self.key = key
        self.value = value
        super().__init__(message or f"Invalid configuration for {key}: {value!r}")

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["key"] = self.key
        result["value"] = repr(self.value)
        return result


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class ValidationError(LogSpineError):
    """Data validation error."""

    default_category = ErrorCategory.VALIDATION

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: Any = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.field:
            result["field"] = self.field
        if self.value is not None:
            result["value"] = repr(self.value)
        return result


class InvalidLevelError(ValidationError, ValueError):
    """Unknown log level name."""

    def __init__(self, value: Any):
        super().__init__(f"Unknown log level: {value!r}", field="level", value=value)


# =============================================================================
# STORAGE ERRORS
# =============================================================================


class StorageError(LogSpineError):
    """Persisting log lines to durable storage failed."""

    default_category = ErrorCategory.STORAGE


# =============================================================================
# DUMP / SCHEDULING ERRORS
# =============================================================================


class DumpError(LogSpineError):
    """A drain-and-write cycle failed."""

    default_category = ErrorCategory.SCHEDULING


class DrainError(DumpError):
    """The inner log store could not produce a batch."""

    pass


class WriteError(DumpError):
    """The persistence sink rejected a batch."""

    pass


class FlushError(DumpError):
    """The inner log store failed to flush its pending state."""

    pass


class SchedulerStateError(LogSpineError):
    """An operation is illegal in the scheduler's current state."""

    default_category = ErrorCategory.SCHEDULING


__all__ = [
    # Category enum
    "ErrorCategory",
    # Context
    "ErrorContext",
    # Base
    "LogSpineError",
    # Config
    "ConfigError",
    "InvalidConfigError",
    # Validation
    "ValidationError",
    "InvalidLevelError",
    # Storage
    "StorageError",
    # Dump
    "DumpError",
    "DrainError",
    "WriteError",
    "FlushError",
    "SchedulerStateError",
]
