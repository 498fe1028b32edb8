"""Core primitives: levels, errors, settings, logging and collaborator protocols."""

from .errors import (
    ConfigError,
    DrainError,
    DumpError,
    ErrorCategory,
    ErrorContext,
    FlushError,
    InvalidConfigError,
    InvalidLevelError,
    LogSpineError,
    SchedulerStateError,
    StorageError,
    ValidationError,
    WriteError,
)
from .levels import LogLevel, LogLine
from .protocols import Cancellable, FileWriterFn, InnerLogStore, TimerFn

__all__ = [
    "LogLevel",
    "LogLine",
    "Cancellable",
    "FileWriterFn",
    "InnerLogStore",
    "TimerFn",
    "ErrorCategory",
    "ErrorContext",
    "LogSpineError",
    "ConfigError",
    "InvalidConfigError",
    "ValidationError",
    "InvalidLevelError",
    "StorageError",
    "DumpError",
    "DrainError",
    "WriteError",
    "FlushError",
    "SchedulerStateError",
]
