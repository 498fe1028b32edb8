"""Log levels and the log line record handed between store and writer.

``LogLevel`` orders severities so a drain can select "at or above" a
threshold; ``LogLine`` is the record the reference store buffers and the
reference writer persists. The dump scheduler itself treats lines as opaque.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .errors import InvalidLevelError


class LogLevel(str, Enum):
    """Log levels matching Python logging, ordered by severity."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    @property
    def rank(self) -> int:
        return _RANKS[self]

    def includes(self, other: LogLevel) -> bool:
        """True if ``other`` is at or above this threshold."""
        return other.rank >= self.rank

    @classmethod
    def parse(cls, value: LogLevel | str) -> LogLevel:
        """Parse a level name (case-insensitive, WARN/FATAL aliases accepted).

        Raises:
            InvalidLevelError: If the name is not a known level.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            name = value.strip().upper()
            name = _ALIASES.get(name, name)
            try:
                return cls(name)
            except ValueError:
                pass
        raise InvalidLevelError(value)


_RANKS = {
    LogLevel.DEBUG: 10,
    LogLevel.INFO: 20,
    LogLevel.WARNING: 30,
    LogLevel.ERROR: 40,
    LogLevel.CRITICAL: 50,
}

_ALIASES = {"WARN": "WARNING", "FATAL": "CRITICAL"}


@dataclass(frozen=True)
class LogLine:
    """A single buffered log line.

    Attributes:
        timestamp: Epoch seconds when the line was logged
        level: Severity
        message: Rendered message
        fields: Structured key/value payload
    """

    timestamp: float
    level: LogLevel
    message: str
    fields: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "timestamp": self.timestamp,
            "level": self.level.value,
            "message": self.message,
            "fields": dict(self.fields),
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> LogLine:
        return cls(
            timestamp=float(payload["timestamp"]),
            level=LogLevel.parse(payload["level"]),
            message=str(payload["message"]),
            fields=dict(payload.get("fields") or {}),
        )


__all__ = ["LogLevel", "LogLine"]
