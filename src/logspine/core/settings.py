"""
Centralized settings for logspine.

All fields can be set via ``LOGSPINE_*`` environment variables (e.g.
``LOGSPINE_PERIOD_SECONDS=30``) or through a ``.env`` file. Values are
validated once at startup; the scheduler copies what it needs at
construction and never re-reads them.

Examples:
    >>> from logspine.core.settings import get_settings
    >>> settings = get_settings()
    >>> settings.period_seconds
    10.0
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .levels import LogLevel


class LogSpineSettings(BaseSettings):
    """logspine configuration.

    Fields
    ──────
    period_seconds             : Minimum spacing between dump cycles
    dump_level                 : Severity threshold for each drain
    output_path                : JSON-lines file the writer appends to
    checkpoint_path            : Optional ring-buffer checkpoint file
    buffer_size                : Ring-buffer capacity (lines)
    fsync                      : fsync after every written batch
    idle_probe_seconds         : Loop-lag probe interval for idle detection
    idle_lag_threshold_seconds : Max probe overshoot still counted as idle
    log_level                  : Level for logspine's own structlog output
    json_logs                  : JSON output for own logs (None = auto by tty)
    """

    model_config = SettingsConfigDict(
        env_prefix="LOGSPINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Dump cycle ───────────────────────────────────────────────
    period_seconds: float = Field(default=10.0, gt=0)
    dump_level: LogLevel = Field(default=LogLevel.INFO)

    # ── Storage ──────────────────────────────────────────────────
    output_path: Path = Field(
        default_factory=lambda: Path.home() / ".logspine" / "logs.jsonl",
        description="JSON-lines file for persisted log lines",
    )
    checkpoint_path: Path | None = None
    buffer_size: int = Field(default=10_000, gt=0)
    fsync: bool = False

    # ── Idle detection ───────────────────────────────────────────
    idle_probe_seconds: float = Field(default=0.05, gt=0)
    idle_lag_threshold_seconds: float = Field(default=0.01, ge=0)

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    json_logs: bool | None = None

    @field_validator("dump_level", mode="before")
    @classmethod
    def _parse_level(cls, value: object) -> LogLevel:
        return LogLevel.parse(value)  # type: ignore[arg-type]


@lru_cache(maxsize=1)
def get_settings() -> LogSpineSettings:
    """Return the cached settings instance."""
    return LogSpineSettings()


def clear_settings_cache() -> None:
    """Drop the cached settings (tests, config reloads)."""
    get_settings.cache_clear()


__all__ = ["LogSpineSettings", "get_settings", "clear_settings_cache"]
