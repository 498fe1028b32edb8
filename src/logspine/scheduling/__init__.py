"""Periodic dump scheduling for logspine.

Manifesto:
    Emitting a log line must stay cheap; persisting it is comparatively
    expensive. The scheduling package moves persistence into a background
    chain that drains the buffer at most once per period, yields to
    higher-priority work through an idle scheduler, and stops cleanly
    (instead of retrying blindly) when a collaborator fails.

Quick Start:
    >>> from logspine.scheduling import create_dump_logger
    >>> dump_logger = create_dump_logger()       # inside a running loop
    >>> dump_logger.log("INFO", "service started")
    >>> await dump_logger.flush()
    >>> await dump_logger.close()

Guardrails:
    ❌ Retrying a failed cycle automatically
    ✅ ``flush()`` is the only way back from SUSPENDED
    ❌ Constructing store, writer and idle scheduler individually
    ✅ ``create_dump_logger(settings)`` factory function
"""

from __future__ import annotations

from logspine.core.logging import configure_logging
from logspine.core.protocols import FileWriterFn, InnerLogStore
from logspine.core.settings import LogSpineSettings, get_settings
from logspine.sinks.jsonl import JsonlFileWriter
from logspine.stores.memory import MemoryLogStore

from .dump_periodically import CycleOutcome, DumpState, DumpStats, PeriodicDumpLogger
from .idle import (
    IdleDeadline,
    IdleScheduler,
    ImmediateIdleScheduler,
    LoopLagIdleScheduler,
)

__all__ = [
    # Scheduler
    "PeriodicDumpLogger",
    "DumpState",
    "DumpStats",
    "CycleOutcome",
    # Idle
    "IdleDeadline",
    "IdleScheduler",
    "ImmediateIdleScheduler",
    "LoopLagIdleScheduler",
    # Factory
    "create_dump_logger",
]


def create_dump_logger(
    settings: LogSpineSettings | None = None,
    *,
    inner: InnerLogStore | None = None,
    file_writer: FileWriterFn | None = None,
    idle_scheduler: IdleScheduler | None = None,
    configure_logs: bool = True,
) -> PeriodicDumpLogger:
    """Factory function to create a fully wired periodic dump logger.

    Must be called inside a running event loop; the first cycle starts
    immediately.

    Args:
        settings: Configuration (default: cached ``get_settings()``)
        inner: Inner log store (default: MemoryLogStore)
        file_writer: Persistence sink (default: JsonlFileWriter)
        idle_scheduler: Idle scheduler (default: LoopLagIdleScheduler)
        configure_logs: Apply ``log_level`` and ``json_logs`` to logspine's own
            structlog output (disable when the application configures structlog)

    Example:
        >>> dump_logger = create_dump_logger(LogSpineSettings(period_seconds=5))
    """
    settings = settings or get_settings()
    if configure_logs:
        configure_logging(settings.log_level, json_format=settings.json_logs)

    if inner is None:
        inner = MemoryLogStore(
            max_lines=settings.buffer_size,
            checkpoint_path=settings.checkpoint_path,
        )
    if file_writer is None:
        file_writer = JsonlFileWriter(settings.output_path, fsync=settings.fsync)
    if idle_scheduler is None:
        idle_scheduler = LoopLagIdleScheduler(
            probe_interval=settings.idle_probe_seconds,
            lag_threshold=settings.idle_lag_threshold_seconds,
        )

    return PeriodicDumpLogger(
        inner,
        settings.period_seconds,
        file_writer,
        settings.dump_level,
        idle_scheduler=idle_scheduler,
    )
