"""Periodic dump scheduler: drains an inner log store into a file writer.

┌──────────────────────────────────────────────────────────────────────────────┐
│  DUMP CYCLE                                                                   │
│                                                                               │
│   ┌──────────┐  dump(level)  ┌──────────────┐  write(batch)  ┌────────────┐   │
│   │  cycle   │ ────────────► │ Inner store  │ ─────────────► │ FileWriter │   │
│   └──────────┘               └──────────────┘                └────────────┘   │
│        ▲                                                           │          │
│        │                                          ok ──────────────┤          │
│        │                                                           ▼          │
│   idle slot (timeout=period) ◄──── timer(period) ◄──── _schedule_next()       │
│                                                                               │
│                                   failure ──► SUSPENDED (chain stops)         │
│                                                                               │
│  States:                                                                      │
│     HEALTHY ──cycle failure──► SUSPENDED ──flush()──► HEALTHY                 │
│                                                                               │
│  The pending trigger (timer handle, then idle handle) is the only            │
│  cancellable unit. Each trigger carries a generation number; cancelling      │
│  bumps the generation so a late callback from an old trigger is a no-op.     │
│  Cycles hold an asyncio.Lock, so a drain never overlaps another cycle.       │
└──────────────────────────────────────────────────────────────────────────────┘
"""

from __future__ import annotations

import asyncio
import functools
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from logspine.core.errors import (
    DrainError,
    DumpError,
    FlushError,
    InvalidConfigError,
    SchedulerStateError,
    WriteError,
)
from logspine.core.levels import LogLevel
from logspine.core.logging import LogContext, get_logger
from logspine.core.protocols import Cancellable, FileWriterFn, InnerLogStore, TimerFn

from .idle import IdleDeadline, IdleScheduler, LoopLagIdleScheduler

logger = get_logger(__name__)

COMPONENT = "dump-periodically"


class DumpState(str, Enum):
    """Health of the periodic dump chain."""

    HEALTHY = "healthy"
    SUSPENDED = "suspended"


class CycleOutcome(str, Enum):
    """Result of one drain-and-write cycle."""

    OK = "ok"
    FAILED = "failed"
    SKIPPED = "skipped"  # not ok: scheduler was suspended


@dataclass
class DumpStats:
    """Counters for monitoring the dump chain."""

    cycles_started: int = 0
    cycles_completed: int = 0
    cycles_skipped: int = 0
    failures: int = 0
    lines_written: int = 0
    idle_timeouts: int = 0
    last_error: DumpError | None = None
    last_cycle_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "cycles_started": self.cycles_started,
            "cycles_completed": self.cycles_completed,
            "cycles_skipped": self.cycles_skipped,
            "failures": self.failures,
            "lines_written": self.lines_written,
            "idle_timeouts": self.idle_timeouts,
            "last_error": self.last_error.to_dict() if self.last_error else None,
            "last_cycle_at": self.last_cycle_at.isoformat() if self.last_cycle_at else None,
        }


class PeriodicDumpLogger:
    """Wraps an inner log store and periodically persists its lines.

    ``log`` and ``dump`` are the inner store's own callables; this class only
    adds the background drain and the flush/recovery protocol. Must be
    created inside a running event loop: the first cycle starts immediately
    as a background task.

    Example:
        >>> store = MemoryLogStore()
        >>> dump_logger = PeriodicDumpLogger(
        ...     store, 10.0, JsonlFileWriter("logs.jsonl"), LogLevel.INFO
        ... )
        >>> dump_logger.log("INFO", "request served", path="/health")
        >>> await dump_logger.flush()   # persist now, restart the chain
        >>> await dump_logger.close()

    Args:
        inner: Inner log store (log / dump / flush)
        period_seconds: Minimum spacing between cycles, also the idle timeout
        file_writer: Async callable persisting an ordered batch
        level: Severity threshold for each drain
        idle_scheduler: Idle-slot scheduler (default: LoopLagIdleScheduler)
        timer: ``loop.call_later``-shaped timer (default: running loop's)
    """

    def __init__(
        self,
        inner: InnerLogStore,
        period_seconds: float,
        file_writer: FileWriterFn,
        level: LogLevel | str,
        *,
        idle_scheduler: IdleScheduler | None = None,
        timer: TimerFn | None = None,
    ) -> None:
        loop = asyncio.get_running_loop()
        if period_seconds <= 0:
            raise InvalidConfigError("period_seconds", period_seconds, "period_seconds must be > 0")

        self._inner = inner
        self._period = float(period_seconds)
        self._file_writer = file_writer
        self._level = LogLevel.parse(level)
        self._idle = idle_scheduler or LoopLagIdleScheduler()
        self._timer: TimerFn = timer or loop.call_later

        self._state = DumpState.HEALTHY
        self._pending: Cancellable | None = None
        self._generation = 0
        self._closed = False
        self._cycle_lock = asyncio.Lock()
        self._tasks: set[asyncio.Task[CycleOutcome]] = set()
        self._stats = DumpStats()

        self.log = inner.log
        self.dump = inner.dump

        self._spawn_cycle()

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> DumpState:
        return self._state

    @property
    def healthy(self) -> bool:
        return self._state is DumpState.HEALTHY

    @property
    def has_pending(self) -> bool:
        """True while a timer or idle request for the next cycle is armed."""
        return self._pending is not None

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def period_seconds(self) -> float:
        return self._period

    @property
    def level(self) -> LogLevel:
        return self._level

    @property
    def stats(self) -> DumpStats:
        return self._stats

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def flush(self) -> asyncio.Task[CycleOutcome]:
        """Flush the inner store and immediately start a fresh cycle.

        Clears a SUSPENDED state and preempts any pending trigger. Returns
        once the fresh cycle's drain has been initiated; the returned task
        resolves to that cycle's outcome.

        Raises:
            FlushError: The inner store failed to flush (scheduler suspended).
            SchedulerStateError: The scheduler was closed.
        """
        if self._closed:
            raise SchedulerStateError("Cannot flush a closed dump logger").with_context(
                component=COMPONENT, operation="flush"
            )

        if self._state is DumpState.SUSPENDED:
            logger.info("dump_periodically_resumed", component=COMPONENT)
        self._state = DumpState.HEALTHY
        self._cancel_pending()

        try:
            await self._inner.flush()
        except Exception as e:
            error = FlushError("Inner log store failed to flush", cause=e).with_context(
                component=COMPONENT, operation="flush"
            )
            self._suspend(error)
            raise error from e

        # a cycle that completed while we awaited may have armed a trigger
        self._cancel_pending()
        started = asyncio.Event()
        task = self._spawn_cycle(started, trigger="flush")
        await started.wait()
        return task

    async def close(self) -> None:
        """Stop scheduling and wait for in-flight cycles to settle."""
        self._closed = True
        self._cancel_pending()
        tasks = list(self._tasks)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def health(self) -> dict[str, Any]:
        """Return scheduler health status."""
        return {
            "healthy": self.healthy,
            "state": self._state.value,
            "pending": self.has_pending,
            "closed": self._closed,
            "period_seconds": self._period,
            "level": self._level.value,
            **self._stats.to_dict(),
        }

    # ------------------------------------------------------------------
    # Cycle
    # ------------------------------------------------------------------

    def _spawn_cycle(
        self,
        started: asyncio.Event | None = None,
        *,
        trigger: str = "start",
        generation: int | None = None,
    ) -> asyncio.Task[CycleOutcome]:
        task = asyncio.create_task(
            self._run_cycle(started, trigger=trigger, generation=generation),
            name="logspine-dump-cycle",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run_cycle(
        self,
        started: asyncio.Event | None = None,
        *,
        trigger: str = "start",
        generation: int | None = None,
    ) -> CycleOutcome:
        """Drain once and hand the batch to the writer.

        ``generation`` is set for cycles started by a timer/idle trigger; if
        the trigger was cancelled before the lock was acquired the cycle is
        skipped without draining.
        """
        try:
            async with self._cycle_lock, LogContext(component=COMPONENT, trigger=trigger):
                if generation is not None and generation != self._generation:
                    self._stats.cycles_skipped += 1
                    logger.debug("dump_cycle_skipped", reason="cancelled")
                    return CycleOutcome.SKIPPED
                if self._state is not DumpState.HEALTHY:
                    self._stats.cycles_skipped += 1
                    logger.debug("dump_cycle_skipped", reason=self._state.value)
                    return CycleOutcome.SKIPPED

                self._stats.cycles_started += 1
                if started is not None:
                    started.set()

                try:
                    lines = await self._inner.dump(self._level)
                except Exception as e:
                    self._suspend(DrainError("Inner log store failed to drain", cause=e).with_context(
                        component=COMPONENT, operation="drain", level=self._level.value
                    ))
                    return CycleOutcome.FAILED

                try:
                    await self._file_writer(lines)
                except Exception as e:
                    self._suspend(WriteError("Persistence sink rejected batch", cause=e).with_context(
                        component=COMPONENT, operation="write", lines=len(lines)
                    ))
                    return CycleOutcome.FAILED

                self._stats.cycles_completed += 1
                self._stats.lines_written += len(lines)
                self._stats.last_cycle_at = datetime.now(UTC)
                logger.debug("dump_cycle_completed", lines=len(lines))

                if self._state is DumpState.HEALTHY and not self._closed:
                    self._schedule_next()
                return CycleOutcome.OK
        finally:
            if started is not None:
                started.set()

    def _suspend(self, error: DumpError) -> None:
        self._state = DumpState.SUSPENDED
        self._cancel_pending()
        self._stats.failures += 1
        self._stats.last_error = error
        logger.error("dump_periodically_failed", **error.to_dict())

    # ------------------------------------------------------------------
    # Trigger: timer(period) → idle slot(timeout=period) → cycle
    # ------------------------------------------------------------------

    def _schedule_next(self) -> None:
        if self._state is not DumpState.HEALTHY:
            raise SchedulerStateError(
                f"Cannot schedule a dump cycle while {self._state.value}"
            ).with_context(component=COMPONENT, operation="schedule")
        self._cancel_pending()
        generation = self._generation
        self._pending = self._timer(self._period, functools.partial(self._on_timer, generation))

    def _on_timer(self, generation: int) -> None:
        if generation != self._generation:
            return
        self._pending = self._idle.request_idle_slot(
            functools.partial(self._on_idle, generation), timeout=self._period
        )

    def _on_idle(self, generation: int, deadline: IdleDeadline) -> None:
        if generation != self._generation:
            return
        self._pending = None
        if deadline.did_timeout:
            self._stats.idle_timeouts += 1
        self._spawn_cycle(trigger="timer", generation=generation)

    def _cancel_pending(self) -> None:
        self._generation += 1
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None


__all__ = ["DumpState", "CycleOutcome", "DumpStats", "PeriodicDumpLogger"]
