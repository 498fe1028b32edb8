"""Idle-slot scheduling for low-priority background work.

┌──────────────────────────────────────────────────────────────────────────────┐
│  IDLE SCHEDULER CONTRACT                                                      │
│                                                                               │
│   request_idle_slot(callback, timeout=T) ──► Cancellable                      │
│                                                                               │
│   callback(IdleDeadline) runs EXACTLY ONCE, whichever comes first:            │
│     • the event loop is observed to have spare capacity                      │
│       → IdleDeadline(did_timeout=False)                                       │
│     • T seconds elapse                                                        │
│       → IdleDeadline(did_timeout=True)                                        │
│                                                                               │
│   handle.cancel() before either happens → callback never runs                 │
│                                                                               │
│  LoopLagIdleScheduler probe:                                                  │
│                                                                               │
│     before = loop.time()                                                      │
│     await asyncio.sleep(probe_interval)                                       │
│     lag = loop.time() - before - probe_interval                               │
│     lag <= lag_threshold  →  loop is idle                                     │
│                                                                               │
│  A busy loop wakes the probe late (large lag); an idle loop wakes it on       │
│  time. The call_later guard bounds the wait regardless of load.               │
└──────────────────────────────────────────────────────────────────────────────┘
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from logspine.core.errors import InvalidConfigError
from logspine.core.logging import get_logger
from logspine.core.protocols import Cancellable

logger = get_logger(__name__)


@dataclass(frozen=True)
class IdleDeadline:
    """Passed to idle callbacks.

    Attributes:
        did_timeout: True if the slot was granted because the timeout elapsed
        waited_seconds: Loop time spent between request and callback
    """

    did_timeout: bool
    waited_seconds: float


IdleCallback = Callable[[IdleDeadline], None]


@runtime_checkable
class IdleScheduler(Protocol):
    """Protocol for idle-slot schedulers.

    Implementations:
        - LoopLagIdleScheduler: Event-loop lag probing (default)
        - ImmediateIdleScheduler: Next loop iteration, never waits
    """

    name: str

    def request_idle_slot(self, callback: IdleCallback, *, timeout: float) -> Cancellable:
        """Invoke ``callback`` once when idle or after ``timeout`` seconds."""
        ...


class ImmediateIdleScheduler:
    """Grants the idle slot on the next event loop iteration."""

    name = "immediate"

    def request_idle_slot(self, callback: IdleCallback, *, timeout: float) -> Cancellable:
        loop = asyncio.get_running_loop()
        return loop.call_soon(callback, IdleDeadline(did_timeout=False, waited_seconds=0.0))


class LoopLagIdleScheduler:
    """Grants the idle slot once a probe sleep wakes up on time.

    Example:
        >>> idle = LoopLagIdleScheduler(probe_interval=0.05, lag_threshold=0.01)
        >>> handle = idle.request_idle_slot(on_idle, timeout=10.0)
        >>> # ... later, if no longer needed ...
        >>> handle.cancel()
    """

    name = "loop-lag"

    def __init__(self, probe_interval: float = 0.05, lag_threshold: float = 0.01) -> None:
        if probe_interval <= 0:
            raise InvalidConfigError("probe_interval", probe_interval, "probe_interval must be > 0")
        if lag_threshold < 0:
            raise InvalidConfigError("lag_threshold", lag_threshold, "lag_threshold must be >= 0")
        self._probe_interval = probe_interval
        self._lag_threshold = lag_threshold

    @property
    def probe_interval(self) -> float:
        return self._probe_interval

    @property
    def lag_threshold(self) -> float:
        return self._lag_threshold

    def request_idle_slot(self, callback: IdleCallback, *, timeout: float) -> Cancellable:
        if timeout <= 0:
            raise InvalidConfigError("timeout", timeout, "idle timeout must be > 0")
        request = _IdleRequest(callback, timeout, self._probe_interval, self._lag_threshold)
        request.start()
        return request


class _IdleRequest:
    """One pending idle slot: a probe task raced against a timeout guard."""

    def __init__(
        self,
        callback: IdleCallback,
        timeout: float,
        probe_interval: float,
        lag_threshold: float,
    ) -> None:
        self._callback = callback
        self._timeout = timeout
        self._probe_interval = probe_interval
        self._lag_threshold = lag_threshold
        self._done = False
        self._loop: asyncio.AbstractEventLoop | None = None
        self._started_at = 0.0
        self._guard: asyncio.TimerHandle | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def done(self) -> bool:
        return self._done

    def start(self) -> None:
        loop = asyncio.get_running_loop()
        self._loop = loop
        self._started_at = loop.time()
        self._guard = loop.call_later(self._timeout, self._on_timeout)
        self._task = loop.create_task(self._probe(), name="logspine-idle-probe")

    def cancel(self) -> None:
        if self._done:
            return
        self._done = True
        if self._guard is not None:
            self._guard.cancel()
        if self._task is not None:
            self._task.cancel()

    async def _probe(self) -> None:
        assert self._loop is not None
        loop = self._loop
        while not self._done:
            before = loop.time()
            await asyncio.sleep(self._probe_interval)
            lag = loop.time() - before - self._probe_interval
            if lag <= self._lag_threshold:
                self._grant(did_timeout=False)
                return

    def _on_timeout(self) -> None:
        if self._done:
            return
        if self._task is not None:
            self._task.cancel()
        logger.debug("idle_slot_timeout", timeout_seconds=self._timeout)
        self._grant(did_timeout=True)

    def _grant(self, *, did_timeout: bool) -> None:
        if self._done:
            return
        self._done = True
        if self._guard is not None:
            self._guard.cancel()
        assert self._loop is not None
        waited = self._loop.time() - self._started_at
        self._callback(IdleDeadline(did_timeout=did_timeout, waited_seconds=waited))


__all__ = [
    "IdleDeadline",
    "IdleCallback",
    "IdleScheduler",
    "ImmediateIdleScheduler",
    "LoopLagIdleScheduler",
]
