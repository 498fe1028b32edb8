"""
Protocol definitions for the collaborators of the periodic dump scheduler.

The scheduler depends on shape, not implementation: any object matching
these protocols can be plugged in, which is how tests substitute
deterministic fakes for the store, the writer, the timer and the idle
scheduler.

Architecture:
    ::

        protocols.py
        ├── Cancellable     — handle returned by timers and idle requests
        ├── TimerFn         — loop.call_later-shaped timer
        ├── InnerLogStore   — log / dump(level) / flush()
        └── FileWriterFn    — async batch writer
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from typing import Any, Protocol, runtime_checkable

from .levels import LogLevel, LogLine


@runtime_checkable
class Cancellable(Protocol):
    """Anything with ``cancel()``; ``asyncio.TimerHandle`` and ``asyncio.Handle`` qualify."""

    def cancel(self) -> None: ...


TimerFn = Callable[[float, Callable[[], None]], Cancellable]
"""Schedule ``callback`` after ``delay`` seconds (``loop.call_later`` shape)."""


@runtime_checkable
class InnerLogStore(Protocol):
    """Accumulates log lines and drains ordered snapshots of them.

    ``dump`` must return lines ordered by timestamp ascending, limited to
    lines at or above ``level``. Both ``dump`` and ``flush`` may fail.
    """

    def log(self, *args: Any, **kwargs: Any) -> Any: ...

    async def dump(self, level: LogLevel) -> Sequence[LogLine]: ...

    async def flush(self) -> None: ...


FileWriterFn = Callable[[Sequence[LogLine]], Awaitable[None]]
"""Durably write an ordered batch of log lines; raise on failure."""


__all__ = ["Cancellable", "TimerFn", "InnerLogStore", "FileWriterFn"]
