"""In-memory ring buffer log store.

Logging is a synchronous ``deque.append``; nothing on the caller's path
touches disk. ``dump`` drains the buffer for the periodic dump scheduler and
``flush`` optionally checkpoints lines that have not been dumped yet so they
survive a restart. A drain empties the checkpoint as well, so lines that were
handed to the writer are never reloaded.
"""

from __future__ import annotations

import asyncio
import json
import time
from collections import deque
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

from logspine.core.errors import InvalidConfigError, StorageError
from logspine.core.levels import LogLevel, LogLine
from logspine.core.logging import get_logger

logger = get_logger(__name__)

COMPONENT = "memory-store"


class MemoryLogStore:
    """Fixed-size buffer retaining the most recent :class:`LogLine` objects."""

    def __init__(
        self,
        *,
        max_lines: int = 10_000,
        checkpoint_path: Path | str | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if max_lines <= 0:
            raise InvalidConfigError("max_lines", max_lines, "max_lines must be positive")
        self._max_lines = max_lines
        self._checkpoint_path = Path(checkpoint_path) if checkpoint_path else None
        self._clock = clock
        self._buffer: deque[LogLine] = deque(maxlen=max_lines)
        self._dirty = False
        # checkpoint file holds lines that are no longer guaranteed undumped
        self._checkpoint_stale = False
        if self._checkpoint_path and self._checkpoint_path.exists():
            self._load_checkpoint(self._checkpoint_path)
            self._checkpoint_stale = bool(self._buffer)

    @property
    def max_lines(self) -> int:
        return self._max_lines

    def __len__(self) -> int:
        return len(self._buffer)

    def __iter__(self) -> Iterator[LogLine]:
        """Iterate over buffered lines from oldest to newest."""
        return iter(self._buffer)

    def log(self, level: LogLevel | str, message: Any, **fields: Any) -> LogLine:
        """Append a line, evicting the oldest one if the buffer is full."""
        line = LogLine(
            timestamp=self._clock(),
            level=LogLevel.parse(level),
            message=str(message),
            fields=fields,
        )
        self._buffer.append(line)
        self._dirty = True
        return line

    async def dump(self, level: LogLevel | str) -> list[LogLine]:
        """Drain the buffer, returning lines at or above ``level`` by timestamp.

        Raises:
            StorageError: The checkpoint could not be cleared. The drained
                lines are put back at the front of the buffer.
        """
        threshold = LogLevel.parse(level)
        drained = list(self._buffer)
        lines = sorted(
            (line for line in drained if threshold.includes(line.level)),
            key=lambda line: line.timestamp,
        )
        self._buffer.clear()
        self._dirty = True
        if self._checkpoint_path and self._checkpoint_stale:
            # lines logged while this runs mark the buffer dirty again
            self._dirty = False
            try:
                await self._checkpoint([])
            except StorageError:
                self._buffer.extendleft(reversed(drained))
                raise
            self._checkpoint_stale = False
        return lines

    async def flush(self) -> None:
        """Checkpoint undumped lines if a checkpoint path is configured."""
        if not self._checkpoint_path or not self._dirty:
            return
        snapshot = list(self._buffer)
        self._dirty = False
        await self._checkpoint(snapshot)
        self._checkpoint_stale = bool(snapshot)
        logger.debug("checkpoint_written", path=str(self._checkpoint_path), lines=len(snapshot))

    async def _checkpoint(self, lines: list[LogLine]) -> None:
        try:
            await asyncio.to_thread(self._write_checkpoint, self._checkpoint_path, lines)
        except OSError as e:
            self._dirty = True
            raise StorageError(f"Failed to checkpoint {len(lines)} lines", cause=e).with_context(
                component=COMPONENT, operation="checkpoint", path=str(self._checkpoint_path)
            ) from e

    @staticmethod
    def _write_checkpoint(path: Path, lines: list[LogLine]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as fh:
            for line in lines:
                fh.write(json.dumps(line.to_dict(), sort_keys=True, default=str))
                fh.write("\n")

    def _load_checkpoint(self, path: Path) -> None:
        """Hydrate the buffer from a newline-delimited JSON checkpoint."""
        lineno = 0
        try:
            with path.open("r", encoding="utf-8") as fh:
                for lineno, raw in enumerate(fh, start=1):
                    if not raw.strip():
                        continue
                    self._buffer.append(LogLine.from_dict(json.loads(raw)))
        except OSError as e:
            raise StorageError("Failed to read checkpoint", cause=e).with_context(
                component=COMPONENT, operation="load_checkpoint", path=str(path)
            ) from e
        except (ValueError, KeyError, TypeError) as e:
            raise StorageError(f"Corrupt checkpoint at line {lineno}", cause=e).with_context(
                component=COMPONENT, operation="load_checkpoint", path=str(path), line=lineno
            ) from e


__all__ = ["MemoryLogStore"]
