"""JSON-lines file writer: the default persistence sink."""

from __future__ import annotations

import asyncio
import json
import os
from collections.abc import Sequence
from pathlib import Path

from logspine.core.errors import StorageError
from logspine.core.levels import LogLine


class JsonlFileWriter:
    """Append one JSON object per log line to a file.

    Instances are async callables so they can be passed straight to
    :class:`~logspine.scheduling.dump_periodically.PeriodicDumpLogger` as the
    file writer. File I/O runs in a worker thread.
    """

    def __init__(self, path: Path | str, *, fsync: bool = False) -> None:
        self._path = Path(path)
        self._fsync = fsync
        self._lines_written = 0

    @property
    def path(self) -> Path:
        return self._path

    @property
    def lines_written(self) -> int:
        return self._lines_written

    async def __call__(self, lines: Sequence[LogLine]) -> None:
        if not lines:
            return
        payload = "".join(
            json.dumps(line.to_dict(), ensure_ascii=False, default=str) + "\n" for line in lines
        )
        try:
            await asyncio.to_thread(self._append, payload)
        except OSError as e:
            raise StorageError(f"Failed to write {len(lines)} lines", cause=e).with_context(
                component="jsonl-writer", operation="write", path=str(self._path)
            ) from e
        self._lines_written += len(lines)

    write = __call__

    def _append(self, payload: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._path.open("a", encoding="utf-8") as fh:
            fh.write(payload)
            if self._fsync:
                fh.flush()
                os.fsync(fh.fileno())


__all__ = ["JsonlFileWriter"]
