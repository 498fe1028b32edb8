"""
logspine - periodic, non-blocking persistence for buffered log lines.

A ``PeriodicDumpLogger`` wraps an inner log store: logging stays a cheap
in-memory append while a background chain drains the store into a file
writer at most once per period, deferring to idle time when it can.
"""

__version__ = "0.1.0"

from logspine.core import *  # noqa
from logspine.scheduling import (  # noqa
    CycleOutcome,
    DumpState,
    PeriodicDumpLogger,
    create_dump_logger,
)
from logspine.sinks import JsonlFileWriter  # noqa
from logspine.stores import MemoryLogStore  # noqa
