"""
Shared pytest fixtures for logspine tests.

Fakes live in ``tests/_support/fakes.py``; this module wires them into
fixtures that share one FakeTimers clock per test.
"""

import sys
from pathlib import Path

import pytest
import structlog

# Ensure logspine package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from logspine.core.settings import clear_settings_cache
from tests._support.fakes import (
    FakeIdleScheduler,
    FakeLogStore,
    FakeTimers,
    NeverIdleScheduler,
    RecordingWriter,
)


@pytest.fixture
def timers() -> FakeTimers:
    return FakeTimers()


@pytest.fixture
def store(timers: FakeTimers) -> FakeLogStore:
    return FakeLogStore(timers=timers)


@pytest.fixture
def writer(timers: FakeTimers) -> RecordingWriter:
    return RecordingWriter(timers=timers)


@pytest.fixture
def idle(timers: FakeTimers) -> FakeIdleScheduler:
    return FakeIdleScheduler(timers)


@pytest.fixture
def never_idle(timers: FakeTimers) -> NeverIdleScheduler:
    return NeverIdleScheduler(timers)


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture(autouse=True)
def _reset_structlog():
    yield
    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()
