"""End-to-end: real event loop, memory store, JSON-lines writer."""

from __future__ import annotations

import asyncio
import json
import logging

import pytest
import structlog

from logspine.core.levels import LogLevel
from logspine.core.logging import get_logger
from logspine.core.settings import LogSpineSettings
from logspine.scheduling import (
    ImmediateIdleScheduler,
    LoopLagIdleScheduler,
    PeriodicDumpLogger,
    create_dump_logger,
)
from logspine.sinks.jsonl import JsonlFileWriter
from logspine.stores.memory import MemoryLogStore


def _messages(path) -> list[str]:
    if not path.exists():
        return []
    # ignore a trailing line the writer thread has not finished yet
    complete = path.read_text(encoding="utf-8").split("\n")[:-1]
    return [json.loads(raw)["message"] for raw in complete]


async def _wait_for(predicate, timeout: float = 3.0) -> None:
    async def _poll() -> None:
        while not predicate():
            await asyncio.sleep(0.01)

    await asyncio.wait_for(_poll(), timeout=timeout)


class TestRealLoop:
    @pytest.mark.asyncio
    async def test_lines_are_persisted_periodically(self, tmp_path):
        path = tmp_path / "logs.jsonl"
        store = MemoryLogStore()
        dump_logger = PeriodicDumpLogger(
            store,
            0.05,
            JsonlFileWriter(path),
            LogLevel.INFO,
            idle_scheduler=LoopLagIdleScheduler(probe_interval=0.01, lag_threshold=0.05),
        )

        dump_logger.log("INFO", "first")
        dump_logger.log("DEBUG", "dropped")
        await _wait_for(lambda: _messages(path) == ["first"])

        dump_logger.log("ERROR", "second")
        await _wait_for(lambda: _messages(path) == ["first", "second"])

        assert dump_logger.healthy
        assert dump_logger.stats.cycles_completed >= 2
        await dump_logger.close()

    @pytest.mark.asyncio
    async def test_flush_persists_immediately(self, tmp_path):
        path = tmp_path / "logs.jsonl"
        dump_logger = PeriodicDumpLogger(
            MemoryLogStore(),
            60.0,
            JsonlFileWriter(path),
            "INFO",
            idle_scheduler=ImmediateIdleScheduler(),
        )
        await asyncio.sleep(0.01)

        dump_logger.log("WARNING", "urgent")
        cycle = await dump_logger.flush()
        await cycle

        assert _messages(path) == ["urgent"]
        await dump_logger.close()

    @pytest.mark.asyncio
    async def test_restart_does_not_persist_lines_twice(self, tmp_path):
        path = tmp_path / "logs.jsonl"
        checkpoint = tmp_path / "ring.jsonl"

        first = PeriodicDumpLogger(
            MemoryLogStore(checkpoint_path=checkpoint),
            60.0,
            JsonlFileWriter(path),
            "INFO",
            idle_scheduler=ImmediateIdleScheduler(),
        )
        first.log("INFO", "A")
        cycle = await first.flush()
        await cycle
        await first.close()
        assert _messages(path) == ["A"]

        restarted_store = MemoryLogStore(checkpoint_path=checkpoint)
        assert len(restarted_store) == 0
        second = PeriodicDumpLogger(
            restarted_store,
            60.0,
            JsonlFileWriter(path),
            "INFO",
            idle_scheduler=ImmediateIdleScheduler(),
        )
        await second.close()
        assert second.stats.cycles_completed == 1
        assert _messages(path) == ["A"]


class TestCreateDumpLogger:
    @pytest.mark.asyncio
    async def test_wires_settings(self, tmp_path):
        settings = LogSpineSettings(
            period_seconds=0.05,
            dump_level="WARNING",
            output_path=tmp_path / "out.jsonl",
            checkpoint_path=tmp_path / "ring.jsonl",
            buffer_size=5,
            idle_probe_seconds=0.01,
            idle_lag_threshold_seconds=0.05,
        )
        dump_logger = create_dump_logger(settings)

        assert dump_logger.period_seconds == 0.05
        assert dump_logger.level is LogLevel.WARNING

        dump_logger.log("INFO", "below threshold")
        dump_logger.log("ERROR", "kept")
        await _wait_for(lambda: _messages(tmp_path / "out.jsonl") == ["kept"])

        await dump_logger.flush()
        assert (tmp_path / "ring.jsonl").exists()
        await dump_logger.close()

    @pytest.mark.asyncio
    async def test_accepts_replacement_collaborators(self, tmp_path, store, writer):
        settings = LogSpineSettings(period_seconds=1.0, output_path=tmp_path / "unused.jsonl")
        dump_logger = create_dump_logger(
            settings, inner=store, file_writer=writer, idle_scheduler=ImmediateIdleScheduler()
        )
        await asyncio.sleep(0)
        await asyncio.sleep(0)

        assert store.dump_calls == [LogLevel.INFO]
        assert writer.calls == 1
        assert not (tmp_path / "unused.jsonl").exists()
        await dump_logger.close()

    @pytest.mark.asyncio
    async def test_applies_logging_settings(self, tmp_path, store, writer, caplog):
        caplog.set_level(logging.DEBUG)
        settings = LogSpineSettings(
            period_seconds=1.0,
            output_path=tmp_path / "unused.jsonl",
            log_level="ERROR",
            json_logs=True,
        )
        dump_logger = create_dump_logger(
            settings, inner=store, file_writer=writer, idle_scheduler=ImmediateIdleScheduler()
        )

        log = get_logger("logspine.test")
        log.warning("filtered_out")
        log.error("kept", detail=1)
        messages = [r.getMessage() for r in caplog.records if r.name == "logspine.test"]
        assert len(messages) == 1
        assert json.loads(messages[0])["event"] == "kept"
        await dump_logger.close()

    @pytest.mark.asyncio
    async def test_logging_setup_can_be_skipped(self, tmp_path, store, writer):
        settings = LogSpineSettings(period_seconds=1.0, output_path=tmp_path / "unused.jsonl")
        dump_logger = create_dump_logger(
            settings,
            inner=store,
            file_writer=writer,
            idle_scheduler=ImmediateIdleScheduler(),
            configure_logs=False,
        )

        assert structlog.is_configured() is False
        await dump_logger.close()
