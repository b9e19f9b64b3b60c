"""Tests for AgentRunLog model, UsageStore and UsageRecorder."""

from __future__ import annotations

import sqlite3
import threading
import time
from datetime import datetime
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from resume_studio.logging.models import AgentRunLog
from resume_studio.logging.usage_store import UsageRecorder, UsageStore
from resume_studio.models.agent import AgentRun, RunStatus


# --- AgentRunLog model tests ---


class TestAgentRunLog:
    def test_create_minimal(self):
        log = AgentRunLog(operation="tailor")
        assert log.operation == "tailor"
        assert log.user_id == "anonymous"
        assert log.success is True
        assert log.input_tokens == 0
        assert log.id  # uuid auto-generated

    def test_unique_ids(self):
        a = AgentRunLog(operation="tailor")
        b = AgentRunLog(operation="tailor")
        assert a.id != b.id

    def test_timestamp_auto(self):
        before = datetime.now()
        log = AgentRunLog(operation="merge")
        after = datetime.now()
        assert before <= log.timestamp <= after


# --- UsageStore tests ---


@pytest.fixture
def store(tmp_path: Path) -> UsageStore:
    return UsageStore(db_path=tmp_path / "test_usage.db")


class TestUsageStore:
    def test_save_and_get(self, store: UsageStore):
        log = AgentRunLog(operation="tailor", run_id="run-1", status="succeeded")
        store.save_log(log)
        logs = store.get_logs()
        assert len(logs) == 1
        assert logs[0].id == log.id
        assert logs[0].run_id == "run-1"

    def test_get_by_user_id(self, store: UsageStore):
        store.save_log(AgentRunLog(operation="tailor", user_id="u1"))
        store.save_log(AgentRunLog(operation="tailor", user_id="u2"))
        store.save_log(AgentRunLog(operation="merge", user_id="u1"))
        assert len(store.get_logs(user_id="u1")) == 2
        assert len(store.get_logs(user_id="u2")) == 1

    def test_get_logs_limit(self, store: UsageStore):
        for _ in range(10):
            store.save_log(AgentRunLog(operation="tailor"))
        assert len(store.get_logs(limit=3)) == 3

    def test_get_logs_empty(self, store: UsageStore):
        assert store.get_logs() == []

    def test_monthly_stats(self, store: UsageStore):
        store.save_log(
            AgentRunLog(operation="tailor", input_tokens=1000, output_tokens=500, elapsed_seconds=10)
        )
        store.save_log(
            AgentRunLog(
                operation="merge",
                input_tokens=2000,
                output_tokens=1000,
                elapsed_seconds=20,
                success=False,
            )
        )
        stats = store.get_monthly_stats()
        assert stats["total_runs"] == 2
        assert stats["total_input_tokens"] == 3000
        assert stats["total_output_tokens"] == 1500
        assert stats["avg_elapsed_seconds"] == 15.0
        assert stats["success_rate"] == 50.0
        assert stats["by_operation"] == {"tailor": 1, "merge": 1}

    def test_monthly_stats_empty(self, store: UsageStore):
        stats = store.get_monthly_stats()
        assert stats["total_runs"] == 0
        assert stats["avg_elapsed_seconds"] is None
        assert stats["success_rate"] == 0.0

    def test_roundtrip_preserves_fields(self, store: UsageStore):
        log = AgentRunLog(
            operation="fetch_job",
            user_id="u-rt",
            run_id="run-rt",
            status="failed",
            elapsed_seconds=12.5,
            input_tokens=800,
            output_tokens=400,
            success=False,
            error_message="page_access_error",
        )
        store.save_log(log)
        retrieved = store.get_logs()[0]
        assert retrieved.model_dump(exclude={"timestamp"}) == log.model_dump(exclude={"timestamp"})
        assert retrieved.timestamp == log.timestamp

    def test_wal_mode(self, tmp_path: Path):
        UsageStore(db_path=tmp_path / "wal_test.db")
        conn = sqlite3.connect(str(tmp_path / "wal_test.db"))
        mode = conn.execute("PRAGMA journal_mode").fetchone()[0]
        conn.close()
        assert mode == "wal"


# --- UsageRecorder tests ---


class TestUsageRecorder:
    def test_no_store_is_noop(self):
        assert UsageRecorder().record("tailor", user_id="u", started=time.monotonic()) is None

    def test_records_successful_run(self, store: UsageStore):
        run = AgentRun(
            run_id="run-9",
            status=RunStatus.SUCCEEDED,
            usage={"input_tokens": 10, "output_tokens": 5},
        )
        log = UsageRecorder(store).record("tailor", user_id="u", started=time.monotonic(), run=run)
        assert log.success is True
        assert log.status == "succeeded"
        assert log.input_tokens == 10
        assert store.get_logs()[0].run_id == "run-9"

    def test_records_error(self, store: UsageStore):
        log = UsageRecorder(store).record(
            "merge", user_id=None, started=time.monotonic(), error="timed out"
        )
        assert log.success is False
        assert log.user_id == "anonymous"
        assert log.error_message == "timed out"

    def test_failed_run_is_not_success(self, store: UsageStore):
        run = AgentRun(run_id="r", status=RunStatus.FAILED)
        log = UsageRecorder(store).record("parse_resume", user_id="u", started=time.monotonic(), run=run)
        assert log.success is False

    def test_storage_errors_are_swallowed(self):
        broken = MagicMock(spec=UsageStore)
        broken.save_log.side_effect = sqlite3.OperationalError("disk full")
        log = UsageRecorder(broken).record("tailor", user_id="u", started=time.monotonic())
        assert log is not None

    async def test_arecord_saves_in_worker_thread(self, store: UsageStore):
        loop_thread = threading.get_ident()
        threads = []
        tracked = MagicMock(spec=UsageStore)

        def save_log(log):
            threads.append(threading.get_ident())
            store.save_log(log)

        tracked.save_log.side_effect = save_log

        log = await UsageRecorder(tracked).arecord("merge", user_id="u", started=time.monotonic())

        assert log.success is False
        assert store.get_logs()[0].id == log.id
        assert threads and threads[0] != loop_thread

    async def test_arecord_without_store(self):
        assert await UsageRecorder().arecord("tailor", user_id="u", started=time.monotonic()) is None
