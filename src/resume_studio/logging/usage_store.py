"""SQLite-backed agent usage log storage."""

from __future__ import annotations

import asyncio
import logging
import sqlite3
import time
from datetime import datetime
from pathlib import Path

from resume_studio.logging.models import AgentRunLog
from resume_studio.models.agent import AgentRun

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path.home() / ".resume-studio" / "usage.db"


class UsageStore:
    """SQLite-backed store for agent run logs with WAL mode."""

    def __init__(self, db_path: str | Path = DEFAULT_DB_PATH):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path))
        conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS agent_runs (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    timestamp TEXT NOT NULL,
                    operation TEXT NOT NULL,
                    run_id TEXT,
                    status TEXT,
                    elapsed_seconds REAL NOT NULL DEFAULT 0.0,
                    input_tokens INTEGER NOT NULL DEFAULT 0,
                    output_tokens INTEGER NOT NULL DEFAULT 0,
                    success INTEGER NOT NULL DEFAULT 1,
                    error_message TEXT
                )
            """)

    def save_log(self, log: AgentRunLog) -> None:
        """Persist a usage log entry."""
        with self._connect() as conn:
            conn.execute(
                """INSERT OR REPLACE INTO agent_runs
                   (id, user_id, timestamp, operation, run_id, status,
                    elapsed_seconds, input_tokens, output_tokens, success,
                    error_message)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    log.id,
                    log.user_id,
                    log.timestamp.isoformat(),
                    log.operation,
                    log.run_id,
                    log.status,
                    log.elapsed_seconds,
                    log.input_tokens,
                    log.output_tokens,
                    1 if log.success else 0,
                    log.error_message,
                ),
            )

    def get_logs(
        self,
        user_id: str | None = None,
        limit: int = 50,
    ) -> list[AgentRunLog]:
        """Retrieve usage logs, newest first, optionally filtered by user."""
        with self._connect() as conn:
            if user_id is not None:
                rows = conn.execute(
                    "SELECT * FROM agent_runs WHERE user_id = ? ORDER BY timestamp DESC LIMIT ?",
                    (user_id, limit),
                ).fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM agent_runs ORDER BY timestamp DESC LIMIT ?",
                    (limit,),
                ).fetchall()
        return [self._row_to_log(row) for row in rows]

    def get_monthly_stats(self) -> dict:
        """Get aggregated stats for the current month."""
        now = datetime.now()
        month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        with self._connect() as conn:
            row = conn.execute(
                """SELECT
                       COUNT(*) as total_runs,
                       SUM(input_tokens) as total_input,
                       SUM(output_tokens) as total_output,
                       AVG(elapsed_seconds) as avg_elapsed,
                       SUM(CASE WHEN success = 1 THEN 1 ELSE 0 END) as success_count
                   FROM agent_runs
                   WHERE timestamp >= ?""",
                (month_start.isoformat(),),
            ).fetchone()
            by_operation = dict(
                conn.execute(
                    """SELECT operation, COUNT(*) FROM agent_runs
                       WHERE timestamp >= ? GROUP BY operation""",
                    (month_start.isoformat(),),
                ).fetchall()
            )
        return {
            "total_runs": row[0] or 0,
            "total_input_tokens": row[1] or 0,
            "total_output_tokens": row[2] or 0,
            "avg_elapsed_seconds": round(row[3], 1) if row[3] is not None else None,
            "success_rate": (row[4] / row[0] * 100) if row[0] else 0.0,
            "by_operation": by_operation,
            "month": now.strftime("%Y-%m"),
        }

    @staticmethod
    def _row_to_log(row: tuple) -> AgentRunLog:
        return AgentRunLog(
            id=row[0],
            user_id=row[1],
            timestamp=datetime.fromisoformat(row[2]),
            operation=row[3],
            run_id=row[4],
            status=row[5],
            elapsed_seconds=row[6],
            input_tokens=row[7],
            output_tokens=row[8],
            success=bool(row[9]),
            error_message=row[10],
        )


class UsageRecorder:
    """Builds and saves ``AgentRunLog`` entries; a no-op without a store.

    Storage failures are logged and never interrupt the request that
    produced the run.
    """

    def __init__(self, store: UsageStore | None = None):
        self.store = store

    def _build(
        self,
        operation: str,
        user_id: str | None,
        started: float,
        run: AgentRun | None,
        error: str | None,
    ) -> AgentRunLog:
        usage = (run.usage if run is not None else None) or {}
        log = AgentRunLog(
            operation=operation,
            user_id=user_id or "anonymous",
            run_id=run.run_id if run is not None else None,
            status=run.status.value if run is not None else None,
            elapsed_seconds=round(time.monotonic() - started, 3),
            input_tokens=usage.get("input_tokens", 0),
            output_tokens=usage.get("output_tokens", 0),
            success=error is None and run is not None and run.succeeded,
            error_message=error,
        )
        return log

    def _save(self, log: AgentRunLog) -> None:
        try:
            self.store.save_log(log)
        except sqlite3.Error:
            logger.warning("Failed to save usage log for %s", log.operation, exc_info=True)

    def record(
        self,
        operation: str,
        *,
        user_id: str | None,
        started: float,
        run: AgentRun | None = None,
        error: str | None = None,
    ) -> AgentRunLog | None:
        if self.store is None:
            return None
        log = self._build(operation, user_id, started, run, error)
        self._save(log)
        return log

    async def arecord(
        self,
        operation: str,
        *,
        user_id: str | None,
        started: float,
        run: AgentRun | None = None,
        error: str | None = None,
    ) -> AgentRunLog | None:
        """Like ``record``, with the write done off the event loop."""
        if self.store is None:
            return None
        log = self._build(operation, user_id, started, run, error)
        await asyncio.to_thread(self._save, log)
        return log
