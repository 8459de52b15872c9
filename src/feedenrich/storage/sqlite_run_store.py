"""SQLite-backed, append-only audit store of pipeline runs."""

from __future__ import annotations

import json
from datetime import datetime, timezone

import aiosqlite

from feedenrich.models.domain import PipelineResult, RunStatus, StoredRun
from feedenrich.storage.migrations import initialize_run_db


class SQLiteRunStore:
    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    async def initialize(self) -> None:
        await initialize_run_db(self._db_path)

    async def save_run(self, result: PipelineResult) -> None:
        duration_ms = result.summary.duration_ms if result.summary else 0.0
        async with aiosqlite.connect(self._db_path) as db:
            await db.execute(
                "INSERT INTO runs "
                "(run_id, record_id, scope, status, started_at, duration_ms, "
                "accepted, rejected, human_review, result) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    result.run_id,
                    result.record_id,
                    result.scope,
                    result.status.value,
                    result.started_at.isoformat(),
                    duration_ms,
                    len(result.accepted),
                    len(result.rejected),
                    len(result.human_review),
                    json.dumps(result.to_dict(), ensure_ascii=False),
                ),
            )
            await db.commit()

    async def get_run(self, run_id: str) -> StoredRun | None:
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute("SELECT * FROM runs WHERE run_id = ?", (run_id,)) as cursor:
                row = await cursor.fetchone()
                if row is None:
                    return None
                return self._row_to_run(row)

    async def get_recent_runs(self, limit: int = 100) -> list[StoredRun]:
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(
                "SELECT * FROM runs ORDER BY started_at DESC LIMIT ?", (limit,)
            ) as cursor:
                rows = await cursor.fetchall()
                return [self._row_to_run(row) for row in rows]

    async def get_runs_for_record(self, record_id: str) -> list[StoredRun]:
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(
                "SELECT * FROM runs WHERE record_id = ? ORDER BY started_at", (record_id,)
            ) as cursor:
                rows = await cursor.fetchall()
                return [self._row_to_run(row) for row in rows]

    @staticmethod
    def _row_to_run(row: aiosqlite.Row) -> StoredRun:
        started_at = datetime.fromisoformat(row["started_at"])
        if started_at.tzinfo is None:
            started_at = started_at.replace(tzinfo=timezone.utc)
        return StoredRun(
            run_id=row["run_id"],
            record_id=row["record_id"],
            scope=row["scope"],
            status=RunStatus(row["status"]),
            started_at=started_at,
            duration_ms=row["duration_ms"],
            accepted=row["accepted"],
            rejected=row["rejected"],
            human_review=row["human_review"],
            result=json.loads(row["result"]),
        )
