"""Idempotent database schema creation."""

from __future__ import annotations

import aiosqlite

RUNS_TABLE = """
CREATE TABLE IF NOT EXISTS runs (
    run_id TEXT PRIMARY KEY,
    record_id TEXT NOT NULL,
    scope TEXT NOT NULL,
    status TEXT NOT NULL,
    started_at TEXT NOT NULL,
    duration_ms REAL NOT NULL,
    accepted INTEGER NOT NULL,
    rejected INTEGER NOT NULL,
    human_review INTEGER NOT NULL,
    result TEXT NOT NULL
)
"""

RUNS_RECORD_INDEX = """
CREATE INDEX IF NOT EXISTS idx_runs_record_id ON runs(record_id)
"""

RUNS_STARTED_INDEX = """
CREATE INDEX IF NOT EXISTS idx_runs_started_at ON runs(started_at)
"""


async def initialize_run_db(db_path: str) -> None:
    async with aiosqlite.connect(db_path) as db:
        await db.execute(RUNS_TABLE)
        await db.execute(RUNS_RECORD_INDEX)
        await db.execute(RUNS_STARTED_INDEX)
        await db.commit()
