"""Lightweight per-run tracing with stage spans."""

from __future__ import annotations

import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from uuid import uuid4

from feedenrich.models.domain import StageRecord


@dataclass
class Span:
    name: str
    started_at: datetime
    start_ms: float
    end_ms: float = 0.0
    error: str | None = None
    metadata: dict = field(default_factory=dict)

    @property
    def duration_ms(self) -> float:
        return self.end_ms - self.start_ms


class TraceContext:
    def __init__(self, trace_id: str | None = None) -> None:
        self.trace_id = trace_id or str(uuid4())
        self.spans: list[Span] = []
        self.start_time = time.monotonic()

    @contextmanager
    def span(self, name: str, **metadata):
        s = Span(
            name=name,
            started_at=datetime.now(timezone.utc),
            start_ms=(time.monotonic() - self.start_time) * 1000,
            metadata=metadata,
        )
        try:
            yield s
        except BaseException as e:
            s.error = f"{type(e).__name__}: {e}"
            raise
        finally:
            s.end_ms = (time.monotonic() - self.start_time) * 1000
            self.spans.append(s)

    @property
    def elapsed_ms(self) -> float:
        return (time.monotonic() - self.start_time) * 1000

    def to_stage_records(self) -> list[StageRecord]:
        return [
            StageRecord(
                stage=s.name,
                started_at=s.started_at,
                duration_ms=round(s.duration_ms, 2),
                output=dict(s.metadata),
                error=s.error,
            )
            for s in self.spans
        ]
