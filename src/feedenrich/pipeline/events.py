"""Typed event stream emitted by the enrichment pipeline."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from feedenrich.models.domain import PipelineResult, to_jsonable


class EventType(str, Enum):
    STAGE_STARTED = "stage_started"
    STAGE_ENDED = "stage_ended"
    PROPOSAL_EMITTED = "proposal_emitted"
    PROPOSAL_ACCEPTED = "proposal_accepted"
    PROPOSAL_REJECTED = "proposal_rejected"
    HUMAN_REVIEW_REQUIRED = "human_review_required"
    EVIDENCE_DEGRADED = "evidence_degraded"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    ERROR = "error"


TERMINAL_EVENTS = frozenset({EventType.COMPLETED, EventType.CANCELLED, EventType.ERROR})


@dataclass
class PipelineEvent:
    type: EventType
    stage: str | None = None
    payload: dict[str, Any] = field(default_factory=dict)
    result: PipelineResult | None = None  # set on terminal events only
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def terminal(self) -> bool:
        return self.type in TERMINAL_EVENTS

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "type": self.type.value,
            "stage": self.stage,
            "payload": to_jsonable(self.payload),
            "timestamp": self.timestamp.isoformat(),
        }
        if self.result is not None:
            data["result"] = self.result.to_dict()
        return data

    def to_sse(self) -> dict[str, str]:
        """Shape consumed by the streaming HTTP route."""
        return {"event": self.type.value, "data": json.dumps(self.to_dict(), ensure_ascii=False)}
