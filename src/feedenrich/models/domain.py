"""Core domain objects used throughout the system."""

from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping
from uuid import uuid4

from feedenrich.exceptions import InvalidRecordError, ProposalStateError
from feedenrich.models.values import FeedValue, normalize_field_map


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EvidenceOrigin(str, Enum):
    FEED = "original-feed"
    VISUAL = "visual-observation"
    EXTERNAL_PAGE = "external-page"
    HUMAN = "human-input"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ProposalStatus(str, Enum):
    PROPOSED = "proposed"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EDITED = "edited"


class ChangeType(str, Enum):
    ADDED = "added"
    REMOVED = "removed"
    MODIFIED = "modified"
    UNCHANGED = "unchanged"


class PipelineState(str, Enum):
    INITIALIZED = "initialized"
    VALIDATING = "validating"
    EVIDENCE_GATHERING = "evidence-gathering"
    GENERATING = "generating"
    SCREENING = "screening"
    RISK_ASSESSING = "risk-assessing"
    FINALIZED = "finalized"
    FAILED = "failed"
    CANCELLED = "cancelled"


class RunStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


def to_jsonable(obj: Any) -> Any:
    """Convert dataclasses, enums and datetimes into JSON-ready structures."""
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, datetime):
        return obj.isoformat()
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: to_jsonable(getattr(obj, f.name)) for f in dataclasses.fields(obj)}
    if isinstance(obj, Mapping):
        return {str(k): to_jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_jsonable(v) for v in obj]
    return obj


@dataclass
class Record:
    """One catalog entry. ``raw`` is frozen; ``current`` evolves via ``apply``."""

    record_id: str
    raw: Mapping[str, str]
    current: dict[str, str]

    @classmethod
    def from_fields(cls, record_id: str, fields: Mapping[str, FeedValue]) -> Record:
        normalized = normalize_field_map(dict(fields))
        return cls(
            record_id=record_id,
            raw=MappingProxyType(dict(normalized)),
            current=dict(normalized),
        )

    @classmethod
    def from_json(cls, record_id: str, payload: str | bytes) -> Record:
        try:
            data = json.loads(payload)
        except (TypeError, ValueError) as e:
            raise InvalidRecordError(f"Record {record_id} is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise InvalidRecordError(
                f"Record {record_id} must be a JSON object, got {type(data).__name__}"
            )
        return cls.from_fields(record_id, data)

    def apply(self, proposal: Proposal) -> None:
        if proposal.status not in (ProposalStatus.ACCEPTED, ProposalStatus.EDITED):
            raise ProposalStateError(
                f"Cannot apply proposal {proposal.proposal_id} in status {proposal.status.value}"
            )
        self.current[proposal.record_key or proposal.field] = proposal.after


@dataclass
class EvidenceSource:
    kind: str  # feed_field, image_observation, web_page, user_input
    reference: str  # field name, URL, or actor id
    snippet: str = ""
    url: str | None = None
    image_url: str | None = None
    timestamp: datetime = field(default_factory=_utcnow)


@dataclass
class Evidence:
    evidence_id: str
    record_id: str
    field: str
    value: str
    origin: EvidenceOrigin
    source: EvidenceSource
    confidence: float
    verified: bool
    verified_by: str | None = None
    created_at: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> dict:
        return to_jsonable(self)


@dataclass
class RiskAssessment:
    level: RiskLevel
    reasons: list[str]
    requires_human: bool
    confidence: float

    def __post_init__(self) -> None:
        if self.level == RiskLevel.HIGH:
            self.requires_human = True


@dataclass
class DiffChange:
    type: str  # insert, delete, equal
    text: str
    position: int


@dataclass
class FieldDiff:
    field: str
    before: str
    after: str
    change_type: ChangeType
    changes: list[DiffChange] = field(default_factory=list)
    added_words: list[str] = field(default_factory=list)
    removed_words: list[str] = field(default_factory=list)
    similarity: float = 0.0


@dataclass
class Proposal:
    record_id: str
    field: str
    before: str | None
    after: str
    rationale: list[str] = field(default_factory=list)
    sources: list[Any] = field(default_factory=list)  # evidence ids or inline descriptors
    confidence: float = 0.0
    source_type: str = "inferred"  # feed, image, web, inferred, mixed
    risk_level: RiskLevel = RiskLevel.LOW
    record_key: str | None = None  # the record's own column for ``field``, when it has one
    status: ProposalStatus = ProposalStatus.PROPOSED
    risk: RiskAssessment | None = None
    diff: FieldDiff | None = None
    reviewed_by: str | None = None
    proposal_id: str = field(default_factory=lambda: str(uuid4()))
    created_at: datetime = field(default_factory=_utcnow)
    reviewed_at: datetime | None = None

    def has_valid_after(self) -> bool:
        return bool(self.after and self.after.strip()) and self.after != self.before

    def transition(
        self, status: ProposalStatus, actor: str = "system", after: str | None = None
    ) -> None:
        """Move out of ``proposed``. Allowed exactly once."""
        if self.status != ProposalStatus.PROPOSED:
            raise ProposalStateError(
                f"Proposal {self.proposal_id} already {self.status.value}"
            )
        if status == ProposalStatus.PROPOSED:
            raise ProposalStateError("Cannot transition a proposal back to proposed")
        if status == ProposalStatus.EDITED:
            if not after or not after.strip() or after == self.before:
                raise ProposalStateError("Edited value must be non-empty and differ from before")
            self.after = after
        self.status = status
        self.reviewed_by = actor
        self.reviewed_at = _utcnow()

    def to_dict(self) -> dict:
        return to_jsonable(self)


@dataclass
class RuleViolation:
    rule_id: str
    field: str
    message: str
    expected: str = ""
    actual: str = ""


@dataclass
class ValidationResult:
    violations: list[RuleViolation] = field(default_factory=list)
    warnings: list[RuleViolation] = field(default_factory=list)
    rules_checked: int = 0

    @property
    def valid(self) -> bool:
        return not self.violations

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "violations": to_jsonable(self.violations),
            "warnings": to_jsonable(self.warnings),
            "rules_checked": self.rules_checked,
        }


@dataclass
class StageRecord:
    stage: str
    started_at: datetime
    duration_ms: float
    output: dict = field(default_factory=dict)
    error: str | None = None


@dataclass
class Rejection:
    field: str
    reason: str
    stage: str
    proposal: Proposal | None = None


@dataclass
class PipelineError:
    stage: str
    message: str


@dataclass
class PipelineSummary:
    total_stages: int = 0
    proposals_created: int = 0
    proposals_accepted: int = 0
    proposals_rejected: int = 0
    human_review_needed: int = 0
    score_before: float = 0.0
    score_after: float = 0.0
    duration_ms: float = 0.0


@dataclass
class PipelineResult:
    record_id: str
    scope: str
    run_id: str = field(default_factory=lambda: str(uuid4()))
    status: RunStatus = RunStatus.RUNNING
    state: PipelineState = PipelineState.INITIALIZED
    started_at: datetime = field(default_factory=_utcnow)
    completed_at: datetime | None = None
    stages: list[StageRecord] = field(default_factory=list)
    accepted: list[Proposal] = field(default_factory=list)
    rejected: list[Rejection] = field(default_factory=list)
    human_review: list[Proposal] = field(default_factory=list)
    evidence_trail: list[dict] = field(default_factory=list)
    validation: ValidationResult | None = None
    summary: PipelineSummary | None = None
    error: PipelineError | None = None

    def to_dict(self) -> dict:
        data = to_jsonable(self)
        if self.validation is not None:
            data["validation"] = self.validation.to_dict()
        return data


@dataclass
class StoredRun:
    """A finished run as kept in the audit store."""

    run_id: str
    record_id: str
    scope: str
    status: RunStatus
    started_at: datetime
    duration_ms: float
    accepted: int
    rejected: int
    human_review: int
    result: dict
