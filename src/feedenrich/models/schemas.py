"""Pydantic models for the oracle contract and API request/response bodies."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, Field, field_validator

from feedenrich.models.values import to_display_string
from feedenrich.pipeline.scopes import OptimizationScope


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


class OracleProposal(BaseModel):
    field: str
    before: str | None = None
    after: str = ""
    rationale: str | list[str] = ""
    source: str | list[str] = Field(default="", validation_alias=AliasChoices("source", "sources"))
    confidence: float = 0.0
    risk_level: str = "low"

    @field_validator("before", mode="before")
    @classmethod
    def _render_before(cls, v: Any) -> Any:
        if v is None or isinstance(v, str):
            return v
        return to_display_string(v)

    @field_validator("after", mode="before")
    @classmethod
    def _render_after(cls, v: Any) -> str:
        return v if isinstance(v, str) else to_display_string(v)

    @field_validator("confidence")
    @classmethod
    def _clamp_confidence(cls, v: float) -> float:
        return _clamp(v)

    @field_validator("risk_level", mode="before")
    @classmethod
    def _lower_risk(cls, v: Any) -> Any:
        return v.lower() if isinstance(v, str) else v

    @property
    def rationale_list(self) -> list[str]:
        if isinstance(self.rationale, list):
            return [r for r in self.rationale if r]
        return [self.rationale] if self.rationale else []

    @property
    def source_list(self) -> list[str]:
        if isinstance(self.source, list):
            return [s for s in self.source if s]
        return [self.source] if self.source else []


class OracleResponse(BaseModel):
    score: float = 0.0
    missing_fields: list[str] = Field(default_factory=list)
    weak_fields: list[str] = Field(default_factory=list)
    proposals: list[OracleProposal] = Field(default_factory=list)

    @field_validator("score")
    @classmethod
    def _clamp_score(cls, v: float) -> float:
        return _clamp(v)


class VisualObservation(BaseModel):
    attribute: str
    value: Any = None
    confidence: float = 0.0
    reasoning: str = ""

    @field_validator("confidence")
    @classmethod
    def _clamp_confidence(cls, v: float) -> float:
        return _clamp(v)

    @property
    def value_text(self) -> str:
        return to_display_string(self.value)


class VisualEvidenceResponse(BaseModel):
    observations: list[VisualObservation] = Field(default_factory=list)
    uncertain: list[str] = Field(default_factory=list)


class WebFact(BaseModel):
    field: str
    value: str
    source_url: str
    evidence_snippet: str = ""
    confidence: float = 0.0

    @field_validator("confidence")
    @classmethod
    def _clamp_confidence(cls, v: float) -> float:
        return _clamp(v)


class ExtractedFact(BaseModel):
    field: str
    value: str
    evidence: str = ""
    confidence: float = 0.0

    @field_validator("value", mode="before")
    @classmethod
    def _render_value(cls, v: Any) -> Any:
        return v if isinstance(v, str) else to_display_string(v)


class ExtractedFactsResponse(BaseModel):
    facts: list[ExtractedFact] = Field(default_factory=list)


# --- API bodies ---


class EnrichRequest(BaseModel):
    record_id: str
    fields: dict[str, Any]
    scope: OptimizationScope = OptimizationScope.ALL
    auto_apply: bool | None = None


class ValidateRequest(BaseModel):
    fields: dict[str, Any]


class DiffRequest(BaseModel):
    field: str
    before: str = ""
    after: str = ""


class HealthResponse(BaseModel):
    status: str
    oracle_provider: str
    vision_enabled: bool
    web_search_enabled: bool
