"""Candidate field edits from the reasoning oracle."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

from pydantic import ValidationError

from feedenrich.exceptions import GenerationError, OracleError
from feedenrich.fields.aliases import resolve_key
from feedenrich.generation.prompt_templates import (
    ENRICHMENT_PROMPT,
    ENRICHMENT_SYSTEM,
    format_allowed_facts,
    format_evidence_block,
    format_record,
)
from feedenrich.models.domain import Proposal, Record, RiskLevel
from feedenrich.models.schemas import OracleProposal, OracleResponse
from feedenrich.models.values import to_display_string
from feedenrich.observability.logger import get_logger
from feedenrich.pipeline.scopes import OptimizationScope, ScopeProfile
from feedenrich.verification.screening import is_placeholder

logger = get_logger("generation")

_SOURCE_PREFIXES = {
    "feed": "feed",
    "image": "image",
    "visual": "image",
    "web": "web",
    "http": "web",
    "https": "web",
}


@dataclass
class GenerationOutput:
    score: float | None
    missing_fields: list[str] = field(default_factory=list)
    weak_fields: list[str] = field(default_factory=list)
    proposals: list[Proposal] = field(default_factory=list)
    filtered: list[str] = field(default_factory=list)  # fields dropped as non-concrete


def infer_source_type(sources: list[str]) -> str:
    """Classify ``feed:title`` / ``image:color`` / ``web:<url>`` descriptors."""
    kinds = set()
    for source in sources:
        prefix = source.split(":", 1)[0].strip().lower()
        kind = _SOURCE_PREFIXES.get(prefix)
        if kind:
            kinds.add(kind)
    if not kinds:
        return "inferred"
    if len(kinds) > 1:
        return "mixed"
    return kinds.pop()


def _risk_level(value: str) -> RiskLevel:
    try:
        return RiskLevel(value)
    except ValueError:
        return RiskLevel.LOW


class ProposalGenerator:
    def __init__(self, oracle, timeout_s: float = 60.0) -> None:
        self._oracle = oracle
        self._timeout_s = timeout_s

    async def generate(
        self,
        record: Record,
        allowed_facts: dict[str, str],
        visual_lines: list[str] | None = None,
        web_lines: list[str] | None = None,
        profile: ScopeProfile | None = None,
        timeout_s: float | None = None,
    ) -> GenerationOutput:
        prompt = self._build_prompt(record, allowed_facts, visual_lines or [], web_lines or [], profile)
        timeout = timeout_s if timeout_s is not None else self._timeout_s

        try:
            raw = await asyncio.wait_for(
                self._oracle.generate_json(prompt, system=ENRICHMENT_SYSTEM),
                timeout=timeout,
            )
        except asyncio.TimeoutError as e:
            raise GenerationError(f"Oracle timed out after {timeout:.1f}s") from e
        except GenerationError:
            raise
        except OracleError as e:
            raise GenerationError(str(e)) from e

        try:
            response = OracleResponse.model_validate(raw)
        except ValidationError as e:
            raise GenerationError(f"Oracle response does not match the proposal schema: {e}") from e

        output = GenerationOutput(
            score=response.score if "score" in raw else None,
            missing_fields=response.missing_fields,
            weak_fields=response.weak_fields,
        )
        for candidate in response.proposals:
            if not self._is_concrete(candidate):
                logger.info(
                    "proposal_filtered_not_concrete",
                    record_id=record.record_id,
                    field=candidate.field,
                    after=candidate.after[:80],
                )
                output.filtered.append(candidate.field)
                continue
            output.proposals.append(self._to_proposal(record, candidate))

        logger.info(
            "generated_proposals",
            record_id=record.record_id,
            proposals=len(output.proposals),
            filtered=len(output.filtered),
        )
        return output

    @staticmethod
    def _build_prompt(
        record: Record,
        allowed_facts: dict[str, str],
        visual_lines: list[str],
        web_lines: list[str],
        profile: ScopeProfile | None,
    ) -> str:
        if profile is None or profile.scope == OptimizationScope.ALL:
            scope_name = "All fields"
            scope_description = "Improve every field that can be better."
            restriction = ""
        else:
            scope_name, scope_description = profile.name, profile.description
            restriction = "Only propose changes to: " + ", ".join(profile.fields)
        return ENRICHMENT_PROMPT.format(
            record_json=format_record(record.current),
            allowed_facts=format_allowed_facts(allowed_facts),
            evidence_block=format_evidence_block(visual_lines, web_lines),
            scope_name=scope_name,
            scope_description=scope_description,
            field_restriction=restriction,
        )

    @staticmethod
    def _is_concrete(candidate: OracleProposal) -> bool:
        sources = candidate.source_list
        if sources and all(is_placeholder(s) for s in sources):
            return False
        return not is_placeholder(candidate.after)

    @staticmethod
    def _to_proposal(record: Record, candidate: OracleProposal) -> Proposal:
        # The record is authoritative for "before", not the oracle's echo of it
        key = resolve_key(record.current, candidate.field)
        before = to_display_string(record.current[key]) if key is not None else None
        sources = candidate.source_list
        return Proposal(
            record_id=record.record_id,
            field=candidate.field,
            before=before,
            after=candidate.after,
            rationale=candidate.rationale_list,
            sources=list(sources),
            confidence=candidate.confidence,
            source_type=infer_source_type(sources),
            risk_level=_risk_level(candidate.risk_level),
            record_key=key,
        )
