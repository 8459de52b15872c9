"""Enrichment pipeline orchestrator.

validating -> evidence-gathering -> generating -> screening -> risk-assessing
-> finalized. Every run returns a PipelineResult, including failed and
cancelled runs, so partial work is always available for audit.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator, Awaitable
from datetime import datetime, timezone
from typing import Any

from feedenrich.config.settings import Settings
from feedenrich.diffing.diff_engine import DiffEngine
from feedenrich.evidence.registry import EvidenceRegistry
from feedenrich.evidence.visual import DEFAULT_VISUAL_ATTRIBUTES, VisualEvidenceCollector
from feedenrich.evidence.web import WebEvidenceCollector
from feedenrich.exceptions import FeedEnrichError, GenerationError, PipelineCancelled
from feedenrich.fields.aliases import canonicalize, extract_field, extract_image_url
from feedenrich.generation.proposal_generator import GenerationOutput, ProposalGenerator
from feedenrich.models.domain import (
    EvidenceOrigin,
    PipelineError,
    PipelineResult,
    PipelineState,
    PipelineSummary,
    ProposalStatus,
    Record,
    Rejection,
    RunStatus,
)
from feedenrich.observability.logger import get_logger
from feedenrich.observability.metrics import (
    log_evidence_metrics,
    log_pipeline_metrics,
    log_stage_metrics,
)
from feedenrich.observability.tracing import TraceContext
from feedenrich.pipeline.events import EventType, PipelineEvent
from feedenrich.pipeline.scopes import SCOPE_PROFILES, OptimizationScope, ScopeProfile, get_profile
from feedenrich.protocols.collectors import VisualCollector, WebCollector
from feedenrich.scoring.quality import QualityScorer
from feedenrich.scoring.risk import RiskClassifier
from feedenrich.validation.hard_rules import HardRuleValidator
from feedenrich.validation.rules import default_gmc_rules
from feedenrich.verification.screening import ProposalScreen, RejectReason, is_url_field

logger = get_logger("enrichment_pipeline")

VISUAL_MATCH_ACTOR = "visual-match"


class EnrichmentPipeline:
    def __init__(
        self,
        validator: HardRuleValidator,
        generator: ProposalGenerator,
        risk_classifier: RiskClassifier,
        diff_engine: DiffEngine,
        screen: ProposalScreen,
        quality_scorer: QualityScorer,
        settings: Settings,
        visual_collector: VisualCollector | None = None,
        web_collector: WebCollector | None = None,
        run_store=None,
    ) -> None:
        self._validator = validator
        self._generator = generator
        self._risk = risk_classifier
        self._diff = diff_engine
        self._screen = screen
        self._quality = quality_scorer
        self._settings = settings
        self._visual = visual_collector
        self._web = web_collector
        self._run_store = run_store

    async def run(
        self,
        record: Record,
        scope: OptimizationScope | str = OptimizationScope.ALL,
        cancel_event: asyncio.Event | None = None,
        auto_apply: bool | None = None,
    ) -> PipelineResult:
        result: PipelineResult | None = None
        async for event in self.stream(record, scope, cancel_event, auto_apply):
            if event.terminal:
                result = event.result
        if result is None:
            raise FeedEnrichError(f"Run for {record.record_id} ended without a terminal event")
        return result

    async def stream(
        self,
        record: Record,
        scope: OptimizationScope | str = OptimizationScope.ALL,
        cancel_event: asyncio.Event | None = None,
        auto_apply: bool | None = None,
    ) -> AsyncGenerator[PipelineEvent, None]:
        """Run the pipeline, yielding events; the last event carries the result."""
        profile = get_profile(scope)
        result = PipelineResult(record_id=record.record_id, scope=profile.scope.value)
        trace = TraceContext(trace_id=result.run_id)
        registry = EvidenceRegistry(record.record_id, self._settings.visual_verify_threshold)
        apply_accepted = self._settings.auto_apply if auto_apply is None else auto_apply
        log = logger.bind(record_id=record.record_id, run_id=result.run_id, scope=profile.scope.value)
        oracle_score: float | None = None
        created = 0

        log.info("pipeline_started", fields=len(record.current))

        try:
            # STAGE 1: Hard rules (never blocks)
            self._check_cancelled(cancel_event)
            result.state = PipelineState.VALIDATING
            yield self._stage_event(EventType.STAGE_STARTED, result.state)
            with trace.span(result.state.value) as span:
                result.validation = self._validator.validate(record)
                span.metadata.update(
                    valid=result.validation.valid,
                    violations=len(result.validation.violations),
                    warnings=len(result.validation.warnings),
                )
            yield self._stage_event(EventType.STAGE_ENDED, result.state, span.metadata)

            # STAGE 2: Evidence
            self._check_cancelled(cancel_event)
            result.state = PipelineState.EVIDENCE_GATHERING
            yield self._stage_event(EventType.STAGE_STARTED, result.state)
            with trace.span(result.state.value) as span:
                registry.load_from_feed(record.record_id, record.current)
                visual_lines, web_lines, degraded = await self._gather_evidence(
                    record, registry, profile, cancel_event
                )
                span.metadata.update(registry.count_by_origin())
                span.metadata["degraded"] = [source for source, _ in degraded]
            for source, error in degraded:
                log.warning("evidence_degraded", source=source, error=error)
                yield PipelineEvent(
                    type=EventType.EVIDENCE_DEGRADED,
                    stage=result.state.value,
                    payload={"source": source, "error": error},
                )
            counts = registry.count_by_origin()
            allowed_facts = registry.allowed_facts()
            log_evidence_metrics(
                trace.trace_id,
                feed_facts=counts[EvidenceOrigin.FEED.value],
                visual_facts=counts[EvidenceOrigin.VISUAL.value],
                web_facts=counts[EvidenceOrigin.EXTERNAL_PAGE.value],
                allowed_facts=len(allowed_facts),
            )
            yield self._stage_event(EventType.STAGE_ENDED, result.state, span.metadata)

            # STAGE 3: Oracle proposals (terminal on failure)
            self._check_cancelled(cancel_event)
            result.state = PipelineState.GENERATING
            yield self._stage_event(EventType.STAGE_STARTED, result.state)
            with trace.span(result.state.value) as span:
                output: GenerationOutput = await self._await_or_cancel(
                    self._generator.generate(
                        record,
                        allowed_facts,
                        visual_lines,
                        web_lines,
                        profile,
                        timeout_s=self._generation_budget(trace),
                    ),
                    cancel_event,
                )
                span.metadata.update(
                    proposals=len(output.proposals),
                    filtered=len(output.filtered),
                    missing_fields=output.missing_fields,
                )
            oracle_score = output.score
            created = len(output.proposals) + len(output.filtered)
            for field in output.filtered:
                rejection = Rejection(
                    field=field, reason=RejectReason.NOT_CONCRETE, stage=result.state.value
                )
                result.rejected.append(rejection)
                yield self._rejection_event(rejection)
            for proposal in output.proposals:
                yield PipelineEvent(
                    type=EventType.PROPOSAL_EMITTED,
                    stage=result.state.value,
                    payload={"proposal": proposal.to_dict()},
                )
            yield self._stage_event(EventType.STAGE_ENDED, result.state, span.metadata)

            # STAGE 4: Deterministic screen
            self._check_cancelled(cancel_event)
            result.state = PipelineState.SCREENING
            yield self._stage_event(EventType.STAGE_STARTED, result.state)
            survivors = []
            screened: list[Rejection] = []
            with trace.span(result.state.value) as span:
                for proposal in output.proposals:
                    reason = self._screen.check(proposal, profile)
                    if reason is None:
                        survivors.append(proposal)
                        continue
                    proposal.transition(ProposalStatus.REJECTED, actor="screen")
                    screened.append(
                        Rejection(
                            field=proposal.field,
                            reason=reason,
                            stage=result.state.value,
                            proposal=proposal if proposal.has_valid_after() else None,
                        )
                    )
                span.metadata.update(passed=len(survivors), rejected=len(screened))
            for rejection in screened:
                log.debug("proposal_screened_out", field=rejection.field, reason=rejection.reason)
                result.rejected.append(rejection)
                yield self._rejection_event(rejection)
            yield self._stage_event(EventType.STAGE_ENDED, result.state, span.metadata)

            # STAGE 5: Risk gate
            self._check_cancelled(cancel_event)
            result.state = PipelineState.RISK_ASSESSING
            yield self._stage_event(EventType.STAGE_STARTED, result.state)
            decided = []
            with trace.span(result.state.value) as span:
                for proposal in survivors:
                    assessment = self._risk.assess_change(
                        proposal.field,
                        proposal.before,
                        proposal.after,
                        proposal.source_type,
                        proposal.confidence,
                    )
                    proposal.risk = assessment
                    proposal.risk_level = assessment.level
                    proposal.diff = self._diff.compute_diff(
                        proposal.field, proposal.before, proposal.after
                    )
                    if self._risk.should_require_human_review(assessment):
                        # Stays "proposed" until a reviewer decides
                        result.human_review.append(proposal)
                        decided.append((EventType.HUMAN_REVIEW_REQUIRED, proposal))
                        continue
                    proposal.transition(ProposalStatus.ACCEPTED, actor="risk-gate")
                    if apply_accepted:
                        record.apply(proposal)
                    result.accepted.append(proposal)
                    decided.append((EventType.PROPOSAL_ACCEPTED, proposal))
                span.metadata.update(
                    accepted=len(result.accepted),
                    human_review=len(result.human_review),
                    applied=apply_accepted,
                )
            for event_type, proposal in decided:
                yield PipelineEvent(
                    type=event_type,
                    stage=result.state.value,
                    payload={"proposal": proposal.to_dict()},
                )
            yield self._stage_event(EventType.STAGE_ENDED, result.state, span.metadata)

            # STAGE 6: Summary
            result.state = PipelineState.FINALIZED
            with trace.span(result.state.value):
                result.status = RunStatus.COMPLETED

        except GenerationError as e:
            log.error("pipeline_failed", stage=result.state.value, error=str(e))
            result.error = PipelineError(stage=result.state.value, message=str(e))
            result.status = RunStatus.FAILED
            result.state = PipelineState.FAILED
        except PipelineCancelled as e:
            log.info("pipeline_cancelled", stage=result.state.value)
            result.error = PipelineError(stage=result.state.value, message=str(e))
            result.status = RunStatus.CANCELLED
            result.state = PipelineState.CANCELLED

        self._finalize(result, trace, registry, created, oracle_score)
        await self._save(result)

        terminal = {
            RunStatus.COMPLETED: EventType.COMPLETED,
            RunStatus.CANCELLED: EventType.CANCELLED,
        }.get(result.status, EventType.ERROR)
        yield PipelineEvent(
            type=terminal,
            stage=result.error.stage if result.error else None,
            payload={"status": result.status.value, "summary": result.summary},
            result=result,
        )

    # --- Evidence ---

    async def _gather_evidence(
        self,
        record: Record,
        registry: EvidenceRegistry,
        profile: ScopeProfile,
        cancel_event: asyncio.Event | None,
    ) -> tuple[list[str], list[str], list[tuple[str, str]]]:
        """Run visual and web collection concurrently; failures degrade to no evidence."""
        jobs: dict[str, Awaitable[Any]] = {}
        image_url = ""

        if profile.use_visual and self._visual is not None and self._settings.enable_vision:
            image_url = extract_image_url(record.current)
            if image_url:
                jobs["visual"] = self._visual.collect(image_url, DEFAULT_VISUAL_ATTRIBUTES)
            else:
                logger.info(
                    "evidence_source_skipped",
                    record_id=record.record_id,
                    source="visual",
                    reason="no_image_url",
                )

        if profile.use_web and self._web is not None and self._settings.enable_web_search:
            if self._settings.search_api_key:
                jobs["web"] = self._web.collect(record.current, self._fields_needed(record, profile))
            else:
                logger.info(
                    "evidence_source_skipped",
                    record_id=record.record_id,
                    source="web",
                    reason="no_search_api_key",
                )

        if not jobs:
            return [], [], []

        timeout = self._settings.evidence_timeout_s
        outcomes = await self._await_or_cancel(
            asyncio.gather(
                *(asyncio.wait_for(job, timeout=timeout) for job in jobs.values()),
                return_exceptions=True,
            ),
            cancel_event,
        )

        visual_lines: list[str] = []
        web_lines: list[str] = []
        degraded: list[tuple[str, str]] = []
        for source, outcome in zip(jobs, outcomes):
            if isinstance(outcome, BaseException):
                if isinstance(outcome, asyncio.TimeoutError):
                    degraded.append((source, f"timed out after {timeout}s"))
                else:
                    degraded.append((source, f"{type(outcome).__name__}: {outcome}"))
                continue
            if source == "visual":
                visual_lines = self._register_visual(record, registry, image_url, outcome)
            else:
                web_lines = self._register_web(record, registry, outcome)
        return visual_lines, web_lines, degraded

    @staticmethod
    def _register_visual(
        record: Record, registry: EvidenceRegistry, image_url: str, observations
    ) -> list[str]:
        lines = []
        for obs in observations:
            field = canonicalize(obs.attribute)
            registry.register_from_visual(
                record.record_id, field, obs.value_text, image_url, obs.reasoning, obs.confidence
            )
            lines.append(
                f"{field}: {obs.value_text} (confidence {obs.confidence:.2f}; {obs.reasoning})"
            )
        return lines

    @staticmethod
    def _register_web(record: Record, registry: EvidenceRegistry, facts) -> list[str]:
        lines = []
        for fact in facts:
            field = canonicalize(fact.field)
            ev = registry.register_from_external_page(
                record.record_id,
                field,
                fact.value,
                fact.source_url,
                fact.evidence_snippet,
                fact.confidence,
            )
            # Independent confirmation: a verified visual fact with the same value
            confirmed = any(
                other.origin == EvidenceOrigin.VISUAL
                and other.verified
                and other.value.strip().lower() == fact.value.strip().lower()
                for other in registry.for_field(field)
            )
            if confirmed:
                registry.verify(ev.evidence_id, VISUAL_MATCH_ACTOR)
            snippet = fact.evidence_snippet[:200]
            lines.append(f'{field}: {fact.value} (source {fact.source_url}; "{snippet}")')
        return lines

    @staticmethod
    def _fields_needed(record: Record, profile: ScopeProfile) -> list[str]:
        if profile.fields:
            targets = profile.fields
        else:
            targets = tuple(dict.fromkeys(f for p in SCOPE_PROFILES.values() for f in p.fields))
        return [
            f
            for f in targets
            if f != "id" and not is_url_field(f) and not extract_field(record.current, f)
        ]

    # --- Helpers ---

    def _generation_budget(self, trace: TraceContext) -> float:
        remaining = self._settings.run_timeout_s - trace.elapsed_ms / 1000
        return max(1.0, min(self._settings.oracle_timeout_s, remaining))

    @staticmethod
    def _check_cancelled(cancel_event: asyncio.Event | None) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise PipelineCancelled("Run cancelled")

    @staticmethod
    async def _await_or_cancel(aw: Awaitable[Any], cancel_event: asyncio.Event | None) -> Any:
        """Await ``aw`` unless the cancel event fires first; then abandon it."""
        if cancel_event is None:
            return await aw
        work = asyncio.ensure_future(aw)
        waiter = asyncio.ensure_future(cancel_event.wait())
        try:
            await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            work.cancel()
            raise
        finally:
            waiter.cancel()
        if work.done():
            return work.result()
        work.cancel()
        try:
            await work
        except asyncio.CancelledError:
            pass
        raise PipelineCancelled("Run cancelled during an in-flight call")

    @staticmethod
    def _stage_event(
        event_type: EventType, state: PipelineState, output: dict | None = None
    ) -> PipelineEvent:
        return PipelineEvent(type=event_type, stage=state.value, payload=dict(output or {}))

    @staticmethod
    def _rejection_event(rejection: Rejection) -> PipelineEvent:
        return PipelineEvent(
            type=EventType.PROPOSAL_REJECTED,
            stage=rejection.stage,
            payload={"field": rejection.field, "reason": rejection.reason},
        )

    def _finalize(
        self,
        result: PipelineResult,
        trace: TraceContext,
        registry: EvidenceRegistry,
        created: int,
        oracle_score: float | None,
    ) -> None:
        result.stages = trace.to_stage_records()
        result.evidence_trail = registry.to_audit_trail()
        result.completed_at = datetime.now(timezone.utc)

        score_before = self._quality.score_before(result.validation, oracle_score)
        result.summary = PipelineSummary(
            total_stages=len(result.stages),
            proposals_created=created,
            proposals_accepted=len(result.accepted),
            proposals_rejected=len(result.rejected),
            human_review_needed=len(result.human_review),
            score_before=round(score_before, 4),
            score_after=round(self._quality.score_after(score_before, len(result.accepted)), 4),
            duration_ms=round(trace.elapsed_ms, 2),
        )

        for stage in result.stages:
            log_stage_metrics(
                trace.trace_id, result.record_id, stage.stage, stage.duration_ms, stage.error
            )
        log_pipeline_metrics(
            trace.trace_id,
            result.record_id,
            result.status.value,
            created=created,
            accepted=len(result.accepted),
            rejected=len(result.rejected),
            escalated=len(result.human_review),
            score_before=result.summary.score_before,
            score_after=result.summary.score_after,
            duration_ms=result.summary.duration_ms,
        )

    async def _save(self, result: PipelineResult) -> None:
        if self._run_store is None:
            return
        try:
            await self._run_store.save_run(result)
        except Exception as e:
            logger.error("run_save_failed", run_id=result.run_id, error=str(e))


def build_pipeline(settings: Settings, oracle, run_store=None) -> EnrichmentPipeline:
    """Wire the default components around one oracle backend."""
    return EnrichmentPipeline(
        validator=HardRuleValidator(default_gmc_rules(settings)),
        generator=ProposalGenerator(oracle, timeout_s=settings.oracle_timeout_s),
        risk_classifier=RiskClassifier(settings),
        diff_engine=DiffEngine(),
        screen=ProposalScreen(settings),
        quality_scorer=QualityScorer(settings),
        settings=settings,
        visual_collector=VisualEvidenceCollector(oracle, max_tokens=settings.vision_max_tokens),
        web_collector=WebEvidenceCollector(oracle, settings),
        run_store=run_store,
    )
