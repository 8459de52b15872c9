"""Metric recording helpers for pipeline runs."""

from __future__ import annotations

from feedenrich.observability.logger import get_logger

logger = get_logger("metrics")


def log_stage_metrics(
    trace_id: str,
    record_id: str,
    stage: str,
    duration_ms: float,
    error: str | None = None,
) -> None:
    logger.info(
        "stage_metrics",
        trace_id=trace_id,
        record_id=record_id,
        stage=stage,
        duration_ms=round(duration_ms, 2),
        error=error,
    )


def log_evidence_metrics(
    trace_id: str,
    feed_facts: int,
    visual_facts: int,
    web_facts: int,
    allowed_facts: int,
) -> None:
    logger.info(
        "evidence_metrics",
        trace_id=trace_id,
        feed_facts=feed_facts,
        visual_facts=visual_facts,
        web_facts=web_facts,
        allowed_facts=allowed_facts,
    )


def log_pipeline_metrics(
    trace_id: str,
    record_id: str,
    status: str,
    created: int,
    accepted: int,
    rejected: int,
    escalated: int,
    score_before: float,
    score_after: float,
    duration_ms: float,
) -> None:
    logger.info(
        "pipeline_metrics",
        trace_id=trace_id,
        record_id=record_id,
        status=status,
        created=created,
        accepted=accepted,
        rejected=rejected,
        escalated=escalated,
        score_before=round(score_before, 4),
        score_after=round(score_after, 4),
        duration_ms=round(duration_ms, 2),
    )
