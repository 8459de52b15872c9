"""Enrichment, validation and diff endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse

from feedenrich.api.dependencies import (
    get_diff_engine,
    get_pipeline,
    get_run_store,
    get_validator,
)
from feedenrich.diffing.diff_engine import DiffEngine
from feedenrich.exceptions import FeedEnrichError
from feedenrich.models.domain import Record, StoredRun, to_jsonable
from feedenrich.models.schemas import DiffRequest, EnrichRequest, ValidateRequest
from feedenrich.pipeline.enrichment_pipeline import EnrichmentPipeline
from feedenrich.storage.sqlite_run_store import SQLiteRunStore
from feedenrich.validation.hard_rules import HardRuleValidator

router = APIRouter()


def _run_summary(run: StoredRun) -> dict:
    data = to_jsonable(run)
    data.pop("result")
    return data


@router.post("/enrich")
async def enrich(
    request: EnrichRequest,
    pipeline: EnrichmentPipeline = Depends(get_pipeline),
) -> dict:
    record = Record.from_fields(request.record_id, request.fields)
    try:
        result = await pipeline.run(record, request.scope, auto_apply=request.auto_apply)
    except FeedEnrichError as e:
        raise HTTPException(status_code=500, detail=str(e))
    data = result.to_dict()
    data["record"] = {"raw": dict(record.raw), "current": record.current}
    return data


@router.post("/enrich/stream")
async def enrich_stream(
    request: EnrichRequest,
    pipeline: EnrichmentPipeline = Depends(get_pipeline),
):
    """Stream pipeline events via Server-Sent Events."""
    record = Record.from_fields(request.record_id, request.fields)

    async def event_generator():
        try:
            async for event in pipeline.stream(record, request.scope, auto_apply=request.auto_apply):
                sse = event.to_sse()
                yield f"event: {sse['event']}\ndata: {sse['data']}\n\n"
        except FeedEnrichError as e:
            yield f"event: error\ndata: {e}\n\n"

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@router.post("/validate")
async def validate(
    request: ValidateRequest,
    validator: HardRuleValidator = Depends(get_validator),
) -> dict:
    return validator.validate(request.fields).to_dict()


@router.post("/diff")
async def diff(
    request: DiffRequest,
    diff_engine: DiffEngine = Depends(get_diff_engine),
) -> dict:
    return to_jsonable(diff_engine.compute_diff(request.field, request.before, request.after))


@router.get("/runs")
async def list_runs(
    limit: int = Query(default=50, ge=1, le=500),
    run_store: SQLiteRunStore = Depends(get_run_store),
) -> list[dict]:
    return [_run_summary(run) for run in await run_store.get_recent_runs(limit)]


@router.get("/records/{record_id}/runs")
async def list_record_runs(
    record_id: str,
    run_store: SQLiteRunStore = Depends(get_run_store),
) -> list[dict]:
    return [_run_summary(run) for run in await run_store.get_runs_for_record(record_id)]


@router.get("/runs/{run_id}")
async def get_run(
    run_id: str,
    run_store: SQLiteRunStore = Depends(get_run_store),
) -> dict:
    stored = await run_store.get_run(run_id)
    if stored is None:
        raise HTTPException(status_code=404, detail=f"Unknown run: {run_id}")
    return stored.result
