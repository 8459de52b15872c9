"""FastAPI application factory with lifespan management."""

from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI

from feedenrich.api.middleware import RequestTimingMiddleware
from feedenrich.api.routes_enrich import router as enrich_router
from feedenrich.api.routes_health import router as health_router
from feedenrich.config.settings import Settings
from feedenrich.diffing.diff_engine import DiffEngine
from feedenrich.generation.providers import create_oracle
from feedenrich.observability.logger import get_logger, setup_logging
from feedenrich.pipeline.enrichment_pipeline import build_pipeline
from feedenrich.storage.sqlite_run_store import SQLiteRunStore
from feedenrich.validation.hard_rules import HardRuleValidator
from feedenrich.validation.rules import default_gmc_rules

logger = get_logger("app")


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    setup_logging(settings.log_level, settings.json_logs)

    Path(settings.sqlite_run_db_path).parent.mkdir(parents=True, exist_ok=True)
    run_store = SQLiteRunStore(settings.sqlite_run_db_path)
    await run_store.initialize()

    oracle = create_oracle(settings)

    app.state.run_store = run_store
    app.state.validator = HardRuleValidator(default_gmc_rules(settings))
    app.state.diff_engine = DiffEngine()
    app.state.pipeline = build_pipeline(settings, oracle, run_store=run_store)

    logger.info(
        "startup_complete",
        oracle_provider=settings.oracle_provider,
        vision=settings.enable_vision,
        web_search=settings.enable_web_search and bool(settings.search_api_key),
    )

    yield

    logger.info("shutdown_complete")


def create_app(settings: Settings | None = None) -> FastAPI:
    app = FastAPI(
        title="FeedEnrich",
        version="1.0.0",
        description="Evidence-gated product catalog enrichment",
        lifespan=lifespan,
    )
    app.state.settings = settings or Settings()
    app.add_middleware(RequestTimingMiddleware)
    app.include_router(health_router, tags=["health"])
    app.include_router(enrich_router, tags=["enrich"])
    return app
