"""FastAPI dependency injection helpers."""

from __future__ import annotations

from fastapi import Request

from feedenrich.config.settings import Settings
from feedenrich.diffing.diff_engine import DiffEngine
from feedenrich.pipeline.enrichment_pipeline import EnrichmentPipeline
from feedenrich.storage.sqlite_run_store import SQLiteRunStore
from feedenrich.validation.hard_rules import HardRuleValidator


def get_pipeline(request: Request) -> EnrichmentPipeline:
    return request.app.state.pipeline


def get_validator(request: Request) -> HardRuleValidator:
    return request.app.state.validator


def get_diff_engine(request: Request) -> DiffEngine:
    return request.app.state.diff_engine


def get_run_store(request: Request) -> SQLiteRunStore:
    return request.app.state.run_store


def get_settings(request: Request) -> Settings:
    return request.app.state.settings
