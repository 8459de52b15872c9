"""Health check endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from feedenrich.api.dependencies import get_settings
from feedenrich.config.settings import Settings
from feedenrich.models.schemas import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health(settings: Settings = Depends(get_settings)) -> HealthResponse:
    return HealthResponse(
        status="ok",
        oracle_provider=settings.oracle_provider,
        vision_enabled=settings.enable_vision,
        web_search_enabled=settings.enable_web_search and bool(settings.search_api_key),
    )
