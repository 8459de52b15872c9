"""Oracle backend selection."""

from __future__ import annotations

from feedenrich.config.settings import Settings
from feedenrich.exceptions import ConfigurationError
from feedenrich.generation.gemini_provider import GeminiProvider
from feedenrich.generation.openai_provider import OpenAIProvider
from feedenrich.protocols.llm import ReasoningOracle


def create_oracle(settings: Settings) -> ReasoningOracle:
    if settings.oracle_provider == "openai":
        if not settings.openai_api_key:
            raise ConfigurationError("FEEDENRICH_OPENAI_API_KEY is required for the openai provider")
        return OpenAIProvider(api_key=settings.openai_api_key, model=settings.openai_model)

    if not settings.google_api_key:
        raise ConfigurationError("FEEDENRICH_GOOGLE_API_KEY is required for the gemini provider")
    return GeminiProvider(
        api_key=settings.google_api_key,
        model=settings.gemini_model,
        fetch_timeout_s=settings.fetch_timeout_s,
    )
