"""Central configuration via Pydantic Settings. All values driven by env vars."""

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # API Keys
    google_api_key: str = ""
    openai_api_key: str = ""
    search_api_key: str = ""  # Brave Search subscription token

    # Oracle
    oracle_provider: Literal["gemini", "openai"] = "gemini"
    gemini_model: str = "gemini-2.0-flash"
    openai_model: str = "gpt-4o-mini"
    vision_max_tokens: int = 300

    # Timeouts (seconds)
    oracle_timeout_s: float = 60.0
    evidence_timeout_s: float = 20.0
    fetch_timeout_s: float = 10.0
    run_timeout_s: float = 120.0

    # Evidence gathering
    enable_vision: bool = True
    enable_web_search: bool = True
    search_endpoint: str = "https://api.search.brave.com/res/v1/web/search"
    search_result_count: int = 3
    page_max_bytes: int = 100 * 1024
    page_max_chars: int = 15000
    visual_verify_threshold: float = 0.85

    # Screening
    screen_min_confidence: float = 0.3

    # Risk classification
    risk_medium_confidence: float = 0.7
    risk_high_confidence: float = 0.5
    risk_medium_change_ratio: float = 0.7
    risk_high_change_ratio: float = 0.9
    human_review_confidence: float = 0.6
    batch_medium_count: int = 3
    batch_max_changes: int = 5

    # Hard rules (Google Merchant Center)
    title_min_length: int = 30
    title_max_length: int = 150
    description_min_length: int = 50
    description_max_length: int = 5000

    # Pipeline
    auto_apply: bool = True
    score_gain_per_proposal: float = 0.05

    # Storage
    sqlite_run_db_path: str = "data/runs.db"

    # Server
    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "INFO"
    json_logs: bool = False

    model_config = {"env_file": ".env", "env_prefix": "FEEDENRICH_"}
