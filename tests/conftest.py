"""Shared test fixtures."""

from __future__ import annotations

import json
import tempfile
from pathlib import Path

import pytest

from feedenrich.config.settings import Settings
from feedenrich.diffing.diff_engine import DiffEngine
from feedenrich.exceptions import OracleError
from feedenrich.generation.proposal_generator import ProposalGenerator
from feedenrich.models.domain import Record
from feedenrich.pipeline.enrichment_pipeline import EnrichmentPipeline
from feedenrich.scoring.quality import QualityScorer
from feedenrich.scoring.risk import RiskClassifier
from feedenrich.validation.hard_rules import HardRuleValidator
from feedenrich.validation.rules import default_gmc_rules
from feedenrich.verification.screening import ProposalScreen


class FakeOracle:
    """Scripted oracle: returns canned JSON and records every prompt."""

    def __init__(self, response=None, image_response: str = "", error: Exception | None = None):
        self.response = response if response is not None else {"score": 0.5, "proposals": []}
        self.image_response = image_response
        self.error = error
        self.prompts: list[str] = []
        self.image_calls: list[str] = []

    async def generate(self, prompt, system=None, temperature=0.3, max_tokens=4096):
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        return json.dumps(self.response)

    async def generate_json(self, prompt, system=None):
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        if isinstance(self.response, str):
            raise OracleError("non-JSON output")
        return self.response

    async def describe_image(self, image_url, prompt, max_tokens=300):
        self.image_calls.append(image_url)
        return self.image_response


@pytest.fixture
def fake_oracle():
    """The FakeOracle class, so tests can script their own responses."""
    return FakeOracle


@pytest.fixture
def settings():
    """Test settings with temp paths and no external keys."""
    tmp = tempfile.mkdtemp()
    return Settings(
        google_api_key="test-key",
        openai_api_key="test-key",
        search_api_key="",
        sqlite_run_db_path=str(Path(tmp) / "test_runs.db"),
        _env_file=None,
    )


@pytest.fixture
def complete_fields():
    """A record that passes every default rule except the title length."""
    return {
        "id": "SKU-1",
        "title": "basket nike",
        "brand": "Nike",
        "description": "Chaussure de sport en toile avec semelle en caoutchouc, ideale pour la ville.",
        "link": "https://shop.example.com/p/sku-1",
        "image_link": "https://cdn.example.com/sku-1.jpg",
        "price": "59.99 EUR",
    }


@pytest.fixture
def record(complete_fields):
    return Record.from_fields("SKU-1", complete_fields)


@pytest.fixture
def make_pipeline(settings):
    """Build a pipeline around a fake oracle and optional fake collectors."""

    def _make(oracle, visual=None, web=None, run_store=None, **overrides):
        s = settings.model_copy(update=overrides) if overrides else settings
        return EnrichmentPipeline(
            validator=HardRuleValidator(default_gmc_rules(s)),
            generator=ProposalGenerator(oracle, timeout_s=s.oracle_timeout_s),
            risk_classifier=RiskClassifier(s),
            diff_engine=DiffEngine(),
            screen=ProposalScreen(s),
            quality_scorer=QualityScorer(s),
            settings=s,
            visual_collector=visual,
            web_collector=web,
            run_store=run_store,
        )

    return _make

