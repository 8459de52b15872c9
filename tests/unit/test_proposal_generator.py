"""Tests for oracle-backed proposal generation."""

import asyncio

import pytest

from feedenrich.exceptions import GenerationError, OracleError
from feedenrich.generation.proposal_generator import ProposalGenerator, infer_source_type
from feedenrich.models.domain import Record, RiskLevel
from feedenrich.pipeline.scopes import OptimizationScope, get_profile


def _response(*proposals, score=0.4):
    return {
        "score": score,
        "missing_fields": ["color"],
        "weak_fields": ["title"],
        "proposals": list(proposals),
    }


TITLE_PROPOSAL = {
    "field": "title",
    "before": "something the oracle made up",
    "after": "Nike Basket Homme Toile Semelle Caoutchouc",
    "rationale": "title too short",
    "source": ["feed:brand", "feed:description"],
    "confidence": 0.92,
    "risk_level": "Low",
}


async def test_parses_proposals(fake_oracle, record):
    oracle = fake_oracle(_response(TITLE_PROPOSAL))
    output = await ProposalGenerator(oracle).generate(record, {"brand": "Nike"})

    assert output.score == 0.4
    assert output.missing_fields == ["color"]
    assert output.weak_fields == ["title"]
    [proposal] = output.proposals
    assert proposal.record_id == "SKU-1"
    assert proposal.after == "Nike Basket Homme Toile Semelle Caoutchouc"
    assert proposal.rationale == ["title too short"]
    assert proposal.source_type == "feed"
    assert proposal.risk_level == RiskLevel.LOW
    assert proposal.confidence == 0.92


async def test_before_comes_from_the_record(fake_oracle, record):
    added = {**TITLE_PROPOSAL, "field": "color", "after": "Blanc", "source": "image:color"}
    output = await ProposalGenerator(fake_oracle(_response(TITLE_PROPOSAL, added))).generate(record, {})
    title, color = output.proposals
    assert title.before == "basket nike"
    assert color.before is None
    assert color.source_type == "image"


async def test_missing_score_is_none(fake_oracle, record):
    output = await ProposalGenerator(fake_oracle({"proposals": []})).generate(record, {})
    assert output.score is None
    assert output.proposals == []


async def test_placeholder_values_are_filtered(fake_oracle, record):
    leaked = [
        {"field": "image_link", "after": "valid URL without watermarks", "confidence": 0.9},
        {"field": "price", "after": "correct price from landing page", "confidence": 0.9},
        {"field": "color", "after": "Blanc", "source": "needs update", "confidence": 0.9},
    ]
    output = await ProposalGenerator(fake_oracle(_response(*leaked))).generate(record, {})
    assert output.proposals == []
    assert output.filtered == ["image_link", "price", "color"]


async def test_oracle_failure_becomes_generation_error(fake_oracle, record):
    generator = ProposalGenerator(fake_oracle(error=OracleError("quota exceeded")))
    with pytest.raises(GenerationError, match="quota exceeded"):
        await generator.generate(record, {})


async def test_non_json_output_is_a_generation_error(fake_oracle, record):
    with pytest.raises(GenerationError):
        await ProposalGenerator(fake_oracle("not json at all")).generate(record, {})


async def test_schema_mismatch_is_a_generation_error(fake_oracle, record):
    oracle = fake_oracle({"proposals": [{"after": "missing field name"}]})
    with pytest.raises(GenerationError, match="schema"):
        await ProposalGenerator(oracle).generate(record, {})


async def test_timeout(record):
    class SlowOracle:
        async def generate_json(self, prompt, system=None):
            await asyncio.sleep(5)
            return {}

    with pytest.raises(GenerationError, match="timed out"):
        await ProposalGenerator(SlowOracle()).generate(record, {}, timeout_s=0.01)


async def test_prompt_carries_facts_evidence_and_scope(fake_oracle, record):
    oracle = fake_oracle()
    await ProposalGenerator(oracle).generate(
        record,
        {"brand": "Nike"},
        visual_lines=["color: blanc (confidence 0.92)"],
        web_lines=["material: toile (https://shop.example.com)"],
        profile=get_profile(OptimizationScope.TITLE),
    )
    [prompt] = oracle.prompts
    assert "- brand: Nike" in prompt
    assert "Image observations:" in prompt
    assert "Web facts (unverified):" in prompt
    assert "Title Optimization" in prompt
    assert "Only propose changes to: title" in prompt


@pytest.mark.parametrize(
    "sources, expected",
    [
        ([], "inferred"),
        (["feed:title"], "feed"),
        (["visual:color", "image:pattern"], "image"),
        (["https://brand.example/p"], "web"),
        (["feed:title", "web:https://x"], "mixed"),
        (["gut feeling"], "inferred"),
    ],
)
def test_infer_source_type(sources, expected):
    assert infer_source_type(sources) == expected


async def test_proposal_targets_the_records_own_column(fake_oracle):
    record = Record.from_fields("r1", {"id": "r1", "titre": "basket nike"})
    output = await ProposalGenerator(fake_oracle(_response(TITLE_PROPOSAL))).generate(record, {})
    [proposal] = output.proposals
    assert proposal.field == "title"
    assert proposal.record_key == "titre"
    assert proposal.before == "basket nike"


async def test_malformed_urls_and_prices_are_left_to_screening(fake_oracle, record):
    candidates = [
        {"field": "price", "after": "EUR", "confidence": 0.9},
        {"field": "image_link", "after": "/images/a.jpg", "confidence": 0.9},
    ]
    output = await ProposalGenerator(fake_oracle(_response(*candidates))).generate(record, {})
    assert [p.field for p in output.proposals] == ["price", "image_link"]
    assert output.filtered == []
