"""Tests for per-proposal and batch risk classification."""

import pytest

from feedenrich.models.domain import RiskAssessment, RiskLevel
from feedenrich.scoring.risk import ChangeRequest, RiskClassifier, change_ratio


@pytest.fixture
def classifier(settings):
    return RiskClassifier(settings)


def test_new_claim_on_sensitive_field_is_high(classifier):
    risk = classifier.assess_change("material", "", "organic cotton", "web", 0.8)
    assert risk.level == RiskLevel.HIGH
    assert risk.requires_human is True
    assert "high-risk field: material" in risk.reasons
    assert "new high-risk keyword: organic" in risk.reasons


def test_unchanged_feed_value_stays_low(classifier):
    risk = classifier.assess_change("color", "blue", "blue", "feed", 0.95)
    assert risk.level == RiskLevel.LOW
    assert risk.requires_human is False
    assert risk.reasons == ["data from original feed", "high confidence", "minor change"]


def test_keyword_already_present_is_not_flagged(classifier):
    risk = classifier.assess_change(
        "title",
        "Tee-shirt coton organic blanc",
        "Tee-shirt coton organic blanc homme",
        "feed",
        0.95,
    )
    assert risk.level == RiskLevel.LOW
    assert not any("keyword" in r for r in risk.reasons)


def test_web_and_image_sources_are_medium(classifier):
    web = classifier.assess_change("title", "Basket Nike", "Basket Nike Air", "web", 0.9)
    image = classifier.assess_change("color", "blanc", "blanc cassé", "image", 0.9)
    assert web.level == RiskLevel.MEDIUM
    assert "sourced from web" in web.reasons
    assert image.level == RiskLevel.MEDIUM
    assert "inferred from image" in image.reasons
    assert web.requires_human is False


def test_low_confidence_is_medium(classifier):
    risk = classifier.assess_change("title", "Basket Nike", "Basket Nike Air", "feed", 0.65)
    assert risk.level == RiskLevel.MEDIUM
    assert "low confidence: 65%" in risk.reasons


def test_confidence_below_floor_is_always_high(classifier):
    risk = classifier.assess_change("title", "Basket Nike", "Basket Nike Air", "feed", 0.49)
    assert risk.level == RiskLevel.HIGH
    assert risk.requires_human is True
    assert "very low confidence" in risk.reasons


def test_rewrite_magnitude(classifier):
    significant = classifier.assess_change(
        "title", "basket nike blanc homme", "basket adidas noir femme", "feed", 0.95
    )
    rewrite = classifier.assess_change("title", "basket nike", "chaussure running légère", "feed", 0.95)
    assert significant.level == RiskLevel.MEDIUM
    assert "significant content change" in significant.reasons
    assert rewrite.level == RiskLevel.HIGH
    assert "near-complete rewrite" in rewrite.reasons


def test_high_level_always_requires_human():
    risk = RiskAssessment(level=RiskLevel.HIGH, reasons=[], requires_human=False, confidence=0.9)
    assert risk.requires_human is True


def test_change_ratio_edges():
    assert change_ratio("", "") == 0.0
    assert change_ratio(None, "red") == 1.0
    assert change_ratio("red", "") == 1.0
    assert change_ratio("Red shoe", "red SHOE") == 0.0


def test_empty_batch_is_low_with_full_confidence(classifier):
    batch = classifier.assess_batch([])
    assert batch.level == RiskLevel.LOW
    assert batch.confidence == 1.0
    assert batch.requires_human is False


def test_batch_with_one_high_change_is_high(classifier):
    batch = classifier.assess_batch(
        [
            ChangeRequest("color", "blue", "blue", "feed", 0.95),
            ChangeRequest("material", "", "organic cotton", "web", 0.8),
        ]
    )
    assert batch.level == RiskLevel.HIGH
    assert batch.requires_human is True
    assert "high-risk field: material" in batch.reasons
    assert batch.confidence == pytest.approx(0.875)


def test_batch_of_medium_changes_escalates_reason(classifier):
    changes = [
        ChangeRequest(f"field_{i}", "Basket Nike", "Basket Nike Air", "web", 0.9) for i in range(3)
    ]
    batch = classifier.assess_batch(changes)
    assert batch.level == RiskLevel.MEDIUM
    assert batch.reasons == ["multiple medium-risk changes"]


def test_batch_thresholds_are_configurable(settings):
    classifier = RiskClassifier(settings.model_copy(update={"batch_medium_count": 2}))
    changes = [
        ChangeRequest(f"field_{i}", "Basket Nike", "Basket Nike Air", "web", 0.9) for i in range(2)
    ]
    assert classifier.assess_batch(changes).reasons == ["multiple medium-risk changes"]


def test_human_review_gate(classifier):
    assert classifier.should_require_human_review(
        RiskAssessment(level=RiskLevel.LOW, reasons=[], requires_human=False, confidence=0.59)
    )
    assert not classifier.should_require_human_review(
        RiskAssessment(level=RiskLevel.MEDIUM, reasons=[], requires_human=False, confidence=0.6)
    )
    assert classifier.should_require_human_review(
        RiskAssessment(level=RiskLevel.LOW, reasons=[], requires_human=True, confidence=0.9)
    )


@pytest.mark.parametrize("field", ["matiere", "Matière", "tissu", "âge"])
def test_sensitive_field_under_feed_column_name_is_high(classifier, field):
    risk = classifier.assess_change(field, "coton polyester", "coton", "feed", 0.95)
    assert risk.level == RiskLevel.HIGH
    assert risk.requires_human is True
    assert f"high-risk field: {field}" in risk.reasons
