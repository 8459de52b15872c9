"""Tests for the readiness score estimate."""

import pytest

from feedenrich.models.domain import RuleViolation, ValidationResult
from feedenrich.scoring.quality import QualityScorer


def _violation(rule_id: str) -> RuleViolation:
    return RuleViolation(rule_id=rule_id, field="title", message=rule_id)


def test_oracle_score_wins_and_is_clamped(settings):
    scorer = QualityScorer(settings)
    validation = ValidationResult(violations=[_violation("a")], rules_checked=4)
    assert scorer.score_before(validation, oracle_score=0.42) == 0.42
    assert scorer.score_before(validation, oracle_score=1.5) == 1.0


def test_validation_estimate(settings):
    scorer = QualityScorer(settings)
    validation = ValidationResult(
        violations=[_violation("a")], warnings=[_violation("b")], rules_checked=10
    )
    assert scorer.score_before(validation) == pytest.approx(0.85)
    assert scorer.score_before(None) == 0.0
    assert scorer.score_before(ValidationResult()) == 0.0


def test_score_after_is_capped(settings):
    scorer = QualityScorer(settings)
    assert scorer.score_after(0.5, 2) == pytest.approx(0.6)
    assert scorer.score_after(0.98, 3) == 1.0
    assert scorer.score_after(0.7, 0) == 0.7
