"""Readiness score estimate: score_after = min(1, score_before + gain * accepted)."""

from __future__ import annotations

from feedenrich.config.settings import Settings
from feedenrich.models.domain import ValidationResult


class QualityScorer:
    def __init__(self, settings: Settings) -> None:
        self.gain = settings.score_gain_per_proposal

    def score_before(
        self, validation: ValidationResult | None, oracle_score: float | None = None
    ) -> float:
        # The oracle's own readiness score wins when it gave one
        if oracle_score is not None:
            return max(0.0, min(1.0, oracle_score))
        if validation is None or validation.rules_checked == 0:
            return 0.0
        penalty = len(validation.violations) + 0.5 * len(validation.warnings)
        return max(0.0, 1.0 - penalty / validation.rules_checked)

    def score_after(self, score_before: float, accepted: int) -> float:
        return min(1.0, score_before + self.gain * accepted)
