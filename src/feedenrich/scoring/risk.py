"""Risk classification: the trust gate between a proposal and the catalog.

Checks run in a fixed order and can only raise the level, except the final
step which records affirmative reasons for an untouched low-risk change.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from feedenrich.config.constants import HIGH_RISK_FIELDS, HIGH_RISK_KEYWORDS
from feedenrich.config.settings import Settings
from feedenrich.diffing.tokenizer import jaccard, word_set
from feedenrich.fields.aliases import canonicalize
from feedenrich.models.domain import RiskAssessment, RiskLevel


@dataclass
class ChangeRequest:
    field: str
    before: str | None
    after: str
    source_type: str = "inferred"
    confidence: float = 0.0


def change_ratio(before: str | None, after: str | None) -> float:
    """Word-overlap distance: ``1 - jaccard``. Adding or removing a whole value is 1.0."""
    before = before or ""
    after = after or ""
    if not before and not after:
        return 0.0
    if not before or not after:
        return 1.0
    return 1.0 - jaccard(word_set(before), word_set(after))


class RiskClassifier:
    def __init__(self, settings: Settings | None = None) -> None:
        s = settings or Settings()
        self._medium_confidence = s.risk_medium_confidence
        self._high_confidence = s.risk_high_confidence
        self._medium_ratio = s.risk_medium_change_ratio
        self._high_ratio = s.risk_high_change_ratio
        self._human_confidence = s.human_review_confidence
        self._batch_medium_count = s.batch_medium_count
        self._batch_max_changes = s.batch_max_changes

    def assess_change(
        self,
        field: str,
        before: str | None,
        after: str,
        source_type: str,
        confidence: float,
    ) -> RiskAssessment:
        level = RiskLevel.LOW
        requires_human = False
        reasons: list[str] = []
        before = before or ""
        after = after or ""

        # 1. Sensitive fields
        if canonicalize(field) in HIGH_RISK_FIELDS:
            level = RiskLevel.HIGH
            requires_human = True
            reasons.append(f"high-risk field: {field}")

        # 2. Newly introduced claims only
        lower_before = before.lower()
        lower_after = after.lower()
        for keyword in HIGH_RISK_KEYWORDS:
            if keyword in lower_after and keyword not in lower_before:
                level = RiskLevel.HIGH
                requires_human = True
                reasons.append(f"new high-risk keyword: {keyword}")

        # 3. Source
        if source_type == "web" and level != RiskLevel.HIGH:
            level = RiskLevel.MEDIUM
            reasons.append("sourced from web")
        elif source_type == "image" and level != RiskLevel.HIGH:
            level = RiskLevel.MEDIUM
            reasons.append("inferred from image")

        # 4-5. Confidence
        if confidence < self._medium_confidence and level != RiskLevel.HIGH:
            level = RiskLevel.MEDIUM
            reasons.append(f"low confidence: {confidence * 100:.0f}%")
        if confidence < self._high_confidence:
            level = RiskLevel.HIGH
            requires_human = True
            reasons.append("very low confidence")

        # 6. Magnitude
        ratio = change_ratio(before, after)
        if ratio > self._medium_ratio and level != RiskLevel.HIGH:
            level = RiskLevel.MEDIUM
            reasons.append("significant content change")
        if ratio > self._high_ratio:
            level = RiskLevel.HIGH
            requires_human = True
            reasons.append("near-complete rewrite")

        # 7. Why a low-risk change is trusted
        if level == RiskLevel.LOW and not reasons:
            if source_type == "feed":
                reasons.append("data from original feed")
            if confidence >= 0.9:
                reasons.append("high confidence")
            if ratio < 0.3:
                reasons.append("minor change")

        return RiskAssessment(
            level=level,
            reasons=reasons,
            requires_human=requires_human,
            confidence=confidence,
        )

    def assess_batch(self, changes: Iterable[ChangeRequest]) -> RiskAssessment:
        changes = list(changes)
        reasons: list[str] = []
        requires_human = False
        high_count = 0
        medium_count = 0
        total_confidence = 0.0

        for change in changes:
            individual = self.assess_change(
                change.field, change.before, change.after, change.source_type, change.confidence
            )
            total_confidence += individual.confidence
            if individual.level == RiskLevel.HIGH:
                high_count += 1
                reasons.extend(individual.reasons)
            elif individual.level == RiskLevel.MEDIUM:
                medium_count += 1
            requires_human = requires_human or individual.requires_human

        if high_count:
            level = RiskLevel.HIGH
        elif medium_count >= self._batch_medium_count or len(changes) > self._batch_max_changes:
            level = RiskLevel.MEDIUM
            reasons.append("multiple medium-risk changes")
        elif medium_count:
            level = RiskLevel.MEDIUM
        else:
            level = RiskLevel.LOW

        confidence = total_confidence / len(changes) if changes else 1.0
        return RiskAssessment(
            level=level,
            reasons=reasons,
            requires_human=requires_human,
            confidence=confidence,
        )

    def should_require_human_review(self, assessment: RiskAssessment) -> bool:
        return (
            assessment.requires_human
            or assessment.level == RiskLevel.HIGH
            or assessment.confidence < self._human_confidence
        )
