"""Deterministic proposal screen. No model calls.

Placeholder detection is applied to raw oracle output at generation; the
screening checks below are applied to every parsed proposal.
"""

from __future__ import annotations

from urllib.parse import urlparse

from feedenrich.config.constants import PLACEHOLDER_PATTERNS, PRICE_FIELDS, URL_FIELD_MARKERS
from feedenrich.config.settings import Settings
from feedenrich.fields.aliases import canonicalize
from feedenrich.models.domain import Proposal
from feedenrich.pipeline.scopes import ScopeProfile


class RejectReason:
    UNCHANGED = "unchanged"
    EMPTY_AFTER = "empty_after"
    LOW_CONFIDENCE = "low_confidence"
    INVALID_URL = "invalid_url"
    PRICE_WITHOUT_DIGIT = "price_without_digit"
    OUT_OF_SCOPE = "out_of_scope"
    NOT_CONCRETE = "not_concrete"


def is_url_field(field: str) -> bool:
    name = canonicalize(field)
    return any(marker in name for marker in URL_FIELD_MARKERS)


def is_price_field(field: str) -> bool:
    return canonicalize(field) in PRICE_FIELDS


def is_well_formed_url(value: str) -> bool:
    if not value or any(ch.isspace() for ch in value):
        return False
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def has_digit(value: str) -> bool:
    return any(ch.isdigit() for ch in value)


def is_placeholder(text: str) -> bool:
    """True when ``text`` describes a value instead of being one.

    "valid URL without watermarks" for an image field, or "correct price from
    landing page" for a price, are instructions the oracle leaked into the
    value slot.
    """
    lower = text.lower()
    return any(pattern in lower for pattern in PLACEHOLDER_PATTERNS)


class ProposalScreen:
    def __init__(self, settings: Settings | None = None) -> None:
        s = settings or Settings()
        self._min_confidence = s.screen_min_confidence

    def check(self, proposal: Proposal, profile: ScopeProfile | None = None) -> str | None:
        """Return the rejection reason, or None when the proposal survives."""
        after = proposal.after or ""
        if not after.strip():
            return RejectReason.EMPTY_AFTER
        if proposal.before is not None and after == proposal.before:
            return RejectReason.UNCHANGED
        if proposal.confidence < self._min_confidence:
            return RejectReason.LOW_CONFIDENCE
        if is_url_field(proposal.field) and not is_well_formed_url(after):
            return RejectReason.INVALID_URL
        if is_price_field(proposal.field) and not has_digit(after):
            return RejectReason.PRICE_WITHOUT_DIGIT
        if profile is not None and not profile.covers(proposal.field):
            return RejectReason.OUT_OF_SCOPE
        return None
