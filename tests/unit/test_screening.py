"""Tests for the deterministic proposal screen and placeholder detection."""

import pytest

from feedenrich.models.domain import Proposal
from feedenrich.pipeline.scopes import OptimizationScope, get_profile
from feedenrich.verification.screening import (
    ProposalScreen,
    RejectReason,
    is_placeholder,
    is_well_formed_url,
)


def _proposal(field="title", before="basket nike", after="Nike Basket Homme Cuir Blanc", confidence=0.9):
    return Proposal(record_id="r1", field=field, before=before, after=after, confidence=confidence)


@pytest.fixture
def screen(settings):
    return ProposalScreen(settings)


def test_good_proposal_passes(screen):
    assert screen.check(_proposal()) is None


@pytest.mark.parametrize(
    "proposal, reason",
    [
        (_proposal(after="   "), RejectReason.EMPTY_AFTER),
        (_proposal(after="basket nike"), RejectReason.UNCHANGED),
        (_proposal(confidence=0.29), RejectReason.LOW_CONFIDENCE),
        (_proposal(field="image_link", before="", after="cdn.example.com/a.jpg"), RejectReason.INVALID_URL),
        (_proposal(field="link", before="", after="https://shop.example.com/a b"), RejectReason.INVALID_URL),
        (_proposal(field="price", before="", after="EUR"), RejectReason.PRICE_WITHOUT_DIGIT),
    ],
)
def test_rejection_reasons(screen, proposal, reason):
    assert screen.check(proposal) == reason


def test_empty_after_is_checked_before_unchanged(screen):
    assert screen.check(_proposal(before="", after="")) == RejectReason.EMPTY_AFTER


def test_missing_before_is_never_unchanged(screen):
    assert screen.check(_proposal(before=None, after="Nike")) is None


def test_confidence_at_threshold_passes(screen):
    assert screen.check(_proposal(confidence=0.3)) is None


def test_scope_membership(screen):
    pricing = get_profile(OptimizationScope.PRICING)
    assert screen.check(_proposal(), pricing) == RejectReason.OUT_OF_SCOPE
    assert screen.check(_proposal(field="prix", before="", after="49.99 EUR"), pricing) is None
    assert screen.check(_proposal(), get_profile(OptimizationScope.ALL)) is None


@pytest.mark.parametrize(
    "text, placeholder",
    [
        ("valid URL without watermarks", True),
        ("Correct price from landing page", True),
        ("Title should be longer", True),
        ("https://cdn.example.com/a.jpg", False),
        ("49.99 EUR", False),
        ("Bleu marine", False),
    ],
)
def test_placeholder_detection(text, placeholder):
    assert is_placeholder(text) is placeholder


def test_well_formed_url():
    assert is_well_formed_url("https://shop.example.com/p?id=1")
    assert not is_well_formed_url("ftp://shop.example.com/p")
    assert not is_well_formed_url("https://")
    assert not is_well_formed_url("")
