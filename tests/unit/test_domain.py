"""Tests for records and the proposal lifecycle."""

import pytest

from feedenrich.exceptions import InvalidRecordError, ProposalStateError
from feedenrich.models.domain import Proposal, ProposalStatus, Record


def _proposal(**kwargs):
    defaults = {"record_id": "SKU-1", "field": "title", "before": "basket nike", "after": "Basket Nike Air"}
    defaults.update(kwargs)
    return Proposal(**defaults)


def test_raw_snapshot_is_immutable(record):
    with pytest.raises(TypeError):
        record.raw["title"] = "changed"


def test_apply_changes_current_only(record):
    proposal = _proposal()
    proposal.transition(ProposalStatus.ACCEPTED, actor="risk-gate")
    record.apply(proposal)
    assert record.current["title"] == "Basket Nike Air"
    assert record.raw["title"] == "basket nike"


def test_apply_requires_accepted_or_edited(record):
    with pytest.raises(ProposalStateError):
        record.apply(_proposal())
    rejected = _proposal()
    rejected.transition(ProposalStatus.REJECTED)
    with pytest.raises(ProposalStateError):
        record.apply(rejected)


def test_transition_happens_once():
    proposal = _proposal()
    proposal.transition(ProposalStatus.REJECTED, actor="screen")
    assert proposal.reviewed_by == "screen"
    assert proposal.reviewed_at is not None
    with pytest.raises(ProposalStateError):
        proposal.transition(ProposalStatus.ACCEPTED)


def test_edit_replaces_after(record):
    proposal = _proposal()
    proposal.transition(ProposalStatus.EDITED, actor="reviewer", after="Nike Air Force 1 Blanc")
    record.apply(proposal)
    assert record.current["title"] == "Nike Air Force 1 Blanc"


def test_edit_must_change_the_value():
    with pytest.raises(ProposalStateError):
        _proposal().transition(ProposalStatus.EDITED, after="basket nike")
    with pytest.raises(ProposalStateError):
        _proposal().transition(ProposalStatus.EDITED, after="  ")


def test_has_valid_after():
    assert _proposal().has_valid_after()
    assert not _proposal(after="basket nike").has_valid_after()
    assert not _proposal(after="").has_valid_after()


def test_from_json_normalizes_values():
    record = Record.from_json("r1", '{"title": "Shoe", "price": 59.9, "stock": 3, "color": null}')
    assert record.current == {"title": "Shoe", "price": "59.9", "stock": "3", "color": ""}


@pytest.mark.parametrize("payload", ["{bad", "[1, 2]", "null"])
def test_from_json_rejects_non_objects(payload):
    with pytest.raises(InvalidRecordError):
        Record.from_json("r1", payload)


def test_to_dict_is_json_ready():
    data = _proposal().to_dict()
    assert data["status"] == "proposed"
    assert data["risk_level"] == "low"
    assert isinstance(data["created_at"], str)


def test_apply_writes_to_the_records_own_column():
    record = Record.from_fields("r1", {"id": "r1", "titre": "basket nike"})
    proposal = _proposal(record_key="titre")
    proposal.transition(ProposalStatus.ACCEPTED)
    record.apply(proposal)
    assert record.current == {"id": "r1", "titre": "Basket Nike Air"}
