"""Tests des modèles / Model tests."""

from datetime import datetime, timedelta

import pytest

from coverdesk.models import Claim, ClaimStatus, Contract, ContractType, Item, User
from coverdesk.services.errors import InvalidStatus, LifecycleError, NotFound
from coverdesk.services.lifecycle import ALLOWED_TRANSITIONS, can_transition


def test_reprs():
    assert "Fairphone" in repr(Item(brand="Fairphone", model="5", price=700.0, serial_no="FP5"))
    assert "alice" in repr(User(username="alice", password="x", first_name="Alice", last_name="Martin"))
    assert "Bike" in repr(ContractType(shop_type="Bike", max_sum_insured=10.0))


def test_full_name():
    user = User(username="alice", password="x", first_name="Alice", last_name="Martin")
    assert user.full_name == "Alice Martin"


def test_claim_status_decode():
    assert ClaimStatus.decode("approved") is ClaimStatus.APPROVED
    assert ClaimStatus.decode(" Paid ") is ClaimStatus.PAID
    assert ClaimStatus.decode(ClaimStatus.REJECTED) is ClaimStatus.REJECTED
    # Anciens codes / Legacy codes
    assert ClaimStatus.decode("N") is ClaimStatus.FILED
    assert ClaimStatus.decode("j") is ClaimStatus.REJECTED
    assert ClaimStatus.decode("R") is ClaimStatus.APPROVED
    assert ClaimStatus.decode("F") is ClaimStatus.PAID


@pytest.mark.parametrize("value", ["", "Unknown", "Repair", "P"])
def test_claim_status_decode_rejects_unknown(value):
    with pytest.raises(InvalidStatus):
        ClaimStatus.decode(value)


def test_transition_graph():
    assert can_transition(ClaimStatus.FILED, ClaimStatus.APPROVED)
    assert can_transition(ClaimStatus.FILED, ClaimStatus.REJECTED)
    assert can_transition(ClaimStatus.APPROVED, ClaimStatus.PAID)
    assert can_transition(ClaimStatus.APPROVED, ClaimStatus.REJECTED)
    assert can_transition(ClaimStatus.REJECTED, ClaimStatus.APPROVED)
    assert not can_transition(ClaimStatus.REJECTED, ClaimStatus.PAID)
    assert not can_transition(ClaimStatus.FILED, ClaimStatus.PAID)
    assert not can_transition(ClaimStatus.PAID, ClaimStatus.REJECTED)
    assert set(ALLOWED_TRANSITIONS) == set(ClaimStatus)
    for status in ClaimStatus:
        assert not can_transition(status, ClaimStatus.FILED)


def test_contract_window():
    start = datetime(2024, 3, 1)
    contract = Contract(start_date=start, end_date=start + timedelta(days=20))

    assert contract.duration_days == 20
    assert contract.covers(start)
    assert contract.covers(start + timedelta(days=20))
    assert not contract.covers(start - timedelta(seconds=1))
    assert contract.overlaps(start + timedelta(days=19), start + timedelta(days=30))
    assert not contract.overlaps(start + timedelta(days=20), start + timedelta(days=30))


def test_claim_repr():
    claim = Claim(status=ClaimStatus.FILED, reimbursable=12.5)
    assert "FILED" in repr(claim)


def test_error_codes():
    err = NotFound("Item 3 not found")
    assert isinstance(err, LifecycleError)
    assert err.status_code == 404
    assert err.code == "not_found"
    assert str(err) == "Item 3 not found"
    assert InvalidStatus().detail == "Unknown claim status."
