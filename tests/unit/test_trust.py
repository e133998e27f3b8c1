"""
Tests for contact trust scoring and the trust ledger
"""

from __future__ import annotations

import pytest

from optigence.errors import InvalidInputError
from optigence.learning.models import Interaction
from optigence.learning.trust import ContactTrustLedger, compute_trust, infer_relationship


def _batch(total: int, positive: int, response_seconds: float, sent: int = 1, received: int = 1):
    return [
        Interaction(
            sent=sent,
            received=received,
            response_time_seconds=response_seconds,
            sentiment="positive" if i < positive else "neutral",
        )
        for i in range(total)
    ]


def test_trust_worked_example():
    """N=10, 8 positive, 1h average response → 0.32 + 0.0125 + 0.03."""
    record = compute_trust("alice@example.com", _batch(10, 8, 3600))
    assert record.trust_score == pytest.approx(0.3625)
    assert record.communication_frequency == 10
    assert record.response_rate == pytest.approx(1.0)


def test_trust_is_clamped_for_large_batches():
    record = compute_trust("bob@example.com", _batch(500, 500, 200000))
    assert record.trust_score == pytest.approx(1.0)


def test_empty_batch_rejected():
    with pytest.raises(InvalidInputError, match="must not be empty"):
        compute_trust("carol@example.com", [])


def test_relationship_rules_in_order():
    many = _batch(60, 60, 60)
    assert infer_relationship(many, 0.9, 60) == "colleague"
    assert infer_relationship(_batch(5, 5, 60), 0.75, 60) == "friend"
    assert infer_relationship(_batch(3, 0, 9000, sent=5, received=1), 0.3, 9000) == "client"
    assert infer_relationship(_batch(3, 0, 9000), 0.3, 9000) == "unknown"


def test_ledger_upserts_by_normalized_email():
    ledger = ContactTrustLedger()
    ledger.update_trust("u1", "Alice@Example.com ", _batch(10, 8, 3600))
    ledger.update_trust("u1", "alice@example.com", _batch(4, 4, 60))

    contacts = ledger.list_contacts("u1")
    assert len(contacts) == 1
    assert contacts[0].contact_email == "alice@example.com"
    assert contacts[0].communication_frequency == 4


def test_ledger_empty_batch_writes_nothing():
    ledger = ContactTrustLedger()
    with pytest.raises(InvalidInputError):
        ledger.update_trust("u1", "dave@example.com", [])
    assert ledger.get_trust("u1", "dave@example.com") is None


def test_auto_send_result_is_running_mean_and_survives_rescoring():
    ledger = ContactTrustLedger()
    ledger.update_trust("u1", "erin@example.com", _batch(5, 5, 60))

    ledger.record_auto_send_result("u1", "erin@example.com", succeeded=True)
    record = ledger.record_auto_send_result("u1", "erin@example.com", succeeded=False)
    assert record.auto_send_count == 2
    assert record.auto_send_success == pytest.approx(0.5)

    rescored = ledger.update_trust("u1", "erin@example.com", _batch(5, 5, 60))
    assert rescored.auto_send_count == 2
    assert rescored.auto_send_success == pytest.approx(0.5)


def test_auto_send_result_ignores_unknown_contact():
    ledger = ContactTrustLedger()
    assert ledger.record_auto_send_result("u1", "nobody@example.com", succeeded=True) is None
    assert ledger.list_contacts("u1") == []


def test_contacts_are_per_user():
    ledger = ContactTrustLedger()
    ledger.update_trust("u1", "frank@example.com", _batch(2, 1, 60))
    assert ledger.list_contacts("u2") == []
