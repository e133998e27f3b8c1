"""
Contact Trust Ledger

Derives a per-contact trust score from a batch of interactions and keeps it
in learning_records (kind="contact_trust", key=contact email).

    positive_ratio   = count(sentiment == positive) / N
    response_factor  = min(avg_response_seconds, 86400) / 86400
    frequency_factor = N / 100            (weighted before clamping)
    trust_score      = clamp(0.4*positive_ratio + 0.3*response_factor + 0.3*frequency_factor)
    response_rate    = count(received > 0) / N

Relationship (first match wins): colleague, friend, client, unknown.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from optigence.errors import InvalidInputError
from optigence.learning.models import (
    ContactTrustRecord,
    Interaction,
    RelationshipType,
    Sentiment,
    clamp,
    evolve,
    utc_now,
)
from optigence.observability.logging import get_logger
from optigence.observability.telemetry import counter, log_event
from optigence.runtime.thresholds import (
    TRUST_FREQUENCY_DIVISOR,
    TRUST_FREQUENCY_WEIGHT,
    TRUST_POSITIVE_WEIGHT,
    TRUST_RESPONSE_CAP_SECONDS,
    TRUST_RESPONSE_WEIGHT,
)
from optigence.storage.repository import RecordRepository

logger = get_logger(__name__)

CONTACT_TRUST_KIND = "contact_trust"


def normalize_contact(contact_email: str) -> str:
    return contact_email.strip().lower()


def infer_relationship(
    interactions: Sequence[Interaction],
    trust_score: float,
    avg_response_seconds: float,
) -> RelationshipType:
    if len(interactions) > 50 and trust_score > 0.8:
        return RelationshipType.COLLEAGUE
    if avg_response_seconds < 3600 and trust_score > 0.7:
        return RelationshipType.FRIEND
    if any(item.sent > 2 * item.received for item in interactions):
        return RelationshipType.CLIENT
    return RelationshipType.UNKNOWN


def compute_trust(
    contact_email: str,
    interactions: Sequence[Interaction],
    previous: ContactTrustRecord | None = None,
    now: datetime | None = None,
) -> ContactTrustRecord:
    """
    Score one interaction batch.

    Auto-send history (auto_send_success / auto_send_count) is carried over
    from the previous record; everything else is derived from the batch.

    Raises:
        InvalidInputError: Empty batch
    """
    total = len(interactions)
    if total == 0:
        raise InvalidInputError("Interaction batch must not be empty")

    positive_ratio = sum(1 for item in interactions if item.sentiment == Sentiment.POSITIVE) / total
    avg_response = sum(item.response_time_seconds for item in interactions) / total
    response_factor = min(avg_response, TRUST_RESPONSE_CAP_SECONDS) / TRUST_RESPONSE_CAP_SECONDS
    frequency_factor = total / TRUST_FREQUENCY_DIVISOR

    trust_score = clamp(
        positive_ratio * TRUST_POSITIVE_WEIGHT
        + response_factor * TRUST_RESPONSE_WEIGHT
        + frequency_factor * TRUST_FREQUENCY_WEIGHT
    )
    response_rate = sum(1 for item in interactions if item.received > 0) / total

    return ContactTrustRecord(
        contact_email=normalize_contact(contact_email),
        trust_score=trust_score,
        communication_frequency=total,
        response_rate=response_rate,
        relationship_type=infer_relationship(interactions, trust_score, avg_response),
        last_interaction=now or utc_now(),
        auto_send_success=previous.auto_send_success if previous else 0.0,
        average_response_seconds=avg_response,
        auto_send_count=previous.auto_send_count if previous else 0,
    )


class ContactTrustLedger:
    """Reads and upserts ContactTrustRecord documents for a user."""

    def __init__(self, repository: RecordRepository[ContactTrustRecord] | None = None):
        self.repository = repository or RecordRepository(CONTACT_TRUST_KIND, ContactTrustRecord)

    def update_trust(
        self,
        user_id: str,
        contact_email: str,
        interactions: Sequence[Interaction],
    ) -> ContactTrustRecord:
        """
        Recompute and store trust for a contact from an interaction batch.

        Raises:
            InvalidInputError: Empty batch or blank contact (nothing is written)
            VersionConflictError: Concurrent writers kept winning

        Side Effects:
            - Upserts learning_records (kind=contact_trust)
        """
        if not contact_email or not contact_email.strip():
            raise InvalidInputError("contact_email is required")
        if not interactions:
            raise InvalidInputError("Interaction batch must not be empty")

        key = normalize_contact(contact_email)
        record = self.repository.mutate(
            user_id, key, lambda previous: compute_trust(key, interactions, previous)
        )

        counter("learning.trust.updated")
        log_event(
            "learning.trust.updated",
            interactions=len(interactions),
            trust_score=round(record.trust_score, 4),
            relationship=record.relationship_type,
        )
        return record

    def record_auto_send_result(
        self,
        user_id: str,
        contact_email: str,
        succeeded: bool,
    ) -> ContactTrustRecord | None:
        """
        Fold one auto-send result into the contact's running success mean.

        Only contacts that already have a record are touched; returns None otherwise.
        """
        key = normalize_contact(contact_email)
        if self.repository.get(user_id, key) is None:
            return None

        def apply(previous: ContactTrustRecord | None) -> ContactTrustRecord:
            previous = previous or ContactTrustRecord(contact_email=key)
            count = previous.auto_send_count + 1
            sample = 1.0 if succeeded else 0.0
            mean = previous.auto_send_success + (sample - previous.auto_send_success) / count
            return evolve(previous, auto_send_success=mean, auto_send_count=count)

        return self.repository.mutate(user_id, key, apply)

    def get_trust(self, user_id: str, contact_email: str) -> ContactTrustRecord | None:
        return self.repository.load(user_id, normalize_contact(contact_email))

    def list_contacts(self, user_id: str) -> list[ContactTrustRecord]:
        return self.repository.list_for_user(user_id)
