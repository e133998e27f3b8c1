"""
Auto-Send Threshold Controller

Gates fully autonomous sending and tunes its own threshold from outcomes.

Per request:
    effective = optimal_confidence_threshold
              - (contact_trust - 0.5) * 0.1      (only when the contact is known)
              - 0.05 if quick / + 0.05 if deliberate
    effective = clamp(effective, 0.75, 0.95)
    auto_send = confidence >= effective and a draft or reply option exists

After each auto-send outcome (slow integral controller):
    success rate = successful / total  (modified sends count in total only)
    success rate < 0.80 → threshold += 0.02
    success rate > 0.95 → threshold -= 0.01
    clamp to [0.75, 0.95]
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from datetime import datetime

from optigence.learning.models import (
    AutoSendMetrics,
    DecisionMaking,
    OutcomeKind,
    clamp,
    evolve,
    utc_now,
)
from optigence.observability.logging import get_logger
from optigence.observability.telemetry import counter, log_event
from optigence.runtime.thresholds import (
    AUTO_SEND_HIGH_SUCCESS_RATE,
    AUTO_SEND_LOW_SUCCESS_RATE,
    AUTO_SEND_LOWER_STEP,
    AUTO_SEND_MAX_THRESHOLD,
    AUTO_SEND_MIN_THRESHOLD,
    AUTO_SEND_RAISE_STEP,
    DECISIVENESS_ADJUSTMENT,
    DEFAULT_CONFIDENCE_AT_SEND,
    TRUST_ADJUSTMENT_FACTOR,
)
from optigence.storage.repository import RecordRepository

logger = get_logger(__name__)

AUTO_SEND_KIND = "auto_send_metrics"
AUTO_SEND_KEY = "metrics"

# A modified send was edited before it went out: it counts toward the total only
_OUTCOME_COUNTERS: dict[str, str | None] = {
    OutcomeKind.SUCCESS.value: "successful_auto_sends",
    OutcomeKind.MODIFIED.value: None,
    OutcomeKind.CANCELED.value: "canceled_auto_sends",
    OutcomeKind.REGRETTED.value: "regretted_auto_sends",
}


def _outcome_value(outcome) -> str:
    return outcome.value if isinstance(outcome, OutcomeKind) else str(outcome)


def effective_threshold(
    metrics: AutoSendMetrics,
    contact_trust: float | None = None,
    decision_making: str | None = None,
) -> float:
    """Per-request threshold from persisted state, contact trust and decisiveness."""
    effective = metrics.optimal_confidence_threshold

    if contact_trust is not None:
        effective -= (clamp(contact_trust) - 0.5) * TRUST_ADJUSTMENT_FACTOR

    if decision_making == DecisionMaking.QUICK.value:
        effective -= DECISIVENESS_ADJUSTMENT
    elif decision_making == DecisionMaking.DELIBERATE.value:
        effective += DECISIVENESS_ADJUSTMENT

    return clamp(effective, AUTO_SEND_MIN_THRESHOLD, AUTO_SEND_MAX_THRESHOLD)


def should_auto_send(
    intent_confidence: float,
    effective: float,
    draft: str | None = None,
    reply_options: Sequence[str] | None = None,
) -> bool:
    """Gate: confident enough and there is something to send."""
    has_candidate = bool(draft and draft.strip()) or bool(reply_options)
    return has_candidate and intent_confidence >= effective


def apply_outcome(
    metrics: AutoSendMetrics,
    outcome: str,
    confidence_at_send: float | None = None,
    now: datetime | None = None,
) -> AutoSendMetrics:
    """
    Learning update for one auto-send outcome (pure).

    Raises:
        ValueError: Unknown outcome kind
    """
    outcome_value = _outcome_value(outcome)
    if outcome_value not in _OUTCOME_COUNTERS:
        raise ValueError(f"Unknown auto-send outcome: {outcome!r}")

    field_name = _OUTCOME_COUNTERS[outcome_value]

    if confidence_at_send is None or not math.isfinite(confidence_at_send):
        confidence = DEFAULT_CONFIDENCE_AT_SEND
    else:
        confidence = clamp(confidence_at_send)

    total = metrics.total_auto_sends + 1
    counts = {
        "successful_auto_sends": metrics.successful_auto_sends,
        "canceled_auto_sends": metrics.canceled_auto_sends,
        "regretted_auto_sends": metrics.regretted_auto_sends,
    }
    if field_name is not None:
        counts[field_name] += 1

    average = metrics.average_confidence_at_send + (
        confidence - metrics.average_confidence_at_send
    ) / total

    success_rate = counts["successful_auto_sends"] / total
    threshold = metrics.optimal_confidence_threshold
    if success_rate < AUTO_SEND_LOW_SUCCESS_RATE:
        threshold += AUTO_SEND_RAISE_STEP
    elif success_rate > AUTO_SEND_HIGH_SUCCESS_RATE:
        threshold -= AUTO_SEND_LOWER_STEP

    return evolve(
        metrics,
        total_auto_sends=total,
        average_confidence_at_send=average,
        optimal_confidence_threshold=clamp(
            threshold, AUTO_SEND_MIN_THRESHOLD, AUTO_SEND_MAX_THRESHOLD
        ),
        last_threshold_update=now or utc_now(),
        **counts,
    )


class AutoSendController:
    """Loads controller state and applies learning updates under CAS."""

    def __init__(self, repository: RecordRepository[AutoSendMetrics] | None = None):
        self.repository = repository or RecordRepository(AUTO_SEND_KIND, AutoSendMetrics)

    def get_metrics(self, user_id: str) -> AutoSendMetrics:
        """Stored metrics, or the initial state when nothing has been recorded."""
        return self.repository.load(user_id, AUTO_SEND_KEY) or AutoSendMetrics()

    def record_outcome(
        self,
        user_id: str,
        outcome: str,
        confidence_at_send: float | None = None,
    ) -> AutoSendMetrics:
        """
        Apply one auto-send outcome to the user's persisted controller state.

        Side Effects:
            - Upserts learning_records (kind=auto_send_metrics)
            - Emits learning.autosend.updated event
        """
        previous_threshold: list[float] = []

        def apply(current: AutoSendMetrics | None) -> AutoSendMetrics:
            current = current or AutoSendMetrics()
            previous_threshold[:] = [current.optimal_confidence_threshold]
            return apply_outcome(current, outcome, confidence_at_send)

        updated = self.repository.mutate(user_id, AUTO_SEND_KEY, apply)

        counter(f"learning.autosend.{_outcome_value(outcome)}")
        log_event(
            "learning.autosend.updated",
            outcome=_outcome_value(outcome),
            total=updated.total_auto_sends,
            success_rate=round(updated.success_rate, 4),
            threshold_before=round(previous_threshold[0], 4) if previous_threshold else None,
            threshold_after=round(updated.optimal_confidence_threshold, 4),
        )
        return updated
