"""
Learning API endpoints.

Outcome ingestion plus read access to the learned state (contacts, auto-send
metrics, personality profile, templates).
"""

from __future__ import annotations

from typing import Any, Literal

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status

from optigence.api.dependencies import (
    get_autosend_controller,
    get_outcome_logger,
    get_personality_store,
    get_template_tracker,
    get_trust_ledger,
)
from optigence.api.models import OutcomeRequest, TrustUpdateRequest
from optigence.errors import InvalidInputError
from optigence.learning.autosend import AutoSendController, effective_threshold
from optigence.learning.models import (
    ContactTrustRecord,
    InteractionOutcome,
    PersonalityProfile,
    TemplatePerformance,
)
from optigence.learning.outcomes import InteractionOutcomeLogger
from optigence.learning.personality import PersonalityStore
from optigence.learning.templates import TemplatePerformanceTracker
from optigence.learning.trust import ContactTrustLedger
from optigence.observability.logging import get_logger
from optigence.observability.telemetry import counter

router = APIRouter(prefix="/api/learning", tags=["learning"])
logger = get_logger(__name__)


# ============================================================================
# Outcomes
# ============================================================================


@router.post("/outcome", status_code=status.HTTP_202_ACCEPTED)
def record_outcome(
    request: OutcomeRequest,
    background_tasks: BackgroundTasks,
    outcome_logger: InteractionOutcomeLogger = Depends(get_outcome_logger),
) -> dict[str, Any]:
    """
    Accept an interaction outcome; learning runs after the response is sent.

    Side Effects:
        - Schedules InteractionOutcomeLogger.record (never raises)
    """
    outcome = InteractionOutcome(
        user_id=request.user_id,
        type=request.type,
        outcome=request.outcome,
        content=request.content,
        timing_ms=request.timing_ms,
        metadata=request.metadata,
    )
    background_tasks.add_task(outcome_logger.record, outcome)
    counter("api.learning.outcome")
    return {"status": "accepted", "recorded_at": outcome.recorded_at.isoformat()}


# ============================================================================
# Contacts
# ============================================================================


@router.post("/contacts/trust", response_model=ContactTrustRecord)
def update_contact_trust(
    request: TrustUpdateRequest,
    ledger: ContactTrustLedger = Depends(get_trust_ledger),
) -> ContactTrustRecord:
    """Recompute trust for one contact from a batch of interactions (400 if empty)."""
    try:
        return ledger.update_trust(request.user_id, request.contact_email, request.interactions)
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


@router.get("/contacts/{user_id}")
def list_contacts(
    user_id: str,
    ledger: ContactTrustLedger = Depends(get_trust_ledger),
) -> dict[str, Any]:
    contacts = ledger.list_contacts(user_id)
    return {"contacts": [c.model_dump(mode="json") for c in contacts], "total": len(contacts)}


# ============================================================================
# Auto-send / profile / templates
# ============================================================================


@router.get("/autosend/{user_id}")
def get_autosend_metrics(
    user_id: str,
    controller: AutoSendController = Depends(get_autosend_controller),
    personality: PersonalityStore = Depends(get_personality_store),
) -> dict[str, Any]:
    """Persisted controller state plus the threshold that applies with no contact."""
    metrics = controller.get_metrics(user_id)
    profile = personality.get_profile(user_id)
    return {
        "metrics": metrics.model_dump(mode="json"),
        "success_rate": metrics.success_rate,
        "effective_threshold": effective_threshold(metrics, None, profile.decision_making),
    }


@router.get("/profile/{user_id}", response_model=PersonalityProfile)
def get_profile(
    user_id: str,
    personality: PersonalityStore = Depends(get_personality_store),
) -> PersonalityProfile:
    return personality.get_profile(user_id)


@router.get("/templates/{user_id}", response_model=list[TemplatePerformance])
def get_templates(
    user_id: str,
    intent: str = Query(default="reply", max_length=32),
    urgency: Literal["low", "medium", "high"] = Query(default="low"),
    tracker: TemplatePerformanceTracker = Depends(get_template_tracker),
) -> list[TemplatePerformance]:
    """Best-performing templates for an intent (at most 5)."""
    return tracker.personalized_templates(user_id, intent, urgency)
