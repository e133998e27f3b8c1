"""Intent classification endpoint"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from optigence.api.dependencies import get_classifier
from optigence.api.models import ClassifyRequest
from optigence.classification.intent_classifier import IntentClassifier
from optigence.classification.models import IntentClassification, IntentContext
from optigence.observability.telemetry import counter

router = APIRouter(prefix="/api/intent", tags=["intent"])


@router.post("/classify", response_model=IntentClassification)
def classify_intent(
    request: ClassifyRequest,
    classifier: IntentClassifier = Depends(get_classifier),
) -> IntentClassification:
    """
    Classify free text into one of the assistant's intents.

    Never fails on provider errors: the classifier falls back to pattern
    matching, then to a default "assistance" intent.
    """
    counter("api.intent.classify")
    context = IntentContext(
        user_id=request.user_id,
        email_subject=request.email_subject,
        email_sender=request.email_sender,
        email_snippet=request.email_snippet,
        preferred_tone=request.preferred_tone,
        preferred_language=request.preferred_language,
    )
    return classifier.classify(request.text, context, timeout=request.deadline_seconds)
