"""Decision endpoint: suggestions, primary action and auto-send"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from optigence.api.dependencies import get_decision_engine
from optigence.api.models import DecideRequest
from optigence.engine import DecisionEngine, DecisionResult
from optigence.observability.telemetry import counter

router = APIRouter(prefix="/api/suggestions", tags=["suggestions"])


@router.post("/decide", response_model=DecisionResult)
def decide(
    request: DecideRequest,
    engine: DecisionEngine = Depends(get_decision_engine),
) -> DecisionResult:
    """
    Run the full decision pipeline for one request.

    Side Effects:
        - Reads the user's learning records
        - May call the Gemini API
    """
    counter("api.suggestions.decide")
    return engine.decide(request)
