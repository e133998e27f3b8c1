"""Health check endpoints for the Optigence API.

- /health - Service health including LLM credential presence
- /health/db - Database connection pool health
"""

from __future__ import annotations

import os
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter

from optigence.config import APP_VERSION
from optigence.llm.gemini import is_configured
from optigence.observability.telemetry import get_latency_stats

router = APIRouter(tags=["health"])

# In-process timers reported by /health (seconds)
LATENCY_METRICS = (
    "intent.classify.latency",
    "suggestions.generate",
    "decision.load_state",
)


@router.get("/health")
async def health_check() -> dict[str, Any]:
    """Health check endpoint.

    Returns service status, version, LLM readiness (checks configuration
    only, never calls the model) and latency stats for this process.
    """
    use_llm = os.getenv("OPTIGENCE_USE_LLM", "false").lower() == "true"
    configured = is_configured()

    return {
        "status": "healthy",
        "service": "Optigence API",
        "version": APP_VERSION,
        "timestamp": datetime.now(UTC).isoformat(),
        "llm": {
            "ready": use_llm and configured,
            "enabled": use_llm,
            "google_cloud_project": configured,
        },
        "latency": {name: get_latency_stats(name) for name in LATENCY_METRICS},
    }


@router.get("/health/db")
async def database_health() -> dict[str, Any]:
    """Connection pool health. Degraded above 80% usage."""
    from optigence.infrastructure.database import get_pool_stats

    stats = get_pool_stats()
    usage_percent = stats["usage_percent"]

    return {
        "status": "degraded" if usage_percent > 80 else "healthy",
        "pool": stats,
        "warning": "Pool usage high" if usage_percent > 80 else None,
    }
