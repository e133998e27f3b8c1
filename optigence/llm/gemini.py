"""
Gemini model manager - shared model handle.

Uses the Vertex AI SDK (google-cloud-aiplatform) with GOOGLE_CLOUD_PROJECT and
application-default credentials. When the project is not configured the
classifier never reaches this module; its local pattern tier answers instead.
"""

from __future__ import annotations

import os
from functools import lru_cache

from optigence.infrastructure.settings import GEMINI_LOCATION, GEMINI_MODEL
from optigence.observability.logging import get_logger

logger = get_logger(__name__)


class GeminiInitializationError(RuntimeError):
    """Raised when Gemini model cannot be initialized."""


def is_configured() -> bool:
    """True when Vertex AI credentials are present (no API call is made)."""
    return bool(os.getenv("GOOGLE_CLOUD_PROJECT"))


@lru_cache(maxsize=1)
def _init_vertex() -> str:
    # Read env vars fresh (settings may have loaded before dotenv)
    project = os.getenv("GOOGLE_CLOUD_PROJECT")
    location = os.getenv("GEMINI_LOCATION") or GEMINI_LOCATION

    if not project:
        raise GeminiInitializationError("GOOGLE_CLOUD_PROJECT not set")

    try:
        import vertexai
    except ImportError as e:
        raise GeminiInitializationError(
            "Vertex AI SDK not available. Install google-cloud-aiplatform."
        ) from e

    try:
        vertexai.init(project=project, location=location)
    except Exception as e:
        logger.error("Failed to initialize Vertex AI: %s", e)
        raise GeminiInitializationError(f"Failed to initialize Gemini: {e}") from e

    logger.info(
        "Initialized Gemini model (Vertex AI): project=%s, location=%s, model=%s",
        project,
        location,
        GEMINI_MODEL,
    )
    return project


@lru_cache(maxsize=8)
def get_gemini_model(system_instruction: str | None = None):
    """
    Get the shared Gemini model for a given system instruction.

    System instructions are per-model-instance in the Gemini API, so one
    handle is cached per instruction.

    Raises:
        GeminiInitializationError: If model cannot be initialized
    """
    _init_vertex()

    from vertexai.generative_models import GenerativeModel

    if system_instruction is None:
        return GenerativeModel(GEMINI_MODEL)
    return GenerativeModel(GEMINI_MODEL, system_instruction=system_instruction)
