"""Request/response models for the Optigence API"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from optigence.config import API_INTERACTION_BATCH_MAX, API_TEXT_MAX_CHARS
from optigence.engine import DecisionRequest
from optigence.learning.models import Interaction, InteractionType, OutcomeKind
from optigence.learning.threads import ThreadMemoryUpdate


class ClassifyRequest(BaseModel):
    """Intent classification request"""

    text: str = Field(..., min_length=1, max_length=API_TEXT_MAX_CHARS)
    user_id: str = "anonymous"
    email_subject: str | None = Field(default=None, max_length=500)
    email_sender: str | None = Field(default=None, max_length=320)
    email_snippet: str | None = Field(default=None, max_length=2000)
    preferred_tone: str | None = None
    preferred_language: str | None = None
    deadline_seconds: float | None = Field(default=None, gt=0, le=30)


class DecideRequest(DecisionRequest):
    """Full decision request (text length bounded at the API edge)"""

    text: str = Field(..., min_length=1, max_length=API_TEXT_MAX_CHARS)
    long_context: str | None = Field(default=None, max_length=API_TEXT_MAX_CHARS * 5)
    deadline_seconds: float | None = Field(default=None, gt=0, le=30)


class OutcomeRequest(BaseModel):
    """One interaction outcome reported by a client"""

    user_id: str = Field(..., min_length=1)
    type: InteractionType
    outcome: OutcomeKind
    content: str = Field(default="", max_length=API_TEXT_MAX_CHARS)
    timing_ms: int = Field(default=0, ge=0)
    metadata: dict[str, Any] = Field(default_factory=dict)


class TrustUpdateRequest(BaseModel):
    """Batch of interactions with one contact"""

    user_id: str = Field(..., min_length=1)
    contact_email: str = Field(..., min_length=3, max_length=320)
    interactions: list[Interaction] = Field(..., max_length=API_INTERACTION_BATCH_MAX)


class MemoryUpdateRequest(BaseModel):
    """Tagged update; the variant is resolved from update['update_type'] by the route"""

    user_id: str = Field(..., min_length=1)
    update: dict[str, Any]


class ThreadMemoryRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    thread_id: str = Field(..., min_length=1, max_length=200)
    update: ThreadMemoryUpdate
