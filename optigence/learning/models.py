"""
Learning-state domain models.

Per-user documents persisted through RecordRepository (contact trust,
personality, auto-send metrics, template performance, thread memory,
preferences) and the write-once InteractionOutcome event.

Probability-like fields are clamped on every validation; use evolve() rather
than model_copy() to change a record so the clamps run.
"""

from __future__ import annotations

import math
import re
from datetime import UTC, datetime
from enum import Enum
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

from optigence.runtime.thresholds import (
    AUTO_SEND_INITIAL_THRESHOLD,
    AUTO_SEND_MAX_THRESHOLD,
    AUTO_SEND_MIN_THRESHOLD,
    DEFAULT_CONFIDENCE_AT_SEND,
)

T = TypeVar("T", bound=BaseModel)


def utc_now() -> datetime:
    """Return current UTC time as a timezone-aware datetime."""
    return datetime.now(UTC)


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    """
    Clamp a number into [low, high].

    Raises:
        ValueError: NaN or infinite input (never stored, never clamped)
    """
    value = float(value)
    if not math.isfinite(value):
        raise ValueError(f"Expected a finite number, got {value!r}")
    return min(max(value, low), high)


def evolve(record: T, **changes: Any) -> T:
    """Copy a record with changes applied, re-running validation."""
    return type(record).model_validate({**record.model_dump(), **changes})


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class RelationshipType(str, Enum):
    COLLEAGUE = "colleague"
    CLIENT = "client"
    FRIEND = "friend"
    MANAGER = "manager"
    VENDOR = "vendor"
    UNKNOWN = "unknown"


class Sentiment(str, Enum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


class WritingStyle(str, Enum):
    FORMAL = "formal"
    CASUAL = "casual"
    CONCISE = "concise"
    DETAILED = "detailed"


class ResponseSpeed(str, Enum):
    IMMEDIATE = "immediate"
    THOUGHTFUL = "thoughtful"
    DELAYED = "delayed"


class CommunicationPreference(str, Enum):
    DIRECT = "direct"
    DIPLOMATIC = "diplomatic"
    BALANCED = "balanced"


class TonePreference(str, Enum):
    PROFESSIONAL = "professional"
    FRIENDLY = "friendly"
    NEUTRAL = "neutral"


class DecisionMaking(str, Enum):
    QUICK = "quick"
    DELIBERATE = "deliberate"
    COLLABORATIVE = "collaborative"


class Tone(str, Enum):
    """Tones a user can ask for in drafts."""

    PROFESSIONAL = "professional"
    CASUAL = "casual"
    FORMAL = "formal"
    FRIENDLY = "friendly"
    CONCISE = "concise"


class OutcomeKind(str, Enum):
    SUCCESS = "success"
    MODIFIED = "modified"
    CANCELED = "canceled"
    REGRETTED = "regretted"


class InteractionType(str, Enum):
    SUGGESTION_CLICK = "suggestion_click"
    AUTO_SEND = "auto_send"
    TEMPLATE_USE = "template_use"
    TONE_ADJUST = "tone_adjust"
    CROSS_MODULE = "cross_module"


# ---------------------------------------------------------------------------
# Contact trust
# ---------------------------------------------------------------------------


class Interaction(BaseModel):
    """One exchange with a contact, as fed to the trust ledger."""

    model_config = ConfigDict(use_enum_values=True)

    sent: int = Field(default=0, ge=0)
    received: int = Field(default=0, ge=0)
    response_time_seconds: float = Field(default=0.0, ge=0.0)
    sentiment: Sentiment = Sentiment.NEUTRAL


class ContactTrustRecord(BaseModel):
    """Derived trust for one (user, contact) pair."""

    model_config = ConfigDict(use_enum_values=True)

    contact_email: str
    trust_score: float = 0.0
    communication_frequency: int = Field(default=0, ge=0)
    response_rate: float = 0.0
    relationship_type: RelationshipType = RelationshipType.UNKNOWN
    last_interaction: datetime = Field(default_factory=utc_now)
    auto_send_success: float = 0.0
    average_response_seconds: float = Field(default=0.0, ge=0.0)
    auto_send_count: int = Field(default=0, ge=0)

    @field_validator("trust_score", "response_rate", "auto_send_success", mode="before")
    @classmethod
    def _clamp_unit(cls, value: float) -> float:
        return clamp(value)


# ---------------------------------------------------------------------------
# Personality
# ---------------------------------------------------------------------------


class PersonalityProfile(BaseModel):
    """Behavioral traits inferred from interactions."""

    model_config = ConfigDict(use_enum_values=True)

    writing_style: WritingStyle = WritingStyle.FORMAL
    response_speed: ResponseSpeed = ResponseSpeed.THOUGHTFUL
    communication_preference: CommunicationPreference = CommunicationPreference.BALANCED
    tone_preference: TonePreference = TonePreference.PROFESSIONAL
    decision_making: DecisionMaking = DecisionMaking.DELIBERATE
    interactions_observed: int = Field(default=0, ge=0)
    updated_at: datetime = Field(default_factory=utc_now)


# ---------------------------------------------------------------------------
# Auto-send controller state
# ---------------------------------------------------------------------------


class AutoSendMetrics(BaseModel):
    """Persisted state of the auto-send threshold controller."""

    total_auto_sends: int = Field(default=0, ge=0)
    successful_auto_sends: int = Field(default=0, ge=0)
    canceled_auto_sends: int = Field(default=0, ge=0)
    regretted_auto_sends: int = Field(default=0, ge=0)
    average_confidence_at_send: float = DEFAULT_CONFIDENCE_AT_SEND
    optimal_confidence_threshold: float = AUTO_SEND_INITIAL_THRESHOLD
    last_threshold_update: datetime = Field(default_factory=utc_now)

    @field_validator("average_confidence_at_send", mode="before")
    @classmethod
    def _clamp_unit(cls, value: float) -> float:
        return clamp(value)

    @field_validator("optimal_confidence_threshold", mode="before")
    @classmethod
    def _clamp_threshold(cls, value: float) -> float:
        return clamp(value, AUTO_SEND_MIN_THRESHOLD, AUTO_SEND_MAX_THRESHOLD)

    @property
    def success_rate(self) -> float:
        if self.total_auto_sends == 0:
            return 0.0
        return self.successful_auto_sends / self.total_auto_sends


# ---------------------------------------------------------------------------
# Outcome events
# ---------------------------------------------------------------------------


class InteractionOutcome(BaseModel):
    """Write-once record of what happened to a suggestion or auto-send."""

    model_config = ConfigDict(use_enum_values=True)

    user_id: str = Field(..., min_length=1)
    type: InteractionType
    content: str = ""
    timing_ms: int = Field(default=0, ge=0)
    outcome: OutcomeKind
    metadata: dict[str, Any] = Field(default_factory=dict)
    recorded_at: datetime = Field(default_factory=utc_now)

    @property
    def word_count(self) -> int:
        return len(self.content.split())


# ---------------------------------------------------------------------------
# Templates and threads
# ---------------------------------------------------------------------------


class TemplatePerformance(BaseModel):
    template_id: str
    usage_count: int = Field(default=0, ge=0)
    acceptance_rate: float = 0.0
    performance_score: float = 0.0
    contexts: list[str] = Field(default_factory=list)
    modification_patterns: list[str] = Field(default_factory=list)
    last_used: datetime | None = None

    @field_validator("acceptance_rate", "performance_score", mode="before")
    @classmethod
    def _clamp_unit(cls, value: float) -> float:
        return clamp(value)


class ThreadPriority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ThreadMemory(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    thread_id: str
    participants: list[str] = Field(default_factory=list)
    context: str = ""
    decisions: list[str] = Field(default_factory=list)
    follow_up_required: bool = False
    priority: ThreadPriority = ThreadPriority.MEDIUM
    key_insights: list[str] = Field(default_factory=list)
    updated_at: datetime = Field(default_factory=utc_now)


# ---------------------------------------------------------------------------
# Explicit preferences
# ---------------------------------------------------------------------------

_HHMM = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class TimeWindow(BaseModel):
    """A preferred (or avoided) slot for sending / scheduling."""

    model_config = ConfigDict(use_enum_values=True)

    day: str = Field(..., min_length=1)
    start_time: str
    end_time: str
    preference: ThreadPriority = ThreadPriority.MEDIUM

    @field_validator("start_time", "end_time")
    @classmethod
    def _validate_hhmm(cls, value: str) -> str:
        if not _HHMM.match(value):
            raise ValueError(f"Expected HH:MM, got {value!r}")
        return value

    @field_validator("day")
    @classmethod
    def _normalize_day(cls, value: str) -> str:
        return value.strip().lower()


class UserPreferences(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    default_tone: Tone = Tone.PROFESSIONAL
    signature: str | None = None
    primary_language: str = "en"
    time_windows: list[TimeWindow] = Field(default_factory=list)
    contact_tones: dict[str, Tone] = Field(default_factory=dict)
    updated_at: datetime = Field(default_factory=utc_now)
