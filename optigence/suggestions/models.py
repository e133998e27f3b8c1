"""
Suggestion pipeline types.

SuggestionContext is built once per request (intent already resolved, learning
records already loaded) and handed read-only to every generator, so the
generators are pure functions of it.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from optigence.classification.models import IntentClassification
from optigence.learning.models import (
    ContactTrustRecord,
    PersonalityProfile,
    TemplatePerformance,
    UserPreferences,
    clamp,
)


class SuggestionCategory(str, Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"
    CONTEXTUAL = "contextual"
    CROSS_MODULE = "cross_module"


CATEGORY_PRIORITY: dict[str, int] = {
    SuggestionCategory.PRIMARY.value: 4,
    SuggestionCategory.SECONDARY.value: 3,
    SuggestionCategory.CONTEXTUAL.value: 2,
    SuggestionCategory.CROSS_MODULE.value: 1,
}


class SignalSource(str, Enum):
    """Generators, in the canonical order their output is merged."""

    CORE = "core"
    CONTEXTUAL = "contextual"
    PERSONALIZED = "personalized"
    CROSS_MODULE = "cross_module"


SOURCE_ORDER: tuple[SignalSource, ...] = (
    SignalSource.CORE,
    SignalSource.CONTEXTUAL,
    SignalSource.PERSONALIZED,
    SignalSource.CROSS_MODULE,
)


class ActionSuggestion(BaseModel):
    """A candidate next action. Ephemeral; never persisted."""

    model_config = ConfigDict(use_enum_values=True)

    id: str = Field(..., min_length=1)
    label: str
    category: SuggestionCategory
    confidence: float
    action: str
    description: str | None = None
    parameters: dict[str, Any] | None = None
    requires_confirmation: bool | None = None

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, value: float) -> float:
        return clamp(value)

    @property
    def priority(self) -> int:
        return CATEGORY_PRIORITY[self.category]


class ExtractedEntities(BaseModel):
    """Entities the caller (or an upstream extractor) pulled out of the text."""

    people: list[str] = Field(default_factory=list)
    dates: list[str] = Field(default_factory=list)
    locations: list[str] = Field(default_factory=list)
    topics: list[str] = Field(default_factory=list)
    urgency: Literal["low", "medium", "high"] = "low"
    sentiment: Literal["positive", "neutral", "negative"] = "neutral"
    language: str | None = None


class ThreadInfo(BaseModel):
    thread_id: str | None = None
    message_count: int = Field(default=1, ge=0)
    has_history: bool = False


class SuggestionContext(BaseModel):
    """Everything the generators may read. Frozen: generators share it across threads."""

    model_config = ConfigDict(frozen=True)

    text: str
    long_context: str | None = None
    classification: IntentClassification
    entities: ExtractedEntities = Field(default_factory=ExtractedEntities)
    thread: ThreadInfo = Field(default_factory=ThreadInfo)
    calendar_access: bool = False
    contact: ContactTrustRecord | None = None
    effective_threshold: float = 0.85
    personality: PersonalityProfile = Field(default_factory=PersonalityProfile)
    preferences: UserPreferences = Field(default_factory=UserPreferences)
    templates: list[TemplatePerformance] = Field(default_factory=list)
    # Module named by each recent outcome, oldest first
    recent_modules: list[str] = Field(default_factory=list)

    @property
    def intent(self) -> str:
        return self.classification.intent

    @property
    def confidence(self) -> float:
        return self.classification.confidence

    @property
    def contact_trust(self) -> float | None:
        return self.contact.trust_score if self.contact else None


class SuggestionResult(BaseModel):
    suggestions: list[ActionSuggestion] = Field(default_factory=list)
    primary_action: ActionSuggestion | None = None
    contextual_hints: list[str] = Field(default_factory=list)
    reasoning: str = ""
    degraded: bool = False
