"""Intent classification types."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Intent(str, Enum):
    """What the user's text is asking the assistant to do."""

    REPLY = "reply"
    COMPOSE = "compose"
    SUMMARIZE = "summarize"
    TRANSLATE = "translate"
    SCHEDULE = "schedule"
    TEMPLATE = "template"
    TRAVEL = "travel"
    SHOPPING = "shopping"
    HIRING = "hiring"
    ASSISTANCE = "assistance"


KNOWN_INTENTS: frozenset[str] = frozenset(intent.value for intent in Intent)


class ClassificationSource(str, Enum):
    LLM = "llm"
    PATTERN = "pattern"
    DEFAULT = "default"


class IntentClassification(BaseModel):
    """Intent label + confidence. Produced per call, never persisted."""

    model_config = ConfigDict(use_enum_values=True)

    intent: str
    confidence: float = Field(ge=0.0, le=1.0)
    secondary: list[str] = Field(default_factory=list)
    reasoning: str = ""
    source: ClassificationSource = ClassificationSource.PATTERN

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, value: float) -> float:
        return min(max(float(value), 0.0), 1.0)


class IntentContext(BaseModel):
    """Optional email and preference context passed alongside the text."""

    user_id: str = "anonymous"
    email_subject: str | None = None
    email_sender: str | None = None
    email_snippet: str | None = None
    preferred_tone: str | None = None
    preferred_language: str | None = None

    def has_email(self) -> bool:
        return bool(self.email_subject or self.email_sender or self.email_snippet)
