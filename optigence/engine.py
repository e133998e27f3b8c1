"""
Decision Engine

One request in, one decision out:

    load learning state -> classify -> effective threshold -> suggestions -> auto-send gate

Learning state is loaded fresh from the repositories on every call; nothing
about a user is cached in-process between requests.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import TypeVar

from pydantic import BaseModel, Field

from optigence.classification.intent_classifier import IntentClassifier
from optigence.classification.models import IntentClassification, IntentContext
from optigence.learning.autosend import (
    AutoSendController,
    effective_threshold,
    should_auto_send,
)
from optigence.learning.memory_updates import PreferenceStore
from optigence.learning.models import (
    AutoSendMetrics,
    ContactTrustRecord,
    PersonalityProfile,
    TemplatePerformance,
    UserPreferences,
)
from optigence.learning.outcomes import InteractionOutcomeLogger
from optigence.learning.personality import PersonalityStore
from optigence.learning.templates import TemplatePerformanceTracker
from optigence.learning.trust import ContactTrustLedger
from optigence.observability.logging import get_logger
from optigence.observability.telemetry import counter, log_event, time_block
from optigence.runtime.thresholds import AUTO_SEND_COUNTDOWN_SECONDS
from optigence.suggestions.engine import SuggestionEngine
from optigence.suggestions.models import (
    ActionSuggestion,
    ExtractedEntities,
    SuggestionContext,
    ThreadInfo,
)

logger = get_logger(__name__)

T = TypeVar("T")


class DecisionRequest(BaseModel):
    user_id: str = "anonymous"
    text: str
    long_context: str | None = None
    entities: ExtractedEntities = Field(default_factory=ExtractedEntities)
    thread: ThreadInfo = Field(default_factory=ThreadInfo)
    calendar_access: bool = False
    recipient: str | None = None
    sender: str | None = None
    draft: str | None = None
    reply_options: list[str] = Field(default_factory=list)
    contact_email: str | None = None
    profile: PersonalityProfile | None = None
    deadline_seconds: float | None = Field(default=None, gt=0)

    def contact_key(self) -> str | None:
        """Contact whose trust applies: explicit, else recipient, else sender."""
        return self.contact_email or self.recipient or self.sender


class AutoSendDecision(BaseModel):
    confidence: float
    countdown_seconds: int = AUTO_SEND_COUNTDOWN_SECONDS
    recipient_hint: str


class DecisionResult(BaseModel):
    classification: IntentClassification
    suggestions: list[ActionSuggestion] = Field(default_factory=list)
    primary_action: ActionSuggestion | None = None
    contextual_hints: list[str] = Field(default_factory=list)
    reasoning: str = ""
    effective_threshold: float
    auto_send: AutoSendDecision | None = None


class DecisionEngine:
    """Orchestrates classification, suggestion generation and the auto-send gate."""

    def __init__(
        self,
        classifier: IntentClassifier | None = None,
        suggestion_engine: SuggestionEngine | None = None,
        personality: PersonalityStore | None = None,
        preferences: PreferenceStore | None = None,
        controller: AutoSendController | None = None,
        trust_ledger: ContactTrustLedger | None = None,
        templates: TemplatePerformanceTracker | None = None,
        outcomes: InteractionOutcomeLogger | None = None,
    ):
        self.classifier = classifier or IntentClassifier()
        self.suggestion_engine = suggestion_engine or SuggestionEngine()
        self.personality = personality or PersonalityStore()
        self.preferences = preferences or PreferenceStore()
        self.controller = controller or AutoSendController()
        self.trust_ledger = trust_ledger or ContactTrustLedger()
        self.templates = templates or TemplatePerformanceTracker()
        self.outcomes = outcomes or InteractionOutcomeLogger()

    def decide(self, request: DecisionRequest) -> DecisionResult:
        """
        Produce suggestions and an auto-send decision for one request.

        Args:
            request: Caller context. deadline_seconds bounds the provider call
                and suggestion collection.

        Returns:
            DecisionResult. auto_send is set only when the intent confidence
            clears the effective threshold and there is a draft or reply
            option to send.

        Side Effects:
            - Reads learning records from SQLite
            - May call the Gemini API (via the classifier)
            - Increments decision.* telemetry counters
        """
        started = time.monotonic()
        user_id = request.user_id
        contact_key = request.contact_key()

        with time_block("decision.load_state"):
            profile = request.profile or self._load(
                "personality", lambda: self.personality.get_profile(user_id), PersonalityProfile
            )
            preferences = self._load(
                "preferences", lambda: self.preferences.get(user_id), UserPreferences
            )
            metrics = self._load(
                "auto_send", lambda: self.controller.get_metrics(user_id), AutoSendMetrics
            )
            contact: ContactTrustRecord | None = None
            if contact_key:
                contact = self._load(
                    "trust",
                    lambda: self.trust_ledger.get_trust(user_id, contact_key),
                    lambda: None,
                )
            recent_modules: list[str] = self._load(
                "history", lambda: self.outcomes.recent_modules(user_id), list
            )

        classification = self.classifier.classify(
            request.text,
            IntentContext(
                user_id=user_id,
                email_sender=request.sender,
                email_snippet=request.long_context[:500] if request.long_context else None,
                preferred_tone=preferences.default_tone,
                preferred_language=preferences.primary_language,
            ),
            timeout=self._remaining(request, started),
        )

        contact_trust = contact.trust_score if contact else None
        threshold = effective_threshold(metrics, contact_trust, profile.decision_making)

        templates: list[TemplatePerformance] = self._load(
            "templates",
            lambda: self.templates.personalized_templates(
                user_id, classification.intent, request.entities.urgency
            ),
            list,
        )

        context = SuggestionContext(
            text=request.text,
            long_context=request.long_context,
            classification=classification,
            entities=request.entities,
            thread=request.thread,
            calendar_access=request.calendar_access,
            contact=contact,
            effective_threshold=threshold,
            personality=profile,
            preferences=preferences,
            templates=templates,
            recent_modules=recent_modules,
        )
        remaining = self._remaining(request, started)
        suggestions = self.suggestion_engine.generate(context, deadline=remaining)

        auto_send = None
        if should_auto_send(
            classification.confidence, threshold, request.draft, request.reply_options
        ):
            auto_send = AutoSendDecision(
                confidence=classification.confidence,
                countdown_seconds=AUTO_SEND_COUNTDOWN_SECONDS,
                recipient_hint=request.recipient or request.sender or "recipient",
            )
            counter("decision.auto_send")

        counter("decision.total")
        log_event(
            "decision.made",
            intent=classification.intent,
            source=classification.source,
            suggestions=len(suggestions.suggestions),
            auto_send=auto_send is not None,
            degraded=suggestions.degraded,
        )

        return DecisionResult(
            classification=classification,
            suggestions=suggestions.suggestions,
            primary_action=suggestions.primary_action,
            contextual_hints=suggestions.contextual_hints,
            reasoning=suggestions.reasoning,
            effective_threshold=threshold,
            auto_send=auto_send,
        )

    @staticmethod
    def _remaining(request: DecisionRequest, started: float) -> float | None:
        if request.deadline_seconds is None:
            return None
        return max(request.deadline_seconds - (time.monotonic() - started), 0.0)

    @staticmethod
    def _load(name: str, loader: Callable[[], T], default: Callable[[], T]) -> T:
        """Best-effort read of learning state; storage failures fall back to defaults."""
        try:
            return loader()
        except Exception as e:
            counter(f"decision.load_failed.{name}")
            logger.warning("Failed to load %s state, using defaults: %s", name, e)
            return default()
