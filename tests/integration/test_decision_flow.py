"""
End-to-end decision flow: learned state → classification → suggestions → auto-send gate
"""

from __future__ import annotations

import json
import time

import pytest

from optigence.classification.intent_classifier import IntentClassifier
from optigence.classification.llm_intent import GeminiIntentStrategy
from optigence.classification.patterns import PatternIntentStrategy
from optigence.engine import DecisionEngine, DecisionRequest
from optigence.learning.memory_updates import ContactTrustUpdate, MemoryUpdateService
from optigence.learning.models import InteractionOutcome, PersonalityProfile
from optigence.learning.outcomes import InteractionOutcomeLogger
from optigence.learning.personality import PersonalityStore
from optigence.observability.telemetry import get_counter


def _llm_classifier(intent: str, confidence: float, delay: float = 0.0) -> IntentClassifier:
    def call(prompt, system):
        if delay:
            time.sleep(delay)
        return json.dumps({"intent": intent, "confidence": confidence, "reasoning": "test"})

    return IntentClassifier([GeminiIntentStrategy(call_fn=call), PatternIntentStrategy()])


@pytest.fixture
def llm_enabled(monkeypatch):
    monkeypatch.setenv("OPTIGENCE_USE_LLM", "true")


def test_trusted_contact_and_quick_user_auto_sends(llm_enabled):
    """0.95 confidence, trust 1.0, quick user: 0.85 - 0.05 - 0.05 = 0.75 → auto-send."""
    MemoryUpdateService().apply(
        "u1", ContactTrustUpdate(contact_email="pal@example.com", trust_level=1.0)
    )
    engine = DecisionEngine(classifier=_llm_classifier("reply", 0.95))

    result = engine.decide(
        DecisionRequest(
            user_id="u1",
            text="Let them know Thursday works",
            recipient="pal@example.com",
            draft="Thursday works for me.",
            profile=PersonalityProfile(decision_making="quick"),
        )
    )

    assert result.classification.source == "llm"
    assert result.effective_threshold == pytest.approx(0.75)
    assert result.auto_send is not None
    assert result.auto_send.confidence == pytest.approx(0.95)
    assert result.auto_send.countdown_seconds == 3
    assert result.auto_send.recipient_hint == "pal@example.com"
    assert result.primary_action.id == "auto_send"


def test_no_draft_no_auto_send(llm_enabled):
    engine = DecisionEngine(classifier=_llm_classifier("reply", 0.95))
    result = engine.decide(
        DecisionRequest(
            user_id="u1",
            text="answer this",
            sender="boss@example.com",
            profile=PersonalityProfile(decision_making="quick"),
        )
    )
    assert result.auto_send is None


def test_recipient_hint_falls_back():
    engine = DecisionEngine()
    result = engine.decide(
        DecisionRequest(
            user_id="u1",
            text="reply",
            reply_options=["Sure", "No thanks"],
            profile=PersonalityProfile(decision_making="quick"),
        )
    )
    # Pattern confidence 0.9 clears 0.85 - 0.05 = 0.8
    assert result.auto_send is not None
    assert result.auto_send.recipient_hint == "recipient"


def test_learned_profile_feeds_threshold():
    outcome_logger = InteractionOutcomeLogger()
    for outcome in ("canceled", "regretted"):
        outcome_logger.record(
            InteractionOutcome(user_id="u1", type="auto_send", outcome=outcome, timing_ms=20000)
        )

    result = DecisionEngine().decide(DecisionRequest(user_id="u1", text="reply to Ann"))

    # 0.85 + 0.02 + 0.02 = 0.89, deliberate user +0.05 = 0.94
    assert result.effective_threshold == pytest.approx(0.94)
    assert result.auto_send is None


def test_slow_provider_respects_deadline(llm_enabled):
    engine = DecisionEngine(classifier=_llm_classifier("compose", 0.9, delay=1.0))

    started = time.monotonic()
    result = engine.decide(
        DecisionRequest(user_id="u1", text="Summarize the thread", deadline_seconds=0.3)
    )

    assert time.monotonic() - started < 0.9
    assert result.classification.intent == "summarize"
    assert result.classification.source == "pattern"
    # The provider ate the whole deadline; local suggestions are still collected
    assert result.primary_action.id == "summarize_thread"
    assert result.suggestions


def test_store_failure_falls_back_to_defaults(monkeypatch):
    def broken(self, user_id):
        raise RuntimeError("disk on fire")

    monkeypatch.setattr(PersonalityStore, "get_profile", broken)

    result = DecisionEngine().decide(DecisionRequest(user_id="u1", text="please reply"))

    assert result.classification.intent == "reply"
    assert result.effective_threshold == pytest.approx(0.9)
    assert get_counter("decision.load_failed.personality") == 1


def test_cross_module_suggestion_in_decision():
    result = DecisionEngine().decide(
        DecisionRequest(
            user_id="u1",
            text="Can you compare the price on that product before I buy it",
        )
    )
    ids = [s.id for s in result.suggestions]
    assert result.classification.intent == "shopping"
    assert "open_shopping" in ids
    assert "route_shopping" in ids
    assert "shopping" in result.reasoning


def test_recent_module_use_suggests_continuing():
    outcome_logger = InteractionOutcomeLogger()
    for _ in range(2):
        outcome_logger.record(
            InteractionOutcome(
                user_id="u1", type="cross_module", outcome="success", metadata={"module": "hiring"}
            )
        )

    result = DecisionEngine(outcomes=outcome_logger).decide(
        DecisionRequest(user_id="u1", text="please reply")
    )

    ids = [s.id for s in result.suggestions]
    assert result.primary_action.id == "reply_draft"
    assert "continue_hiring" in ids
    assert "hiring" not in result.reasoning
