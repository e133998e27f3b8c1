"""
Tests for intent classification

Validates:
1. Pattern tier results (weights, secondary intents, default)
2. Provider tier parsing (clamping, code fences, malformed output)
3. Fallback ordering and deadline handling in IntentClassifier
"""

from __future__ import annotations

import json
import time

import pytest

from optigence.classification.intent_classifier import IntentClassifier
from optigence.classification.llm_intent import GeminiIntentStrategy, LLMIntentError
from optigence.classification.models import IntentContext
from optigence.classification.patterns import PatternIntentStrategy, classify_by_patterns
from optigence.infrastructure.retry import CircuitBreaker
from optigence.observability.telemetry import get_counter


def _llm_reply(**payload) -> str:
    return json.dumps(payload)


# ============================================================================
# Pattern tier
# ============================================================================


def test_reply_pattern():
    result = classify_by_patterns("Please reply to Sarah about the budget")
    assert result.intent == "reply"
    assert result.confidence == pytest.approx(0.9)
    assert result.source == "pattern"
    assert result.reasoning.startswith("Pattern match:")


def test_translate_beats_other_matches():
    """translate (0.95) outranks reply (0.9) when both match."""
    result = classify_by_patterns("Translate my reply into Spanish")
    assert result.intent == "translate"
    assert "reply" in result.secondary


def test_hiring_pattern():
    result = classify_by_patterns("Set up candidate screening for the resume pile")
    assert result.intent == "hiring"


def test_no_match_is_default_assistance():
    result = classify_by_patterns("what is the weather like")
    assert result.intent == "assistance"
    assert result.confidence == pytest.approx(0.6)
    assert result.reasoning == "Default classification"


def test_empty_text_is_default():
    assert classify_by_patterns("").intent == "assistance"


# ============================================================================
# Provider tier
# ============================================================================


@pytest.fixture
def llm_enabled(monkeypatch):
    monkeypatch.setenv("OPTIGENCE_USE_LLM", "true")


def test_llm_confidence_is_capped(llm_enabled):
    strategy = GeminiIntentStrategy(
        call_fn=lambda prompt, system: _llm_reply(intent="summarize", confidence=1.7)
    )
    result = strategy.classify("give me the gist", IntentContext())
    assert result.intent == "summarize"
    assert result.confidence == pytest.approx(0.95)
    assert result.source == "llm"


def test_llm_code_fence_is_stripped(llm_enabled):
    fenced = "```json\n" + _llm_reply(intent="reply", confidence=0.8, secondary=["bogus"]) + "\n```"
    strategy = GeminiIntentStrategy(call_fn=lambda prompt, system: fenced)
    result = strategy.classify("answer this", None)
    assert result.intent == "reply"
    assert result.secondary == []


def test_llm_unknown_label_is_malformed(llm_enabled):
    strategy = GeminiIntentStrategy(
        call_fn=lambda prompt, system: _llm_reply(intent="dance", confidence=0.9)
    )
    with pytest.raises(LLMIntentError, match="Unknown intent label"):
        strategy.classify("do a dance", None)


def test_llm_unavailable_without_flag():
    strategy = GeminiIntentStrategy(call_fn=lambda prompt, system: "{}")
    assert strategy.is_available(IntentContext()) is False


def test_llm_unavailable_when_circuit_open(llm_enabled):
    breaker = CircuitBreaker(stage="test.llm", fail_max=1)
    breaker.record_failure()
    strategy = GeminiIntentStrategy(call_fn=lambda prompt, system: "{}", breaker=breaker)
    assert strategy.is_available(IntentContext()) is False


# ============================================================================
# Orchestrator
# ============================================================================


def test_classifier_without_provider_uses_patterns():
    """No provider configured: result still bounded and in [0, 1]."""
    classifier = IntentClassifier()
    result = classifier.classify("Can you summarize this thread?")
    assert result.intent == "summarize"
    assert 0.0 <= result.confidence <= 1.0
    assert get_counter("intent.tier.pattern") == 1


def test_malformed_provider_output_falls_back(llm_enabled):
    strategy = GeminiIntentStrategy(call_fn=lambda prompt, system: "not json at all")
    classifier = IntentClassifier([strategy, PatternIntentStrategy()])

    result = classifier.classify("please reply to the client")

    assert result.intent == "reply"
    assert result.source == "pattern"
    assert get_counter("intent.fallback") == 1


def test_provider_timeout_falls_back(llm_enabled):
    def slow_call(prompt, system):
        time.sleep(0.5)
        return _llm_reply(intent="compose", confidence=0.9)

    strategy = GeminiIntentStrategy(call_fn=slow_call)
    classifier = IntentClassifier([strategy, PatternIntentStrategy()])

    started = time.monotonic()
    result = classifier.classify("reply to Bob", IntentContext(), timeout=0.1)

    assert time.monotonic() - started < 0.45
    assert result.source == "pattern"
    assert get_counter("intent.llm.timeout") == 1


def test_expired_deadline_skips_remote_tier(llm_enabled):
    calls = []

    def record_call(prompt, system):
        calls.append(prompt)
        return _llm_reply(intent="reply", confidence=0.9)

    strategy = GeminiIntentStrategy(call_fn=record_call)
    classifier = IntentClassifier([strategy, PatternIntentStrategy()])

    result = classifier.classify("reply to Bob", timeout=0.0)

    assert calls == []
    assert result.source == "pattern"
    assert get_counter("intent.deadline_skip") == 1


def test_all_tiers_failing_returns_default():
    class Broken:
        name = "broken"
        remote = False

        def is_available(self, context=None):
            return True

        def classify(self, text, context=None, timeout=None):
            raise RuntimeError("boom")

    result = IntentClassifier([Broken()]).classify("anything")
    assert result.intent == "assistance"
    assert result.source == "default"
    assert get_counter("intent.default") == 1
