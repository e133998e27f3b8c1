"""
Tests for the suggestion generators and the concurrent SuggestionEngine
"""

from __future__ import annotations

import time

import pytest

from optigence.classification.models import IntentClassification
from optigence.learning.models import ContactTrustRecord, TemplatePerformance, UserPreferences
from optigence.observability.telemetry import get_counter
from optigence.suggestions.engine import SuggestionEngine
from optigence.suggestions.generators import (
    contextual_suggestions,
    core_suggestions,
    default_generators,
    personalized_suggestions,
    target_language,
    tone_for_contact,
)
from optigence.suggestions.models import (
    ActionSuggestion,
    ExtractedEntities,
    SignalSource,
    SuggestionContext,
    ThreadInfo,
)


def _ctx(intent: str = "reply", confidence: float = 0.9, text: str = "", **overrides):
    fields = {
        "text": text or f"please {intent}",
        "classification": IntentClassification(intent=intent, confidence=confidence),
    }
    fields.update(overrides)
    return SuggestionContext(**fields)


def _ids(suggestions) -> list[str]:
    return [s.id for s in suggestions]


# ============================================================================
# Core
# ============================================================================


def test_reply_with_positive_sentiment_offers_thanks():
    ctx = _ctx("reply", entities=ExtractedEntities(sentiment="positive"))
    assert _ids(core_suggestions(ctx)) == ["reply_draft", "reply_thank"]


def test_summarize_long_thread_offers_key_points():
    ctx = _ctx("summarize", thread=ThreadInfo(message_count=8))
    assert _ids(core_suggestions(ctx)) == ["summarize_thread", "summarize_key_points"]


def test_schedule_depends_on_dates():
    with_dates = _ctx("schedule", entities=ExtractedEntities(dates=["next Tuesday"]))
    add = core_suggestions(with_dates)[0]
    assert add.id == "add_to_calendar"
    assert add.requires_confirmation is True
    assert add.parameters == {"dates": ["next Tuesday"]}

    assert _ids(core_suggestions(_ctx("schedule"))) == ["propose_times"]


def test_module_intents_open_module():
    assert _ids(core_suggestions(_ctx("hiring"))) == ["open_hiring"]
    assert core_suggestions(_ctx("assistance"))[0].category == "secondary"


def test_translate_target_language():
    assert target_language(_ctx("translate", text="translate this into German")) == "German"
    foreign = _ctx("translate", entities=ExtractedEntities(language="es"))
    assert target_language(foreign) == "English"
    french_user = _ctx("translate", preferences=UserPreferences(primary_language="fr"))
    assert target_language(french_user) == "French"
    assert target_language(_ctx("translate")) == "target language"


# ============================================================================
# Contextual
# ============================================================================


def test_contextual_signals():
    ctx = _ctx(
        "reply",
        entities=ExtractedEntities(
            people=["a", "b", "c"],
            dates=["Friday"],
            locations=["Paris"],
            urgency="high",
        ),
        thread=ThreadInfo(message_count=5, has_history=True),
        calendar_access=True,
    )
    assert _ids(contextual_suggestions(ctx)) == [
        "cc_participants",
        "priority_response",
        "check_availability",
        "location_details",
        "reference_history",
    ]


def test_no_calendar_access_no_availability_check():
    ctx = _ctx("reply", entities=ExtractedEntities(dates=["Friday"]))
    assert "check_availability" not in _ids(contextual_suggestions(ctx))


# ============================================================================
# Personalized
# ============================================================================


def _trusted(trust: float, avg_seconds: float = 600.0) -> ContactTrustRecord:
    return ContactTrustRecord(
        contact_email="pal@example.com", trust_score=trust, average_response_seconds=avg_seconds
    )


def test_auto_send_offered_for_trusted_contact():
    ctx = _ctx("reply", 0.95, contact=_trusted(0.9), effective_threshold=0.8)
    auto = next(s for s in personalized_suggestions(ctx) if s.id == "auto_send")
    assert auto.category == "primary"
    assert auto.requires_confirmation is False
    assert auto.parameters["countdown_seconds"] == 3
    assert auto.confidence == pytest.approx(0.95 * 0.9)


def test_auto_send_offered_for_any_intent():
    ctx = _ctx("schedule", 0.95, contact=_trusted(1.0), effective_threshold=0.75)
    auto = next(s for s in personalized_suggestions(ctx) if s.id == "auto_send")
    assert auto.confidence == pytest.approx(0.95)
    assert auto.parameters["contact_email"] == "pal@example.com"


def test_auto_send_withheld_when_product_below_threshold():
    ctx = _ctx("reply", 0.9, contact=_trusted(0.75), effective_threshold=0.8)
    assert "auto_send" not in _ids(personalized_suggestions(ctx))


def test_tone_inference():
    assert tone_for_contact(_ctx(contact=_trusted(0.9))) == "casual"
    assert tone_for_contact(_ctx(contact=_trusted(0.3))) == "formal"
    assert tone_for_contact(_ctx(contact=_trusted(0.6))) == "professional"
    explicit = _ctx(
        contact=_trusted(0.9),
        preferences=UserPreferences(contact_tones={"pal@example.com": "formal"}),
    )
    assert tone_for_contact(explicit) == "formal"


def test_signature_and_template_suggestions():
    ctx = _ctx(
        "compose",
        preferences=UserPreferences(signature="-- Sam"),
        templates=[TemplatePerformance(template_id="t-best", performance_score=0.8)],
    )
    suggestions = {s.id: s for s in personalized_suggestions(ctx)}
    assert suggestions["add_signature"].confidence == 0.9
    assert suggestions["use_template"].parameters == {"template_id": "t-best"}


# ============================================================================
# Engine
# ============================================================================


@pytest.fixture
def engine():
    engine = SuggestionEngine()
    yield engine
    engine.shutdown()


def test_engine_ranks_and_explains(engine):
    ctx = _ctx(
        "reply",
        0.92,
        text="Reply to Anna about the flight, hotel and vacation plans",
        entities=ExtractedEntities(urgency="high"),
    )
    result = engine.generate(ctx)

    assert result.suggestions[0].id == "reply_draft"
    assert result.primary_action.id == "reply_draft"
    assert "route_travel" in _ids(result.suggestions)
    assert len(result.suggestions) <= 6
    assert len(set(_ids(result.suggestions))) == len(result.suggestions)
    assert result.reasoning.startswith('Detected "reply" intent with 92% confidence.')
    assert "This message looks urgent." in result.contextual_hints
    assert result.degraded is False


def test_low_confidence_hint(engine):
    result = engine.generate(_ctx("assistance", 0.6))
    assert any("rephrasing" in hint for hint in result.contextual_hints)


def test_failing_generator_is_dropped():
    def broken(ctx):
        raise RuntimeError("generator bug")

    generators = default_generators()
    generators[SignalSource.CONTEXTUAL] = broken
    engine = SuggestionEngine(generators)
    try:
        result = engine.generate(_ctx("reply"))
    finally:
        engine.shutdown()

    assert result.primary_action.id == "reply_draft"
    assert result.degraded is True
    assert get_counter("suggestions.generator_error.contextual") == 1


def test_slow_generator_misses_deadline():
    def slow(ctx):
        time.sleep(0.5)
        return [
            ActionSuggestion(
                id="late", label="Late", category="primary", confidence=1.0, action="late"
            )
        ]

    generators = default_generators()
    generators[SignalSource.PERSONALIZED] = slow
    engine = SuggestionEngine(generators)
    try:
        result = engine.generate(_ctx("reply"), deadline=0.1)
    finally:
        engine.shutdown()

    assert "late" not in _ids(result.suggestions)
    assert get_counter("suggestions.generator_timeout.personalized") == 1


def test_pipeline_failure_returns_fallback(monkeypatch, engine):
    def explode(outputs, limit=6):
        raise RuntimeError("ranker bug")

    monkeypatch.setattr("optigence.suggestions.engine.merge", explode)
    result = engine.generate(_ctx("summarize"))

    assert _ids(result.suggestions) == ["fallback_summarize"]
    assert result.suggestions[0].confidence == 0.5
    assert result.degraded is True


# ============================================================================
# Deadline expiry
# ============================================================================


def _travel_reply_ctx():
    return _ctx(
        "reply",
        0.9,
        text="Reply about the flight, hotel and vacation in Paris",
        entities=ExtractedEntities(urgency="high", locations=["Paris"]),
    )


def test_spent_deadline_still_returns_local_suggestions(engine):
    expected = _ids(engine.generate(_travel_reply_ctx()).suggestions)
    assert expected[0] == "reply_draft"

    for _ in range(20):
        result = engine.generate(_travel_reply_ctx(), deadline=0.0)
        assert _ids(result.suggestions) == expected
        assert result.primary_action.id == "reply_draft"
        assert result.degraded is False


def test_queued_generators_run_inline_when_pool_is_busy():
    def slow_core(ctx):
        time.sleep(0.6)
        return []

    generators = default_generators()
    generators[SignalSource.CORE] = slow_core
    engine = SuggestionEngine(generators, max_workers=1)
    try:
        result = engine.generate(_travel_reply_ctx(), deadline=0.0)
    finally:
        engine.shutdown()

    ids = _ids(result.suggestions)
    assert "priority_response" in ids
    assert "route_travel" in ids
    assert result.degraded is True
    assert get_counter("suggestions.generator_timeout.core") == 1
    assert get_counter("suggestions.generator_inline.contextual") == 1


def test_empty_merge_becomes_fallback():
    def nothing(ctx):
        return []

    engine = SuggestionEngine({source: nothing for source in SignalSource})
    try:
        result = engine.generate(_ctx("translate"))
    finally:
        engine.shutdown()

    assert _ids(result.suggestions) == ["fallback_translate"]
    assert result.primary_action.id == "fallback_translate"
    assert result.degraded is True
