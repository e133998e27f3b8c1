"""
Suggestion generators.

Each generator is a pure function of the (frozen) SuggestionContext. They are
independent of one another and may run in any order or in parallel.
"""

from __future__ import annotations

import re
from collections.abc import Callable

from optigence.learning.models import Tone
from optigence.runtime.thresholds import AUTO_SEND_COUNTDOWN_SECONDS, PERSONALIZED_TRUST_MIN
from optigence.suggestions.cross_module import CrossModuleRouter
from optigence.suggestions.models import (
    ActionSuggestion,
    SignalSource,
    SuggestionCategory,
    SuggestionContext,
)

PRIMARY = SuggestionCategory.PRIMARY
SECONDARY = SuggestionCategory.SECONDARY
CONTEXTUAL = SuggestionCategory.CONTEXTUAL

SENDING_INTENTS = ("reply", "compose")

_LANGUAGE_MENTION = re.compile(
    r"\b(?:to|in|into)\s+(english|french|spanish|german|chinese|japanese|italian|portuguese)\b",
    re.IGNORECASE,
)
_LANGUAGE_NAMES = {
    "en": "English",
    "fr": "French",
    "es": "Spanish",
    "de": "German",
    "zh": "Chinese",
    "ja": "Japanese",
    "it": "Italian",
    "pt": "Portuguese",
}


def target_language(ctx: SuggestionContext) -> str:
    """Language to translate into: explicit mention, else inferred from the user's language."""
    mention = _LANGUAGE_MENTION.search(ctx.text)
    if mention:
        return mention.group(1).title()

    primary = ctx.preferences.primary_language.lower()
    detected = (ctx.entities.language or "").lower()
    if detected and detected != "en" and primary == "en":
        return "English"
    if primary != "en":
        return _LANGUAGE_NAMES.get(primary, primary)
    return "target language"


def tone_for_contact(ctx: SuggestionContext) -> str:
    """Explicit per-contact tone, else inferred from trust and response speed."""
    default = ctx.preferences.default_tone
    contact = ctx.contact
    if contact is None:
        return default

    explicit = ctx.preferences.contact_tones.get(contact.contact_email)
    if explicit:
        return explicit

    if contact.trust_score > 0.8 and 0 < contact.average_response_seconds < 7200:
        return Tone.CASUAL.value
    if contact.trust_score < 0.5:
        return Tone.FORMAL.value
    return default


# ---------------------------------------------------------------------------
# Core: one template per intent
# ---------------------------------------------------------------------------


def core_suggestions(ctx: SuggestionContext) -> list[ActionSuggestion]:
    intent = ctx.intent
    confidence = ctx.confidence
    suggestions: list[ActionSuggestion] = []

    if intent == "reply":
        suggestions.append(
            ActionSuggestion(
                id="reply_draft",
                label="Draft Reply",
                category=PRIMARY,
                confidence=confidence,
                action="generate_reply",
                parameters={"tone": tone_for_contact(ctx)},
            )
        )
        if ctx.entities.sentiment == "positive":
            suggestions.append(
                ActionSuggestion(
                    id="reply_thank",
                    label="Send Thanks",
                    category=SECONDARY,
                    confidence=0.8,
                    action="generate_thank_you",
                )
            )

    elif intent == "summarize":
        suggestions.append(
            ActionSuggestion(
                id="summarize_thread",
                label="Summarize Thread",
                category=PRIMARY,
                confidence=confidence,
                action="summarize_thread",
            )
        )
        if ctx.thread.message_count > 5:
            suggestions.append(
                ActionSuggestion(
                    id="summarize_key_points",
                    label="Key Points Only",
                    category=CONTEXTUAL,
                    confidence=0.9,
                    action="extract_key_points",
                )
            )

    elif intent == "translate":
        suggestions.append(
            ActionSuggestion(
                id="translate_text",
                label="Translate",
                category=PRIMARY,
                confidence=confidence,
                action="translate_message",
                description=f"Translate to {target_language(ctx)}",
                parameters={"target_language": target_language(ctx)},
            )
        )

    elif intent == "schedule":
        if ctx.entities.dates:
            suggestions.append(
                ActionSuggestion(
                    id="add_to_calendar",
                    label="Add to Calendar",
                    category=PRIMARY,
                    confidence=0.9,
                    action="create_calendar_event",
                    parameters={"dates": list(ctx.entities.dates)},
                    requires_confirmation=True,
                )
            )
        else:
            suggestions.append(
                ActionSuggestion(
                    id="propose_times",
                    label="Propose Times",
                    category=PRIMARY,
                    confidence=0.8,
                    action="suggest_meeting_times",
                )
            )

    elif intent == "template":
        suggestions.append(
            ActionSuggestion(
                id="save_template",
                label="Save as Template",
                category=PRIMARY,
                confidence=confidence,
                action="save_template",
            )
        )

    elif intent == "compose":
        suggestions.append(
            ActionSuggestion(
                id="compose_draft",
                label="Compose Email",
                category=PRIMARY,
                confidence=confidence,
                action="compose_email",
                parameters={"tone": tone_for_contact(ctx)},
            )
        )

    elif intent in ("travel", "shopping", "hiring"):
        suggestions.append(
            ActionSuggestion(
                id=f"open_{intent}",
                label=f"Open {intent.title()}",
                category=PRIMARY,
                confidence=confidence,
                action="open_module",
                parameters={"module": intent},
            )
        )

    else:
        suggestions.append(
            ActionSuggestion(
                id="ask_assistant",
                label="Ask Assistant",
                category=SECONDARY,
                confidence=confidence,
                action="open_assistant",
            )
        )

    return suggestions


# ---------------------------------------------------------------------------
# Contextual: driven by extracted entities and thread depth
# ---------------------------------------------------------------------------


def contextual_suggestions(ctx: SuggestionContext) -> list[ActionSuggestion]:
    entities = ctx.entities
    suggestions: list[ActionSuggestion] = []

    if len(entities.people) > 2:
        suggestions.append(
            ActionSuggestion(
                id="cc_participants",
                label="CC Participants",
                category=CONTEXTUAL,
                confidence=0.7,
                action="add_cc",
                parameters={"people": list(entities.people)},
            )
        )

    if entities.urgency == "high":
        suggestions.append(
            ActionSuggestion(
                id="priority_response",
                label="Respond Now",
                category=CONTEXTUAL,
                confidence=0.9,
                action="prioritize_response",
            )
        )

    if entities.dates and ctx.calendar_access:
        suggestions.append(
            ActionSuggestion(
                id="check_availability",
                label="Check Availability",
                category=CONTEXTUAL,
                confidence=0.8,
                action="check_calendar",
                parameters={"dates": list(entities.dates)},
            )
        )

    if entities.locations:
        suggestions.append(
            ActionSuggestion(
                id="location_details",
                label="Location Details",
                category=CONTEXTUAL,
                confidence=0.6,
                action="show_location",
                parameters={"locations": list(entities.locations)},
            )
        )

    if ctx.thread.has_history and ctx.thread.message_count > 3:
        suggestions.append(
            ActionSuggestion(
                id="reference_history",
                label="Reference Earlier Messages",
                category=CONTEXTUAL,
                confidence=0.7,
                action="reference_thread_history",
            )
        )

    return suggestions


# ---------------------------------------------------------------------------
# Personalized: trust, tone, signature, templates
# ---------------------------------------------------------------------------


def personalized_suggestions(ctx: SuggestionContext) -> list[ActionSuggestion]:
    suggestions: list[ActionSuggestion] = []
    trust = ctx.contact_trust
    sending = ctx.intent in SENDING_INTENTS

    if (
        trust is not None
        and trust > PERSONALIZED_TRUST_MIN
        and ctx.confidence * trust > ctx.effective_threshold
    ):
        suggestions.append(
            ActionSuggestion(
                id="auto_send",
                label="Auto-Send",
                category=PRIMARY,
                confidence=ctx.confidence * trust,
                action="auto_send",
                description=f"Send automatically in {AUTO_SEND_COUNTDOWN_SECONDS}s",
                parameters={
                    "countdown_seconds": AUTO_SEND_COUNTDOWN_SECONDS,
                    "contact_email": ctx.contact.contact_email,
                },
                requires_confirmation=False,
            )
        )

    if ctx.contact is not None:
        tone = tone_for_contact(ctx)
        if tone != ctx.preferences.default_tone:
            suggestions.append(
                ActionSuggestion(
                    id="adjust_tone",
                    label=f"Use {tone.title()} Tone",
                    category=CONTEXTUAL,
                    confidence=0.8,
                    action="adjust_tone",
                    parameters={"tone": tone},
                )
            )

    if ctx.preferences.signature and sending:
        suggestions.append(
            ActionSuggestion(
                id="add_signature",
                label="Add Signature",
                category=SECONDARY,
                confidence=0.9,
                action="insert_signature",
            )
        )

    if ctx.templates:
        best = ctx.templates[0]
        suggestions.append(
            ActionSuggestion(
                id="use_template",
                label="Use Saved Template",
                category=SECONDARY,
                confidence=best.performance_score,
                action="apply_template",
                parameters={"template_id": best.template_id},
            )
        )

    return suggestions


# ---------------------------------------------------------------------------
# Cross-module
# ---------------------------------------------------------------------------


def make_cross_module_generator(
    router: CrossModuleRouter | None = None,
) -> Callable[[SuggestionContext], list[ActionSuggestion]]:
    router = router or CrossModuleRouter()

    def cross_module_suggestions(ctx: SuggestionContext) -> list[ActionSuggestion]:
        routes = router.route(ctx.text, ctx.long_context)
        routed = [s.parameters["module"] for s in routes]
        return routes + router.history_suggestions(ctx.recent_modules, exclude=routed)

    return cross_module_suggestions


def default_generators(
    router: CrossModuleRouter | None = None,
) -> dict[SignalSource, Callable[[SuggestionContext], list[ActionSuggestion]]]:
    return {
        SignalSource.CORE: core_suggestions,
        SignalSource.CONTEXTUAL: contextual_suggestions,
        SignalSource.PERSONALIZED: personalized_suggestions,
        SignalSource.CROSS_MODULE: make_cross_module_generator(router),
    }
