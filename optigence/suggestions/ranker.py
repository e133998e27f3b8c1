"""
Suggestion merge and ranking.

Merge order is fixed (core, contextual, personalized, cross_module) regardless
of which generator finished first, so the final list is a deterministic
function of the generator outputs.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from optigence.runtime.thresholds import MAX_SUGGESTIONS
from optigence.suggestions.models import (
    SOURCE_ORDER,
    ActionSuggestion,
    SignalSource,
    SuggestionCategory,
    SuggestionContext,
)


def _sort_key(suggestion: ActionSuggestion) -> tuple[int, float, str]:
    return (-suggestion.priority, -suggestion.confidence, suggestion.id)


def merge(
    results_by_source: Mapping[SignalSource, Sequence[ActionSuggestion]],
    limit: int = MAX_SUGGESTIONS,
) -> list[ActionSuggestion]:
    """
    Concatenate generator outputs in canonical order, dedupe, rank, truncate.

    Args:
        results_by_source: Generator output keyed by source; missing sources are
            treated as empty
        limit: Maximum suggestions returned

    Returns:
        Suggestions sorted by (priority desc, confidence desc, id asc). When two
        generators emit the same id, the one earlier in canonical order wins.
    """
    seen: set[str] = set()
    combined: list[ActionSuggestion] = []
    for source in SOURCE_ORDER:
        for suggestion in results_by_source.get(source, ()):
            if suggestion.id in seen:
                continue
            seen.add(suggestion.id)
            combined.append(suggestion)

    combined.sort(key=_sort_key)
    return combined[:limit]


def pick_primary(suggestions: Sequence[ActionSuggestion]) -> ActionSuggestion | None:
    """First primary-category suggestion, else the top-ranked one."""
    for suggestion in suggestions:
        if suggestion.category == SuggestionCategory.PRIMARY.value:
            return suggestion
    return suggestions[0] if suggestions else None


def fallback_suggestions(intent: str) -> list[ActionSuggestion]:
    """Minimal suggestion set used when the pipeline fails or produces nothing."""
    if intent in ("reply", "summarize", "translate"):
        return [
            ActionSuggestion(
                id=f"fallback_{intent}",
                label=intent.title(),
                category=SuggestionCategory.PRIMARY,
                confidence=0.5,
                action=intent,
            )
        ]
    return [
        ActionSuggestion(
            id="fallback_general",
            label="Get Help",
            category=SuggestionCategory.PRIMARY,
            confidence=0.3,
            action="assistance",
        )
    ]


def contextual_hints(ctx: SuggestionContext) -> list[str]:
    hints: list[str] = []
    if ctx.confidence < 0.7:
        hints.append("Intent unclear. Try rephrasing your request for better suggestions.")
    trust = ctx.contact_trust
    if trust is not None and trust > 0.8:
        hints.append("High trust contact. Auto-send is available.")
    if len(ctx.entities.people) > 3:
        hints.append("Many participants mentioned. Consider who needs to be included.")
    if ctx.entities.urgency == "high":
        hints.append("This message looks urgent.")
    if len(ctx.entities.dates) > 1:
        hints.append("Multiple dates mentioned. Check for scheduling conflicts.")
    return hints


def build_reasoning(ctx: SuggestionContext, suggestions: Sequence[ActionSuggestion]) -> str:
    parts = [f'Detected "{ctx.intent}" intent with {round(ctx.confidence * 100)}% confidence.']
    if ctx.contact is not None:
        parts.append(
            f"Contact trust {ctx.contact.trust_score:.2f} "
            f"({ctx.contact.relationship_type})."
        )
    routed = [
        s.parameters["module"]
        for s in suggestions
        if s.category == SuggestionCategory.CROSS_MODULE.value
        and s.parameters
        and "recent_uses" not in s.parameters
    ]
    if routed:
        parts.append(f"Related {', '.join(routed)} task detected; route suggested.")
    return " ".join(parts)
