"""
Local pattern tier for intent classification.

Deterministic, dependency-free and always available. Used when the provider is
not configured, its circuit is open, it times out, or it returns something
unusable.
"""

from __future__ import annotations

import re

from optigence.classification.models import ClassificationSource, Intent, IntentClassification
from optigence.runtime.thresholds import FALLBACK_CONFIDENCE

# Evaluation order matters: on equal weight the earlier entry wins.
INTENT_PATTERNS: tuple[tuple[Intent, re.Pattern[str], float], ...] = (
    (Intent.REPLY, re.compile(r"reply|respond|answer|get back|write back|response"), 0.9),
    (
        Intent.SCHEDULE,
        re.compile(
            r"schedule|meeting|calendar|appointment|book|arrange.*meeting|set up.*call"
            r"|available times"
        ),
        0.85,
    ),
    (Intent.SUMMARIZE, re.compile(r"summarize|summary|key points|overview|brief|digest|tldr"), 0.9),
    (
        Intent.TRANSLATE,
        re.compile(r"translate|translation|in (french|spanish|german|chinese|japanese)"),
        0.95,
    ),
    (
        Intent.TRAVEL,
        re.compile(r"travel|trip|flight|hotel|vacation|destination|airport|booking"),
        0.8,
    ),
    (
        Intent.SHOPPING,
        re.compile(r"buy|purchase|product|price|deal|shop|compare.*price|best.*deal"),
        0.8,
    ),
    (
        Intent.HIRING,
        re.compile(r"hire|hiring|candidate|interview|resume|recruit|job (posting|opening|offer)"),
        0.8,
    ),
    (Intent.TEMPLATE, re.compile(r"template|save.*format|reusable|store.*template"), 0.9),
    (Intent.COMPOSE, re.compile(r"write|compose|draft|create.*email|new email"), 0.8),
)


def classify_by_patterns(text: str) -> IntentClassification:
    """
    Classify text against the weighted pattern table.

    The highest-weight match wins; other matched intents are reported as
    secondary. No match → assistance at FALLBACK_CONFIDENCE.
    """
    lowered = (text or "").lower()

    best_intent = Intent.ASSISTANCE
    best_weight = FALLBACK_CONFIDENCE
    best_source: str | None = None
    matched: list[str] = []

    for intent, pattern, weight in INTENT_PATTERNS:
        if not pattern.search(lowered):
            continue
        matched.append(intent.value)
        if weight > best_weight:
            best_intent = intent
            best_weight = weight
            best_source = pattern.pattern

    if best_source is None:
        return IntentClassification(
            intent=Intent.ASSISTANCE.value,
            confidence=FALLBACK_CONFIDENCE,
            secondary=[],
            reasoning="Default classification",
            source=ClassificationSource.PATTERN,
        )

    return IntentClassification(
        intent=best_intent.value,
        confidence=best_weight,
        secondary=[name for name in matched if name != best_intent.value],
        reasoning=f"Pattern match: {best_source} (fallback classification)",
        source=ClassificationSource.PATTERN,
    )


class PatternIntentStrategy:
    """Always-available local tier."""

    name = "pattern"
    remote = False

    def is_available(self, context=None) -> bool:  # noqa: ARG002
        return True

    def classify(
        self, text: str, context=None, timeout: float | None = None  # noqa: ARG002
    ) -> IntentClassification:
        return classify_by_patterns(text)
