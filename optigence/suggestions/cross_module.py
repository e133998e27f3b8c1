"""
Cross-Module Router

Scores the request text against one fixed keyword set per product module:

    score = |keywords found in text| / |keyword set|

A routing suggestion is emitted only when score > 0.3, carrying pre-fill hints
(locations/dates, products/prices, companies/skills) and a suggested
sub-action for the receiving module.

History: a module named in at least 2 of the user's last 10 outcomes earns a
"continue" suggestion, unless this request already routes there.
"""

from __future__ import annotations

import re
from collections import Counter
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field

from optigence.runtime.thresholds import (
    CROSS_MODULE_MIN_SCORE,
    MODULE_HISTORY_MIN_USES,
    MODULE_HISTORY_WINDOW,
)
from optigence.suggestions import extractors
from optigence.suggestions.models import ActionSuggestion, SuggestionCategory

# Matched as substrings of the lower-cased text; "none" never routes
MODULE_KEYWORDS: dict[str, tuple[str, ...]] = {
    "travel": (
        "travel",
        "trip",
        "flight",
        "hotel",
        "vacation",
        "airport",
        "itinerary",
        "booking",
        "destination",
    ),
    "shopping": (
        "buy",
        "purchase",
        "product",
        "price",
        "deal",
        "shop",
        "order",
        "compare",
        "discount",
    ),
    "hiring": (
        "hire",
        "hiring",
        "candidate",
        "interview",
        "resume",
        "job",
        "position",
        "recruiter",
        "salary",
    ),
    "none": (),
}

MODULE_LABELS = {
    "travel": "Open in Travel",
    "shopping": "Open in Shopping",
    "hiring": "Open in Hiring",
}

# (label, reason) for modules the user keeps coming back to
MODULE_CONTINUATIONS = {
    "travel": ("Check your upcoming travel itinerary", "You've been planning travel recently"),
    "shopping": ("Track your recent orders and deliveries", "You've been shopping frequently"),
    "hiring": ("Update your job application status", "You've been job hunting actively"),
}

# (pattern, sub-action, description) per module; first match wins, last entry is the default
_ACTION_RULES: dict[str, tuple[tuple[re.Pattern[str] | None, str, str], ...]] = {
    "travel": (
        (re.compile(r"book|reserve|purchase", re.I), "book", "Book flight or accommodation"),
        (re.compile(r"plan|itinerary|schedule", re.I), "plan", "Create travel itinerary"),
        (re.compile(r"price|cost|budget", re.I), "price", "Compare travel prices"),
        (None, "explore", "Explore travel options"),
    ),
    "shopping": (
        (re.compile(r"buy|purchase|order", re.I), "buy", "Find and purchase products"),
        (re.compile(r"compare|price|deal", re.I), "compare", "Compare prices and deals"),
        (re.compile(r"review|rating", re.I), "review", "Check product reviews"),
        (None, "discover", "Discover products"),
    ),
    "hiring": (
        (re.compile(r"apply|application", re.I), "apply", "Apply for positions"),
        (re.compile(r"interview|schedule", re.I), "interview", "Schedule interviews"),
        (re.compile(r"resume|\bcv\b|portfolio", re.I), "resume", "Update resume/portfolio"),
        (None, "find", "Find job opportunities"),
    ),
}

_HINT_EXTRACTORS: dict[str, tuple[tuple[str, Callable[[str], list[str]]], ...]] = {
    "travel": (("locations", extractors.extract_locations), ("dates", extractors.extract_dates)),
    "shopping": (("products", extractors.extract_products), ("prices", extractors.extract_prices)),
    "hiring": (("companies", extractors.extract_companies), ("skills", extractors.extract_skills)),
}


def keyword_score(text: str, keywords: tuple[str, ...]) -> float:
    if not keywords:
        return 0.0
    lowered = text.lower()
    return sum(1 for keyword in keywords if keyword in lowered) / len(keywords)


def detect_action(module: str, text: str) -> tuple[str, str]:
    for pattern, action, description in _ACTION_RULES.get(module, ()):
        if pattern is None or pattern.search(text):
            return action, description
    return "explore", "Explore options"


@dataclass
class ModuleRoute:
    module: str
    score: float
    action: str
    description: str
    hints: dict[str, list[str]] = field(default_factory=dict)


class CrossModuleRouter:
    def __init__(
        self,
        keyword_sets: Mapping[str, tuple[str, ...]] | None = None,
        min_score: float = CROSS_MODULE_MIN_SCORE,
    ):
        self.keyword_sets = dict(keyword_sets or MODULE_KEYWORDS)
        self.min_score = min_score

    def analyze(self, text: str, long_context: str | None = None) -> list[ModuleRoute]:
        """Modules whose keyword score clears the threshold, best first."""
        combined = f"{text} {long_context or ''}".strip()
        routes: list[ModuleRoute] = []

        for module, keywords in self.keyword_sets.items():
            score = keyword_score(combined, keywords)
            if score <= self.min_score:
                continue
            action, description = detect_action(module, combined)
            hints = {name: extract(combined) for name, extract in _HINT_EXTRACTORS.get(module, ())}
            routes.append(ModuleRoute(module, score, action, description, hints))

        routes.sort(key=lambda route: (-route.score, route.module))
        return routes

    def route(self, text: str, long_context: str | None = None) -> list[ActionSuggestion]:
        """Routing suggestions (category cross_module) for every qualifying module."""
        return [
            ActionSuggestion(
                id=f"route_{route.module}",
                label=MODULE_LABELS.get(route.module, f"Open in {route.module.title()}"),
                category=SuggestionCategory.CROSS_MODULE,
                confidence=route.score,
                action=f"route_to_{route.module}",
                description=route.description,
                parameters={
                    "module": route.module,
                    "suggested_action": route.action,
                    "score": round(route.score, 4),
                    **route.hints,
                },
                requires_confirmation=True,
            )
            for route in self.analyze(text, long_context)
        ]

    def history_suggestions(
        self,
        recent_modules: Sequence[str],
        exclude: Sequence[str] = (),
    ) -> list[ActionSuggestion]:
        """
        "Continue in module" suggestions from recent usage.

        Args:
            recent_modules: Module named by each recent outcome, oldest first
            exclude: Modules this request already routes to

        Returns:
            One suggestion per module used at least MODULE_HISTORY_MIN_USES
            times in the last MODULE_HISTORY_WINDOW entries; confidence is the
            module's share of that window.
        """
        window = list(recent_modules)[-MODULE_HISTORY_WINDOW:]
        uses = Counter(window)
        suggestions: list[ActionSuggestion] = []

        for module, (label, reason) in MODULE_CONTINUATIONS.items():
            if module in exclude or uses[module] < MODULE_HISTORY_MIN_USES:
                continue
            suggestions.append(
                ActionSuggestion(
                    id=f"continue_{module}",
                    label=label,
                    category=SuggestionCategory.CROSS_MODULE,
                    confidence=uses[module] / MODULE_HISTORY_WINDOW,
                    action=f"route_to_{module}",
                    description=reason,
                    parameters={"module": module, "recent_uses": uses[module]},
                    requires_confirmation=True,
                )
            )
        return suggestions
