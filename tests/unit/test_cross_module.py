"""
Tests for cross-module routing
"""

from __future__ import annotations

import pytest

from optigence.suggestions.cross_module import (
    MODULE_KEYWORDS,
    CrossModuleRouter,
    detect_action,
    keyword_score,
)


def test_keyword_sets_are_nine_words():
    for module in ("travel", "shopping", "hiring"):
        assert len(MODULE_KEYWORDS[module]) == 9
    assert MODULE_KEYWORDS["none"] == ()


def test_three_of_nine_routes():
    """flight + hotel + vacation = 3/9 ≈ 0.333 > 0.3."""
    suggestions = CrossModuleRouter().route("Book a flight and hotel for our vacation")

    assert len(suggestions) == 1
    route = suggestions[0]
    assert route.id == "route_travel"
    assert route.action == "route_to_travel"
    assert route.category == "cross_module"
    assert route.parameters["module"] == "travel"
    assert route.parameters["suggested_action"] == "book"
    assert route.parameters["score"] == pytest.approx(0.3333, abs=1e-4)


def test_one_of_nine_does_not_route():
    assert CrossModuleRouter().route("The hotel was lovely") == []


def test_long_context_counts_toward_score():
    router = CrossModuleRouter()
    assert router.route("What do you think?") == []
    routed = router.route(
        "What do you think?", long_context="We should interview the candidate and check her resume"
    )
    assert [s.id for s in routed] == ["route_hiring"]


def test_keyword_score_empty_set():
    assert keyword_score("anything at all", ()) == 0.0


def test_detect_action_defaults():
    assert detect_action("shopping", "show me things") == ("discover", "Discover products")
    assert detect_action("hiring", "please apply here")[0] == "apply"


def test_custom_keyword_sets():
    router = CrossModuleRouter(keyword_sets={"travel": ("beach", "sun")}, min_score=0.3)
    assert [s.id for s in router.route("beach day")] == ["route_travel"]


def test_module_used_twice_in_window_earns_continue_suggestion():
    suggestions = CrossModuleRouter().history_suggestions(
        ["hiring", "travel", "hiring", "shopping"]
    )

    assert [s.id for s in suggestions] == ["continue_hiring"]
    continue_hiring = suggestions[0]
    assert continue_hiring.category == "cross_module"
    assert continue_hiring.action == "route_to_hiring"
    assert continue_hiring.description == "You've been job hunting actively"
    assert continue_hiring.parameters == {"module": "hiring", "recent_uses": 2}
    assert continue_hiring.confidence == pytest.approx(0.2)


def test_only_last_ten_entries_count():
    # The two travel uses fall outside the ten most recent entries
    history = ["travel", "travel"] + ["shopping"] + ["hiring"] * 9
    ids = [s.id for s in CrossModuleRouter().history_suggestions(history)]
    assert ids == ["continue_hiring"]


def test_history_skips_modules_already_routed():
    router = CrossModuleRouter()
    history = ["travel", "travel", "shopping", "shopping"]

    ids = [s.id for s in router.history_suggestions(history, exclude=["travel"])]

    assert ids == ["continue_shopping"]
    assert router.history_suggestions([]) == []
