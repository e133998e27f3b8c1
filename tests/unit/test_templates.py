"""
Tests for template performance tracking
"""

from __future__ import annotations

import pytest

from optigence.learning.models import TemplatePerformance
from optigence.learning.templates import (
    TemplatePerformanceTracker,
    apply_template_use,
    performance_score,
)


def test_performance_score_formula():
    assert performance_score(1.0, 10) == pytest.approx(1.0)
    assert performance_score(0.5, 5) == pytest.approx(0.35 + 0.15)
    assert performance_score(0.0, 40) == pytest.approx(0.3)


def test_acceptance_is_running_mean():
    template = TemplatePerformance(template_id="t1")
    for outcome in ("success", "modified", "canceled", "success"):
        template = apply_template_use(template, outcome)
    assert template.usage_count == 4
    assert template.acceptance_rate == pytest.approx((1.0 + 0.5 + 0.0 + 1.0) / 4)


def test_modification_patterns_keep_last_ten():
    template = TemplatePerformance(template_id="t1")
    for i in range(12):
        template = apply_template_use(template, "modified", modification=f"edit-{i}")
    assert template.modification_patterns == [f"edit-{i}" for i in range(2, 12)]


def test_unknown_outcome_rejected():
    with pytest.raises(ValueError, match="Unknown template outcome"):
        apply_template_use(TemplatePerformance(template_id="t1"), "ignored")


def test_personalized_templates_filter_and_rank():
    tracker = TemplatePerformanceTracker()
    tracker.record_use("u1", "weak-reply", "canceled", ["reply"])
    tracker.record_use("u1", "strong-reply", "success", ["reply"])
    tracker.record_use("u1", "urgent-any", "modified", ["urgent"])
    tracker.record_use("u1", "travel-only", "success", ["travel"])

    ranked = [t.template_id for t in tracker.personalized_templates("u1", "reply")]
    assert ranked == ["strong-reply", "weak-reply"]

    urgent = tracker.personalized_templates("u1", "reply", urgency="high")
    assert [t.template_id for t in urgent] == ["strong-reply", "urgent-any", "weak-reply"]

    medium = tracker.personalized_templates("u1", "reply", urgency="medium")
    assert "urgent-any" not in [t.template_id for t in medium]


def test_personalized_templates_capped_at_five():
    tracker = TemplatePerformanceTracker()
    for i in range(7):
        tracker.record_use("u1", f"t{i}", "success", ["compose"])
    assert len(tracker.personalized_templates("u1", "compose")) == 5
