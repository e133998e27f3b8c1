"""
Template performance tracking.

    acceptance_rate   = running mean of outcome values
                        (success 1.0, modified 0.5, canceled/regretted 0.0)
    performance_score = acceptance_rate * 0.7 + min(usage_count / 10, 1) * 0.3
"""

from __future__ import annotations

from collections.abc import Sequence

from optigence.learning.models import OutcomeKind, TemplatePerformance, evolve, utc_now
from optigence.observability.logging import get_logger
from optigence.storage.repository import RecordRepository

logger = get_logger(__name__)

TEMPLATE_KIND = "template_performance"

OUTCOME_VALUES = {
    OutcomeKind.SUCCESS.value: 1.0,
    OutcomeKind.MODIFIED.value: 0.5,
    OutcomeKind.CANCELED.value: 0.0,
    OutcomeKind.REGRETTED.value: 0.0,
}
MAX_MODIFICATION_PATTERNS = 10
MAX_PERSONALIZED_TEMPLATES = 5


def performance_score(acceptance_rate: float, usage_count: int) -> float:
    return acceptance_rate * 0.7 + min(usage_count / 10, 1.0) * 0.3


def apply_template_use(
    template: TemplatePerformance,
    outcome: str,
    contexts: Sequence[str] = (),
    modification: str | None = None,
) -> TemplatePerformance:
    """Fold one use into a template's stats (pure).

    Raises:
        ValueError: Unknown outcome kind
    """
    outcome_value = outcome.value if isinstance(outcome, OutcomeKind) else str(outcome)
    if outcome_value not in OUTCOME_VALUES:
        raise ValueError(f"Unknown template outcome: {outcome!r}")

    usage = template.usage_count + 1
    acceptance = template.acceptance_rate + (
        OUTCOME_VALUES[outcome_value] - template.acceptance_rate
    ) / usage

    merged_contexts = list(template.contexts)
    for context in contexts:
        if context and context not in merged_contexts:
            merged_contexts.append(context)

    patterns = list(template.modification_patterns)
    if outcome_value == OutcomeKind.MODIFIED.value and modification:
        patterns = (patterns + [modification])[-MAX_MODIFICATION_PATTERNS:]

    return evolve(
        template,
        usage_count=usage,
        acceptance_rate=acceptance,
        performance_score=performance_score(acceptance, usage),
        contexts=merged_contexts,
        modification_patterns=patterns,
        last_used=utc_now(),
    )


class TemplatePerformanceTracker:
    def __init__(self, repository: RecordRepository[TemplatePerformance] | None = None):
        self.repository = repository or RecordRepository(TEMPLATE_KIND, TemplatePerformance)

    def record_use(
        self,
        user_id: str,
        template_id: str,
        outcome: str,
        contexts: Sequence[str] = (),
        modification: str | None = None,
    ) -> TemplatePerformance:
        """
        Side Effects:
            - Upserts learning_records (kind=template_performance)
        """
        return self.repository.mutate(
            user_id,
            template_id,
            lambda current: apply_template_use(
                current or TemplatePerformance(template_id=template_id),
                outcome,
                contexts,
                modification,
            ),
        )

    def get(self, user_id: str, template_id: str) -> TemplatePerformance | None:
        return self.repository.load(user_id, template_id)

    def personalized_templates(
        self, user_id: str, intent: str, urgency: str = "low"
    ) -> list[TemplatePerformance]:
        """
        Best templates for this intent, highest score first, at most 5.

        Templates tagged "urgent" qualify only for high-urgency requests.
        """
        include_urgent = urgency == "high"
        matching = [
            template
            for template in self.repository.list_for_user(user_id)
            if intent in template.contexts
            or (include_urgent and "urgent" in template.contexts)
        ]
        matching.sort(key=lambda template: (-template.performance_score, template.template_id))
        return matching[:MAX_PERSONALIZED_TEMPLATES]
