"""
Personality profile inference.

Traits are nudged one interaction at a time and never replaced wholesale:

    latency     < 5s  → response_speed = immediate,  > 30s → thoughtful
    word count  < 10  → writing_style  = concise,    > 50  → detailed
    auto-send canceled/regretted → decision_making = deliberate
    accepted in under 5s         → decision_making = quick
"""

from __future__ import annotations

from optigence.learning.models import (
    DecisionMaking,
    InteractionOutcome,
    InteractionType,
    OutcomeKind,
    PersonalityProfile,
    ResponseSpeed,
    WritingStyle,
    evolve,
    utc_now,
)
from optigence.runtime.thresholds import (
    CONCISE_WORDS,
    DETAILED_WORDS,
    QUICK_RESPONSE_MS,
    SLOW_RESPONSE_MS,
)
from optigence.storage.repository import RecordRepository

PROFILE_KIND = "personality"
PROFILE_KEY = "profile"


def infer_profile(profile: PersonalityProfile, outcome: InteractionOutcome) -> PersonalityProfile:
    """Apply one outcome to a profile (pure)."""
    changes: dict = {
        "interactions_observed": profile.interactions_observed + 1,
        "updated_at": utc_now(),
    }

    if outcome.timing_ms < QUICK_RESPONSE_MS:
        changes["response_speed"] = ResponseSpeed.IMMEDIATE
    elif outcome.timing_ms > SLOW_RESPONSE_MS:
        changes["response_speed"] = ResponseSpeed.THOUGHTFUL

    # Events without text say nothing about verbosity
    if outcome.content.strip():
        words = outcome.word_count
        if words < CONCISE_WORDS:
            changes["writing_style"] = WritingStyle.CONCISE
        elif words > DETAILED_WORDS:
            changes["writing_style"] = WritingStyle.DETAILED

    if outcome.type == InteractionType.AUTO_SEND and outcome.outcome in (
        OutcomeKind.CANCELED,
        OutcomeKind.REGRETTED,
    ):
        changes["decision_making"] = DecisionMaking.DELIBERATE
    elif outcome.outcome == OutcomeKind.SUCCESS and outcome.timing_ms < QUICK_RESPONSE_MS:
        changes["decision_making"] = DecisionMaking.QUICK

    return evolve(profile, **changes)


class PersonalityStore:
    """Loads and incrementally updates a user's PersonalityProfile."""

    def __init__(self, repository: RecordRepository[PersonalityProfile] | None = None):
        self.repository = repository or RecordRepository(PROFILE_KIND, PersonalityProfile)

    def get_profile(self, user_id: str) -> PersonalityProfile:
        """Stored profile, or defaults when the user has none yet."""
        return self.repository.load(user_id, PROFILE_KEY) or PersonalityProfile()

    def apply_outcome(self, user_id: str, outcome: InteractionOutcome) -> PersonalityProfile:
        return self.repository.mutate(
            user_id,
            PROFILE_KEY,
            lambda current: infer_profile(current or PersonalityProfile(), outcome),
        )
