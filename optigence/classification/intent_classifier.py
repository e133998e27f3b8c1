"""
Intent classifier: ordered strategy chain.

Tier 1: Gemini (only when enabled, configured, circuit closed and within budget)
Tier 2: weighted pattern table (always available)

classify() never raises. Every tier failure is logged and counted, and the
next tier answers; if even the pattern tier fails the caller gets the default
assistance classification.
"""

from __future__ import annotations

import time

from optigence.classification.llm_intent import GeminiIntentStrategy
from optigence.classification.models import (
    ClassificationSource,
    Intent,
    IntentClassification,
    IntentContext,
)
from optigence.classification.patterns import PatternIntentStrategy
from optigence.observability.logging import get_logger
from optigence.observability.telemetry import counter, log_event, time_block
from optigence.runtime.thresholds import FALLBACK_CONFIDENCE

logger = get_logger(__name__)

# Below this many seconds of remaining deadline the provider tier is skipped
MIN_PROVIDER_BUDGET_SECONDS = 0.05


def default_classification(reason: str = "Default classification") -> IntentClassification:
    return IntentClassification(
        intent=Intent.ASSISTANCE.value,
        confidence=FALLBACK_CONFIDENCE,
        secondary=[],
        reasoning=reason,
        source=ClassificationSource.DEFAULT,
    )


class IntentClassifier:
    """Runs classification strategies in order until one succeeds."""

    def __init__(self, strategies: list | None = None):
        self.strategies = strategies if strategies is not None else [
            GeminiIntentStrategy(),
            PatternIntentStrategy(),
        ]

    def classify(
        self,
        text: str,
        context: IntentContext | None = None,
        timeout: float | None = None,
    ) -> IntentClassification:
        """
        Classify user text into an intent + confidence.

        Args:
            text: Raw user input
            context: Optional email / preference context
            timeout: Seconds left on the caller's deadline (None = no deadline)

        Returns:
            IntentClassification with confidence in [0, 1]

        Side Effects:
            - May call the Gemini API
            - Increments intent.* telemetry counters
        """
        started = time.monotonic()
        text = text or ""

        with time_block("intent.classify.latency"):
            for strategy in self.strategies:
                remaining = None if timeout is None else timeout - (time.monotonic() - started)
                out_of_time = remaining is not None and remaining < MIN_PROVIDER_BUDGET_SECONDS
                if strategy.remote and out_of_time:
                    counter("intent.deadline_skip")
                    logger.info("Skipping %s tier: deadline expired", strategy.name)
                    continue

                try:
                    if not strategy.is_available(context):
                        continue
                    result = strategy.classify(text, context, timeout=remaining)
                except Exception as e:
                    counter("intent.fallback")
                    logger.warning("Intent tier %s failed, falling back: %s", strategy.name, e)
                    log_event("intent.tier_failed", tier=strategy.name, error=str(e)[:200])
                    continue

                counter(f"intent.tier.{strategy.name}")
                return result

        counter("intent.default")
        logger.error("All intent tiers failed; returning default classification")
        return default_classification()
