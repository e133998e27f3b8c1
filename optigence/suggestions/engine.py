"""
Suggestion Engine

Fans the four generators out over a thread pool, waits up to the caller's
budget, then merges whatever finished in canonical order. A generator that
raises or is still running when the budget runs out contributes nothing; the
request still succeeds.

The generators are local and pure, so a spent caller deadline never empties
the result: collection always gets SUGGESTION_MIN_BUDGET_SECONDS, a generator
that never got a worker runs inline, and an empty merge becomes the fallback
set for the intent.
"""

from __future__ import annotations

import concurrent.futures
from collections.abc import Callable, Mapping
from functools import partial

from optigence.config import (
    SUGGESTION_MAX_WORKERS,
    SUGGESTION_MIN_BUDGET_SECONDS,
    SUGGESTION_TIMEOUT_SECONDS,
)
from optigence.observability.logging import get_logger
from optigence.observability.telemetry import counter, time_block
from optigence.suggestions.generators import default_generators
from optigence.suggestions.models import (
    ActionSuggestion,
    SignalSource,
    SuggestionContext,
    SuggestionResult,
)
from optigence.suggestions.ranker import (
    build_reasoning,
    contextual_hints,
    fallback_suggestions,
    merge,
    pick_primary,
)

logger = get_logger(__name__)

Generator = Callable[[SuggestionContext], list[ActionSuggestion]]


class SuggestionEngine:
    """Runs suggestion generators concurrently and ranks their combined output."""

    def __init__(
        self,
        generators: Mapping[SignalSource, Generator] | None = None,
        max_workers: int = SUGGESTION_MAX_WORKERS,
    ) -> None:
        self.generators = dict(generators) if generators is not None else default_generators()
        self._executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="optigence-suggest"
        )

    def generate(
        self, context: SuggestionContext, deadline: float | None = None
    ) -> SuggestionResult:
        """
        Produce ranked suggestions for a resolved intent.

        Args:
            context: Frozen request context shared by all generators
            deadline: Seconds left on the caller deadline. Defaults to
                SUGGESTION_TIMEOUT_SECONDS; never below SUGGESTION_MIN_BUDGET_SECONDS.

        Returns:
            SuggestionResult. Never raises: if the pipeline itself fails the
            fallback set is returned with degraded=True.

        Side Effects:
            - Submits work to the engine's thread pool
            - Increments suggestions.* telemetry counters
        """
        if deadline is None:
            budget = SUGGESTION_TIMEOUT_SECONDS
        else:
            budget = max(deadline, SUGGESTION_MIN_BUDGET_SECONDS)
        try:
            with time_block("suggestions.generate"):
                outputs, failed = self._run_generators(context, budget)
            suggestions = merge(outputs)
            degraded = bool(failed)
            if not suggestions:
                counter("suggestions.empty_fallback")
                suggestions = fallback_suggestions(context.intent)
                degraded = True
            return SuggestionResult(
                suggestions=suggestions,
                primary_action=pick_primary(suggestions),
                contextual_hints=contextual_hints(context),
                reasoning=build_reasoning(context, suggestions),
                degraded=degraded,
            )
        except Exception as exc:
            counter("suggestions.pipeline_failure")
            logger.error("Suggestion pipeline failed: %s", exc, exc_info=True)
            fallback = fallback_suggestions(context.intent)
            return SuggestionResult(
                suggestions=fallback,
                primary_action=fallback[0],
                reasoning="Suggestion pipeline unavailable; showing defaults.",
                degraded=True,
            )

    def _run_generators(
        self, context: SuggestionContext, budget: float
    ) -> tuple[dict[SignalSource, list[ActionSuggestion]], list[SignalSource]]:
        futures = {
            self._executor.submit(generator, context): source
            for source, generator in self.generators.items()
        }
        done, not_done = concurrent.futures.wait(futures, timeout=budget)

        outputs: dict[SignalSource, list[ActionSuggestion]] = {}
        failed: list[SignalSource] = []

        inline: list[SignalSource] = []
        for future in not_done:
            source = futures[future]
            if future.cancel():
                # Never picked up by a worker
                inline.append(source)
                continue
            failed.append(source)
            counter(f"suggestions.generator_timeout.{source.value}")
            logger.warning("Suggestion generator %s exceeded %.2fs", source.value, budget)

        for future in done:
            self._collect(futures[future], future.result, outputs, failed)

        for source in inline:
            counter(f"suggestions.generator_inline.{source.value}")
            self._collect(source, partial(self.generators[source], context), outputs, failed)

        return outputs, failed

    @staticmethod
    def _collect(
        source: SignalSource,
        produce: Callable[[], list[ActionSuggestion]],
        outputs: dict[SignalSource, list[ActionSuggestion]],
        failed: list[SignalSource],
    ) -> None:
        try:
            outputs[source] = list(produce())
        except Exception as exc:
            failed.append(source)
            counter(f"suggestions.generator_error.{source.value}")
            logger.warning("Suggestion generator %s failed: %s", source.value, exc)

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)
