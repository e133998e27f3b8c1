"""
Gemini tier for intent classification.

Sends the user text (plus optional email/preference context) with a constrained
prompt and a fixed JSON shape. Anything unusable - provider errors, timeouts,
malformed JSON, an intent label outside the known set - raises, and the
orchestrator moves on to the pattern tier.
"""

from __future__ import annotations

import concurrent.futures
import json
import os
import re

from pydantic import BaseModel, Field, ValidationError

from optigence.classification.models import (
    KNOWN_INTENTS,
    ClassificationSource,
    IntentClassification,
    IntentContext,
)
from optigence.config import CIRCUIT_FAIL_MAX, CIRCUIT_RESET_SECONDS, LLM_TIMEOUT_SECONDS
from optigence.infrastructure.llm_budget import check_budget, record_llm_call
from optigence.infrastructure.retry import CircuitBreaker
from optigence.llm.gemini import is_configured
from optigence.observability.logging import get_logger
from optigence.observability.telemetry import counter
from optigence.runtime.thresholds import LLM_CONFIDENCE_CAP

logger = get_logger(__name__)


def _use_llm() -> bool:
    """Check the LLM feature flag at call time (not import time)."""
    return os.getenv("OPTIGENCE_USE_LLM", "false").lower() == "true"


class IntentResponseSchema(BaseModel):
    """Schema for LLM response validation (confidence is clamped afterwards, not rejected)."""

    intent: str
    confidence: float
    secondary: list[str] = Field(default_factory=list)
    reasoning: str = ""


INTENT_SYSTEM_INSTRUCTION = """You classify what a user wants from an email assistant.

Valid intents:
- reply: respond to an email
- compose: write a new email
- summarize: summarize an email or thread
- translate: translate text to another language
- schedule: meetings, calendar, appointments
- template: save or reuse a message format
- travel: flights, hotels, trips
- shopping: products, prices, purchases
- hiring: candidates, interviews, job postings
- assistance: anything else

Respond with JSON only:
{"intent": "<intent>", "confidence": <0.0-1.0>,
 "secondary": ["<intent>", ...], "reasoning": "<one sentence>"}"""


class LLMIntentError(RuntimeError):
    """Provider output could not be turned into a classification."""


class GeminiIntentStrategy:
    """Provider tier guarded by a feature flag, credentials, a circuit breaker and a budget."""

    name = "llm"
    remote = True

    PROMPT_TEMPLATE = """User request: {text}
{context_block}"""

    def __init__(
        self,
        call_fn=None,
        breaker: CircuitBreaker | None = None,
        max_workers: int = 4,
    ):
        """
        Args:
            call_fn: Callable(prompt, system_instruction) -> str; defaults to call_llm
            breaker: Circuit breaker shared by calls through this strategy
            max_workers: Threads available for in-flight provider calls
        """
        self._call_fn = call_fn
        self.breaker = breaker or CircuitBreaker(
            stage="intent.llm",
            fail_max=CIRCUIT_FAIL_MAX,
            reset_timeout=CIRCUIT_RESET_SECONDS,
        )
        self._executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="intent-llm"
        )

    def is_available(self, context: IntentContext | None = None) -> bool:
        if not _use_llm():
            return False
        if self._call_fn is None and not is_configured():
            return False
        if not self.breaker.allow_request():
            return False
        user_id = context.user_id if context else "anonymous"
        budget = check_budget(user_id)
        if not budget.is_allowed:
            counter("intent.llm.budget_exceeded")
            logger.warning("LLM budget exhausted: %s", budget.reason)
            return False
        return True

    def classify(
        self,
        text: str,
        context: IntentContext | None = None,
        timeout: float | None = None,
    ) -> IntentClassification:
        """
        Classify via Gemini within `timeout` seconds.

        Raises:
            TimeoutError: Provider did not answer in time
            LLMIntentError: Output malformed or outside the known intent set
            Exception: Provider errors propagate to the orchestrator
        """
        prompt = self._build_prompt(text, context)
        user_id = context.user_id if context else "anonymous"
        timeout_seconds = LLM_TIMEOUT_SECONDS
        if timeout is not None:
            timeout_seconds = min(timeout, LLM_TIMEOUT_SECONDS)

        record_llm_call(user_id, call_type="intent")
        future = self._executor.submit(self._call, prompt)
        try:
            response_text = future.result(timeout=timeout_seconds)
        except concurrent.futures.TimeoutError:
            future.cancel()
            self.breaker.record_failure()
            counter("intent.llm.timeout")
            raise TimeoutError(f"Intent LLM call timed out after {timeout_seconds:.2f}s") from None
        except Exception:
            self.breaker.record_failure()
            raise

        try:
            result = self._parse_response(response_text)
        except LLMIntentError:
            self.breaker.record_failure()
            raise

        self.breaker.record_success()
        counter("intent.llm.success")
        return result

    def _call(self, prompt: str) -> str:
        if self._call_fn is not None:
            return self._call_fn(prompt, INTENT_SYSTEM_INSTRUCTION)

        from optigence.llm.retry import call_llm

        return call_llm(
            prompt,
            counter_prefix="intent",
            system_instruction=INTENT_SYSTEM_INSTRUCTION,
            json_output=True,
        )

    def _build_prompt(self, text: str, context: IntentContext | None) -> str:
        lines: list[str] = []
        if context is not None:
            if context.has_email():
                lines.append("Email context:")
                if context.email_subject:
                    lines.append(f"Subject: {context.email_subject[:200]}")
                if context.email_sender:
                    lines.append(f"From: {context.email_sender[:100]}")
                if context.email_snippet:
                    lines.append(f"Content: {context.email_snippet[:500]}")
            if context.preferred_tone or context.preferred_language:
                lines.append(
                    "User preferences: "
                    f"tone={context.preferred_tone or 'unspecified'}, "
                    f"language={context.preferred_language or 'unspecified'}"
                )
        return self.PROMPT_TEMPLATE.format(text=text[:2000], context_block="\n".join(lines)).strip()

    def _parse_response(self, response_text: str) -> IntentClassification:
        """Parse provider JSON into an IntentClassification (confidence capped)."""
        json_text = (response_text or "").strip()
        if json_text.startswith("```"):
            counter("intent.llm.code_fence")
            json_text = re.sub(r"^```(?:json)?\n?", "", json_text)
            json_text = re.sub(r"\n?```$", "", json_text)

        try:
            data = json.loads(json_text)
            validated = IntentResponseSchema.model_validate(data)
        except (json.JSONDecodeError, ValidationError, TypeError) as e:
            counter("intent.llm.parse_error")
            raise LLMIntentError(f"Malformed intent response: {e}") from e

        intent = validated.intent.strip().lower()
        if intent not in KNOWN_INTENTS:
            counter("intent.llm.unknown_label")
            raise LLMIntentError(f"Unknown intent label: {validated.intent!r}")

        secondary = [
            label.strip().lower()
            for label in validated.secondary
            if label.strip().lower() in KNOWN_INTENTS and label.strip().lower() != intent
        ]

        return IntentClassification(
            intent=intent,
            confidence=min(max(validated.confidence, 0.0), LLM_CONFIDENCE_CAP),
            secondary=secondary,
            reasoning=validated.reasoning or "LLM classification",
            source=ClassificationSource.LLM,
        )

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)
