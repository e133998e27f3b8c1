"""
Centralized decision-policy thresholds.

All tunable numbers for the auto-send controller, trust ledger, classifier and
suggestion ranker. YAML (config/optigence_policy.yaml) is the source of truth;
the constants below keep working when the file is missing.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]

from optigence.observability.logging import get_logger

logger = get_logger(__name__)


def _load_policy_config() -> dict[str, Any]:
    """
    Load configuration from optigence_policy.yaml.

    Side Effects:
        - Reads config/optigence_policy.yaml file from filesystem

    Returns:
        Dict with auto_send, trust, classification, suggestions and personality sections
    """
    possible_paths = [
        Path(__file__).parent.parent.parent / "config" / "optigence_policy.yaml",
        Path(__file__).parent.parent / "config" / "optigence_policy.yaml",
        Path("config/optigence_policy.yaml"),
    ]

    for config_path in possible_paths:
        if config_path.exists():
            with open(config_path) as f:
                config = yaml.safe_load(f) or {}
                logger.debug("Loaded decision policy from %s", config_path)
                return config

    logger.warning("optigence_policy.yaml not found, using hardcoded defaults")
    return {}


_POLICY_CONFIG = _load_policy_config()
_AUTO_SEND_CONFIG = _POLICY_CONFIG.get("auto_send", {})
_TRUST_CONFIG = _POLICY_CONFIG.get("trust", {})
_CLASSIFICATION_CONFIG = _POLICY_CONFIG.get("classification", {})
_SUGGESTION_CONFIG = _POLICY_CONFIG.get("suggestions", {})
_PERSONALITY_CONFIG = _POLICY_CONFIG.get("personality", {})

# ============================================================================
# AUTO-SEND CONTROLLER
# ============================================================================

AUTO_SEND_INITIAL_THRESHOLD = _AUTO_SEND_CONFIG.get("initial_threshold", 0.85)
AUTO_SEND_MIN_THRESHOLD = _AUTO_SEND_CONFIG.get("min_threshold", 0.75)
AUTO_SEND_MAX_THRESHOLD = _AUTO_SEND_CONFIG.get("max_threshold", 0.95)

# successRate < LOW → threshold += RAISE_STEP; successRate > HIGH → threshold -= LOWER_STEP
AUTO_SEND_LOW_SUCCESS_RATE = _AUTO_SEND_CONFIG.get("low_success_rate", 0.80)
AUTO_SEND_RAISE_STEP = _AUTO_SEND_CONFIG.get("raise_step", 0.02)
AUTO_SEND_HIGH_SUCCESS_RATE = _AUTO_SEND_CONFIG.get("high_success_rate", 0.95)
AUTO_SEND_LOWER_STEP = _AUTO_SEND_CONFIG.get("lower_step", 0.01)

TRUST_ADJUSTMENT_FACTOR = _AUTO_SEND_CONFIG.get("trust_adjustment_factor", 0.1)
DECISIVENESS_ADJUSTMENT = _AUTO_SEND_CONFIG.get("decisiveness_adjustment", 0.05)
DEFAULT_CONFIDENCE_AT_SEND = _AUTO_SEND_CONFIG.get("default_confidence_at_send", 0.85)
AUTO_SEND_COUNTDOWN_SECONDS = _AUTO_SEND_CONFIG.get("countdown_seconds", 3)

# ============================================================================
# CONTACT TRUST
# ============================================================================

TRUST_POSITIVE_WEIGHT = _TRUST_CONFIG.get("positive_weight", 0.4)
TRUST_RESPONSE_WEIGHT = _TRUST_CONFIG.get("response_weight", 0.3)
TRUST_FREQUENCY_WEIGHT = _TRUST_CONFIG.get("frequency_weight", 0.3)
TRUST_RESPONSE_CAP_SECONDS = _TRUST_CONFIG.get("response_cap_seconds", 86400)
TRUST_FREQUENCY_DIVISOR = _TRUST_CONFIG.get("frequency_divisor", 100)

# ============================================================================
# INTENT CLASSIFICATION
# ============================================================================

# Provider output is never allowed to claim more certainty than this
LLM_CONFIDENCE_CAP = _CLASSIFICATION_CONFIG.get("llm_confidence_cap", 0.95)
FALLBACK_CONFIDENCE = _CLASSIFICATION_CONFIG.get("fallback_confidence", 0.60)

# ============================================================================
# SUGGESTIONS
# ============================================================================

MAX_SUGGESTIONS = _SUGGESTION_CONFIG.get("max_suggestions", 6)
PERSONALIZED_TRUST_MIN = _SUGGESTION_CONFIG.get("personalized_trust_min", 0.7)
CROSS_MODULE_MIN_SCORE = _SUGGESTION_CONFIG.get("cross_module_min_score", 0.3)
MODULE_HISTORY_WINDOW = _SUGGESTION_CONFIG.get("module_history_window", 10)
MODULE_HISTORY_MIN_USES = _SUGGESTION_CONFIG.get("module_history_min_uses", 2)

# ============================================================================
# PERSONALITY INFERENCE
# ============================================================================

QUICK_RESPONSE_MS = _PERSONALITY_CONFIG.get("quick_response_ms", 5000)
SLOW_RESPONSE_MS = _PERSONALITY_CONFIG.get("slow_response_ms", 30000)
CONCISE_WORDS = _PERSONALITY_CONFIG.get("concise_words", 10)
DETAILED_WORDS = _PERSONALITY_CONFIG.get("detailed_words", 50)


def get_all_thresholds() -> dict[str, Any]:
    """
    Get all thresholds as a dictionary (for API exposure)
    """
    return {
        "auto_send": {
            "initial": AUTO_SEND_INITIAL_THRESHOLD,
            "min": AUTO_SEND_MIN_THRESHOLD,
            "max": AUTO_SEND_MAX_THRESHOLD,
            "low_success_rate": AUTO_SEND_LOW_SUCCESS_RATE,
            "raise_step": AUTO_SEND_RAISE_STEP,
            "high_success_rate": AUTO_SEND_HIGH_SUCCESS_RATE,
            "lower_step": AUTO_SEND_LOWER_STEP,
            "countdown_seconds": AUTO_SEND_COUNTDOWN_SECONDS,
        },
        "trust": {
            "positive_weight": TRUST_POSITIVE_WEIGHT,
            "response_weight": TRUST_RESPONSE_WEIGHT,
            "frequency_weight": TRUST_FREQUENCY_WEIGHT,
        },
        "classification": {
            "llm_confidence_cap": LLM_CONFIDENCE_CAP,
            "fallback_confidence": FALLBACK_CONFIDENCE,
        },
        "suggestions": {
            "max": MAX_SUGGESTIONS,
            "personalized_trust_min": PERSONALIZED_TRUST_MIN,
            "cross_module_min_score": CROSS_MODULE_MIN_SCORE,
            "module_history_window": MODULE_HISTORY_WINDOW,
            "module_history_min_uses": MODULE_HISTORY_MIN_USES,
        },
    }


def validate_thresholds() -> bool:
    """
    Validate that all thresholds are consistent and within valid ranges

    Raises:
        ValueError: If thresholds are inconsistent
    """
    errors = []

    if not (AUTO_SEND_MIN_THRESHOLD <= AUTO_SEND_INITIAL_THRESHOLD <= AUTO_SEND_MAX_THRESHOLD):
        errors.append(
            f"AUTO_SEND_INITIAL_THRESHOLD ({AUTO_SEND_INITIAL_THRESHOLD}) must lie within "
            f"[{AUTO_SEND_MIN_THRESHOLD}, {AUTO_SEND_MAX_THRESHOLD}]"
        )

    if AUTO_SEND_LOW_SUCCESS_RATE >= AUTO_SEND_HIGH_SUCCESS_RATE:
        errors.append(
            f"AUTO_SEND_LOW_SUCCESS_RATE ({AUTO_SEND_LOW_SUCCESS_RATE}) "
            f"must be < AUTO_SEND_HIGH_SUCCESS_RATE ({AUTO_SEND_HIGH_SUCCESS_RATE})"
        )

    all_values = [
        AUTO_SEND_MIN_THRESHOLD,
        AUTO_SEND_MAX_THRESHOLD,
        AUTO_SEND_LOW_SUCCESS_RATE,
        AUTO_SEND_HIGH_SUCCESS_RATE,
        DEFAULT_CONFIDENCE_AT_SEND,
        LLM_CONFIDENCE_CAP,
        FALLBACK_CONFIDENCE,
        PERSONALIZED_TRUST_MIN,
        CROSS_MODULE_MIN_SCORE,
    ]
    for val in all_values:
        if not (0.0 <= val <= 1.0):
            errors.append(f"Threshold {val} is outside valid range [0.0, 1.0]")

    if MAX_SUGGESTIONS < 1:
        errors.append(f"MAX_SUGGESTIONS ({MAX_SUGGESTIONS}) must be at least 1")

    if not (1 <= MODULE_HISTORY_MIN_USES <= MODULE_HISTORY_WINDOW):
        errors.append(
            f"MODULE_HISTORY_MIN_USES ({MODULE_HISTORY_MIN_USES}) must be between 1 "
            f"and MODULE_HISTORY_WINDOW ({MODULE_HISTORY_WINDOW})"
        )

    if errors:
        raise ValueError("Threshold validation failed:\n" + "\n".join(errors))

    return True


try:
    validate_thresholds()
except ValueError as e:
    logger.warning("Decision policy validation failed: %s", e)
