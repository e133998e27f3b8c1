"""Optigence - adaptive decision engine for the email, travel, shopping and hiring assistant"""

from __future__ import annotations

__version__ = "0.1.0"


# Lazy imports so lightweight modules can be used without loading the whole engine
def __getattr__(name: str):
    """
    Lazy imports to avoid loading heavy dependencies when only importing lightweight modules.
    """
    if name in ("DecisionEngine", "DecisionRequest", "DecisionResult"):
        from optigence import engine

        return getattr(engine, name)
    if name == "IntentClassifier":
        from optigence.classification.intent_classifier import IntentClassifier

        return IntentClassifier
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
