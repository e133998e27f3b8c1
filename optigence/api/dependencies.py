"""
Service providers for route handlers.

Each provider builds one stateless service per process. Services hold
repositories, not user data; every request reads state from SQLite.
Tests replace them through app.dependency_overrides.
"""

from __future__ import annotations

from functools import lru_cache

from optigence.classification.intent_classifier import IntentClassifier
from optigence.engine import DecisionEngine
from optigence.learning.autosend import AutoSendController
from optigence.learning.memory_updates import MemoryUpdateService
from optigence.learning.outcomes import InteractionOutcomeLogger
from optigence.learning.personality import PersonalityStore
from optigence.learning.templates import TemplatePerformanceTracker
from optigence.learning.threads import ThreadMemoryStore
from optigence.learning.trust import ContactTrustLedger


@lru_cache
def get_classifier() -> IntentClassifier:
    return IntentClassifier()


@lru_cache
def get_decision_engine() -> DecisionEngine:
    return DecisionEngine(classifier=get_classifier(), outcomes=get_outcome_logger())


@lru_cache
def get_outcome_logger() -> InteractionOutcomeLogger:
    return InteractionOutcomeLogger()


@lru_cache
def get_trust_ledger() -> ContactTrustLedger:
    return ContactTrustLedger()


@lru_cache
def get_autosend_controller() -> AutoSendController:
    return AutoSendController()


@lru_cache
def get_personality_store() -> PersonalityStore:
    return PersonalityStore()


@lru_cache
def get_template_tracker() -> TemplatePerformanceTracker:
    return TemplatePerformanceTracker()


@lru_cache
def get_memory_service() -> MemoryUpdateService:
    return MemoryUpdateService()


@lru_cache
def get_thread_store() -> ThreadMemoryStore:
    return ThreadMemoryStore()
