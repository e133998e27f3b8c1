"""
Explicit memory updates.

Each kind of update is its own model, tagged by `update_type`; MemoryUpdate is
the discriminated union accepted by the API. MemoryUpdateService.apply()
dispatches on the concrete type and raises UnsupportedUpdateError for anything
it has no handler for.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from optigence.errors import UnsupportedUpdateError
from optigence.learning.models import (
    ContactTrustRecord,
    OutcomeKind,
    TimeWindow,
    Tone,
    UserPreferences,
    evolve,
    utc_now,
)
from optigence.learning.templates import TemplatePerformanceTracker
from optigence.learning.trust import ContactTrustLedger, normalize_contact
from optigence.observability.logging import get_logger
from optigence.observability.telemetry import counter, log_event
from optigence.storage.repository import RecordRepository

logger = get_logger(__name__)

PREFERENCES_KIND = "preferences"
PREFERENCES_KEY = "preferences"


class UpdateSource(str, Enum):
    USER_EXPLICIT = "user_explicit"
    USER_IMPLICIT = "user_implicit"
    AI_INFERENCE = "ai_inference"


class _BaseUpdate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    source: UpdateSource = UpdateSource.USER_EXPLICIT


class ContactTrustUpdate(_BaseUpdate):
    update_type: Literal["contact_trust"] = "contact_trust"
    contact_email: str = Field(..., min_length=3)
    trust_level: float = Field(..., ge=0.0, le=1.0)


class TonePreferenceUpdate(_BaseUpdate):
    update_type: Literal["tone_preference"] = "tone_preference"
    tone: Tone
    contact_email: str | None = None


class TimeWindowsUpdate(_BaseUpdate):
    update_type: Literal["time_windows"] = "time_windows"
    windows: list[TimeWindow] = Field(..., min_length=1)


class LanguagePreferenceUpdate(_BaseUpdate):
    update_type: Literal["language_preference"] = "language_preference"
    language: str = Field(..., min_length=2, max_length=16)


class SignatureUpdate(_BaseUpdate):
    update_type: Literal["signature_update"] = "signature_update"
    signature: str = Field(..., max_length=2000)


class TemplateUsageUpdate(_BaseUpdate):
    update_type: Literal["template_usage"] = "template_usage"
    template_id: str = Field(..., min_length=1)
    outcome: OutcomeKind
    contexts: list[str] = Field(default_factory=list)


MemoryUpdate = Annotated[
    ContactTrustUpdate
    | TonePreferenceUpdate
    | TimeWindowsUpdate
    | LanguagePreferenceUpdate
    | SignatureUpdate
    | TemplateUsageUpdate,
    Field(discriminator="update_type"),
]

_MEMORY_UPDATE_ADAPTER: TypeAdapter[MemoryUpdate] = TypeAdapter(MemoryUpdate)


def parse_memory_update(payload: dict[str, Any]) -> BaseModel:
    """
    Validate a raw update payload into its tagged variant.

    Raises:
        UnsupportedUpdateError: update_type missing or not a known kind
        ValidationError: Known kind with invalid fields
    """
    try:
        return _MEMORY_UPDATE_ADAPTER.validate_python(payload)
    except ValidationError as e:
        if any(err["type"] in ("union_tag_invalid", "union_tag_not_found") for err in e.errors()):
            kind = payload.get("update_type") if isinstance(payload, dict) else None
            raise UnsupportedUpdateError(f"Unsupported memory update kind: {kind}") from e
        raise


class PreferenceStore:
    def __init__(self, repository: RecordRepository[UserPreferences] | None = None):
        self.repository = repository or RecordRepository(PREFERENCES_KIND, UserPreferences)

    def get(self, user_id: str) -> UserPreferences:
        return self.repository.load(user_id, PREFERENCES_KEY) or UserPreferences()

    def change(self, user_id: str, **changes: Any) -> UserPreferences:
        return self.repository.mutate(
            user_id,
            PREFERENCES_KEY,
            lambda current: evolve(current or UserPreferences(), updated_at=utc_now(), **changes),
        )

    def set_contact_tone(self, user_id: str, contact_email: str, tone: str) -> UserPreferences:
        key = normalize_contact(contact_email)

        def apply(current: UserPreferences | None) -> UserPreferences:
            current = current or UserPreferences()
            tones = dict(current.contact_tones)
            tones[key] = tone
            return evolve(current, contact_tones=tones, updated_at=utc_now())

        return self.repository.mutate(user_id, PREFERENCES_KEY, apply)


class MemoryUpdateService:
    """Applies tagged memory updates to the right store."""

    def __init__(
        self,
        preferences: PreferenceStore | None = None,
        trust_ledger: ContactTrustLedger | None = None,
        templates: TemplatePerformanceTracker | None = None,
    ):
        self.preferences = preferences or PreferenceStore()
        self.trust_ledger = trust_ledger or ContactTrustLedger()
        self.templates = templates or TemplatePerformanceTracker()

    def apply(self, user_id: str, update: BaseModel) -> dict[str, Any]:
        """
        Apply one update and return a summary of what changed.

        Raises:
            UnsupportedUpdateError: No handler for this update kind

        Side Effects:
            - Upserts the matching learning_records document
        """
        if isinstance(update, ContactTrustUpdate):
            result = self._apply_contact_trust(user_id, update)
        elif isinstance(update, TonePreferenceUpdate):
            result = self._apply_tone(user_id, update)
        elif isinstance(update, TimeWindowsUpdate):
            prefs = self.preferences.change(user_id, time_windows=update.windows)
            result = {"time_windows": [w.model_dump() for w in prefs.time_windows]}
        elif isinstance(update, LanguagePreferenceUpdate):
            prefs = self.preferences.change(user_id, primary_language=update.language.lower())
            result = {"primary_language": prefs.primary_language}
        elif isinstance(update, SignatureUpdate):
            prefs = self.preferences.change(user_id, signature=update.signature or None)
            result = {"signature": prefs.signature}
        elif isinstance(update, TemplateUsageUpdate):
            template = self.templates.record_use(
                user_id, update.template_id, update.outcome, update.contexts
            )
            result = {
                "template_id": template.template_id,
                "performance_score": template.performance_score,
                "usage_count": template.usage_count,
            }
        else:
            counter("memory.update.unsupported")
            kind = getattr(update, "update_type", type(update).__name__)
            raise UnsupportedUpdateError(f"Unsupported memory update kind: {kind}")

        counter(f"memory.update.{update.update_type}")
        log_event("memory.update.applied", update_type=update.update_type, source=update.source)
        return {"update_type": update.update_type, **result}

    def _apply_contact_trust(self, user_id: str, update: ContactTrustUpdate) -> dict[str, Any]:
        key = normalize_contact(update.contact_email)

        def apply(current: ContactTrustRecord | None) -> ContactTrustRecord:
            current = current or ContactTrustRecord(contact_email=key)
            return evolve(current, trust_score=update.trust_level, last_interaction=utc_now())

        record = self.trust_ledger.repository.mutate(user_id, key, apply)
        return {"contact_email": key, "trust_score": record.trust_score}

    def _apply_tone(self, user_id: str, update: TonePreferenceUpdate) -> dict[str, Any]:
        if update.contact_email:
            prefs = self.preferences.set_contact_tone(user_id, update.contact_email, update.tone)
            key = normalize_contact(update.contact_email)
            return {"contact_email": key, "tone": prefs.contact_tones[key]}
        prefs = self.preferences.change(user_id, default_tone=update.tone)
        return {"default_tone": prefs.default_tone}
