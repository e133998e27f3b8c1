"""
Interaction Outcome Logger

Records what happened to a suggestion or auto-send and feeds the learners:

    every outcome     → append to interaction_outcomes, update PersonalityProfile
    type=auto_send    → AutoSendController learning update, per-recipient auto_send_success
    type=template_use → template performance

Event-sourced: recording the same event twice counts twice. Best-effort: each
step is isolated, failures are logged and counted, and record() never raises.
"""

from __future__ import annotations

import json
import math

from optigence.infrastructure.database import db_transaction, get_db_connection, retry_on_db_lock
from optigence.learning.autosend import AutoSendController
from optigence.learning.models import InteractionOutcome, InteractionType, OutcomeKind
from optigence.learning.personality import PersonalityStore
from optigence.learning.templates import TemplatePerformanceTracker
from optigence.learning.trust import ContactTrustLedger
from optigence.observability.logging import get_logger
from optigence.observability.telemetry import counter, log_event
from optigence.runtime.thresholds import MODULE_HISTORY_WINDOW

logger = get_logger(__name__)


def _recipients(metadata: dict) -> list[str]:
    recipients = metadata.get("recipients") or []
    if isinstance(recipients, str):
        recipients = [recipients]
    single = metadata.get("recipient") or metadata.get("contact_email")
    if single:
        recipients = [*recipients, single]
    seen: list[str] = []
    for recipient in recipients:
        if isinstance(recipient, str) and recipient.strip() and recipient not in seen:
            seen.append(recipient)
    return seen


def _confidence(metadata: dict) -> float | None:
    value = metadata.get("confidence")
    if value is None:
        return None
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return None
    # "nan" and "inf" parse as floats; treat them as missing
    return confidence if math.isfinite(confidence) else None


class InteractionOutcomeLogger:
    """Fans one outcome out to the event log and every learner it concerns."""

    def __init__(
        self,
        personality: PersonalityStore | None = None,
        controller: AutoSendController | None = None,
        trust_ledger: ContactTrustLedger | None = None,
        templates: TemplatePerformanceTracker | None = None,
    ):
        self.personality = personality or PersonalityStore()
        self.controller = controller or AutoSendController()
        self.trust_ledger = trust_ledger or ContactTrustLedger()
        self.templates = templates or TemplatePerformanceTracker()

    def record(self, outcome: InteractionOutcome) -> None:
        """
        Record one outcome. Never raises.

        Side Effects:
            - Inserts into interaction_outcomes
            - Upserts personality / auto-send / trust / template records
            - Increments learning.outcome.* counters
        """
        counter("learning.outcome.received")

        self._step("append", self._append, outcome)
        self._step("personality", self.personality.apply_outcome, outcome.user_id, outcome)

        if outcome.type == InteractionType.AUTO_SEND:
            self._step(
                "autosend",
                self.controller.record_outcome,
                outcome.user_id,
                outcome.outcome,
                _confidence(outcome.metadata),
            )
            succeeded = outcome.outcome == OutcomeKind.SUCCESS.value
            for recipient in _recipients(outcome.metadata):
                self._step(
                    "contact_autosend",
                    self.trust_ledger.record_auto_send_result,
                    outcome.user_id,
                    recipient,
                    succeeded,
                )

        elif outcome.type == InteractionType.TEMPLATE_USE:
            template_id = outcome.metadata.get("template_id")
            if template_id:
                contexts = outcome.metadata.get("contexts") or []
                self._step(
                    "template",
                    self.templates.record_use,
                    outcome.user_id,
                    str(template_id),
                    outcome.outcome,
                    [str(c) for c in contexts] if isinstance(contexts, list) else [],
                    outcome.metadata.get("modification"),
                )
            else:
                counter("learning.outcome.template_missing_id")
                logger.warning("template_use outcome without template_id; skipping template update")

        log_event(
            "learning.outcome.recorded",
            interaction_type=outcome.type,
            outcome=outcome.outcome,
            timing_ms=outcome.timing_ms,
        )

    def _step(self, name: str, func, *args) -> None:
        try:
            func(*args)
        except Exception as e:
            counter(f"learning.outcome.{name}_failed")
            logger.warning("Outcome learning step %s failed (dropped): %s", name, e)

    @retry_on_db_lock()
    def _append(self, outcome: InteractionOutcome) -> None:
        with db_transaction() as conn:
            conn.execute(
                """
                INSERT INTO interaction_outcomes
                    (user_id, interaction_type, outcome, timing_ms, word_count,
                     metadata, recorded_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    outcome.user_id,
                    outcome.type,
                    outcome.outcome,
                    outcome.timing_ms,
                    outcome.word_count,
                    json.dumps(outcome.metadata, default=str),
                    outcome.recorded_at.isoformat(),
                ),
            )

    @retry_on_db_lock()
    def recent_modules(self, user_id: str, limit: int = MODULE_HISTORY_WINDOW) -> list[str]:
        """
        Modules named by the user's latest outcomes, oldest first.

        Only the last `limit` outcomes are read; outcomes whose metadata has
        no string "module" are skipped, so the result may be shorter.
        """
        with get_db_connection() as conn:
            rows = conn.execute(
                """
                SELECT metadata FROM interaction_outcomes
                WHERE user_id = ?
                ORDER BY id DESC
                LIMIT ?
                """,
                (user_id, limit),
            ).fetchall()

        modules: list[str] = []
        for row in reversed(rows):
            try:
                metadata = json.loads(row["metadata"] or "{}")
            except json.JSONDecodeError:
                continue
            module = metadata.get("module") if isinstance(metadata, dict) else None
            if isinstance(module, str) and module:
                modules.append(module)
        return modules
