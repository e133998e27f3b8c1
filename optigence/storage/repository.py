"""
Versioned per-user record storage.

Every learning document (contact trust, personality profile, auto-send
metrics, template performance, thread memory, preferences) is one row in
learning_records keyed by (user_id, kind, record_key) with a version column.

Writes are compare-and-swap:
    INSERT            when the caller saw no record  (PK collision → conflict)
    UPDATE ... WHERE version = <seen>                (0 rows → conflict)

mutate() wraps read → apply → CAS write in a retry loop so concurrent requests
for the same user never lose each other's updates.
"""

from __future__ import annotations

import random
import sqlite3
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Generic, TypeVar

from pydantic import BaseModel

from optigence.config import CAS_MAX_RETRIES
from optigence.errors import VersionConflictError
from optigence.infrastructure.database import db_transaction, get_db_connection, retry_on_db_lock
from optigence.observability.logging import get_logger
from optigence.observability.telemetry import counter

logger = get_logger(__name__)

M = TypeVar("M", bound=BaseModel)


class StaleWriteError(Exception):
    """The record changed between read and write."""


@dataclass(frozen=True)
class VersionedRecord(Generic[M]):
    record: M
    version: int


class RecordRepository(Generic[M]):
    """CAS-protected storage for one kind of learning record."""

    def __init__(self, kind: str, model: type[M], max_retries: int = CAS_MAX_RETRIES):
        self.kind = kind
        self.model = model
        self.max_retries = max_retries

    @retry_on_db_lock()
    def get(self, user_id: str, record_key: str) -> VersionedRecord[M] | None:
        """Load a record and the version it was read at (None if absent)."""
        with get_db_connection() as conn:
            row = conn.execute(
                """
                SELECT payload, version FROM learning_records
                WHERE user_id = ? AND kind = ? AND record_key = ?
                """,
                (user_id, self.kind, record_key),
            ).fetchone()

        if row is None:
            return None
        return VersionedRecord(self.model.model_validate_json(row["payload"]), row["version"])

    def load(self, user_id: str, record_key: str) -> M | None:
        found = self.get(user_id, record_key)
        return found.record if found else None

    @retry_on_db_lock()
    def list_for_user(self, user_id: str) -> list[M]:
        """All records of this kind for a user, ordered by key."""
        with get_db_connection() as conn:
            rows = conn.execute(
                """
                SELECT payload FROM learning_records
                WHERE user_id = ? AND kind = ?
                ORDER BY record_key
                """,
                (user_id, self.kind),
            ).fetchall()
        return [self.model.model_validate_json(row["payload"]) for row in rows]

    @retry_on_db_lock()
    def save(
        self,
        user_id: str,
        record_key: str,
        record: M,
        expected_version: int | None,
    ) -> int:
        """
        Compare-and-swap write.

        Args:
            expected_version: Version the caller read, or None if it saw no record

        Returns:
            The new version number

        Raises:
            StaleWriteError: Someone else wrote first
        """
        now = datetime.now(UTC).isoformat()
        payload = record.model_dump_json()

        with db_transaction() as conn:
            if expected_version is None:
                try:
                    conn.execute(
                        """
                        INSERT INTO learning_records
                            (user_id, kind, record_key, version, payload, created_at, updated_at)
                        VALUES (?, ?, ?, 1, ?, ?, ?)
                        """,
                        (user_id, self.kind, record_key, payload, now, now),
                    )
                except sqlite3.IntegrityError as e:
                    raise StaleWriteError(f"{self.kind}:{record_key} already exists") from e
                return 1

            cursor = conn.execute(
                """
                UPDATE learning_records
                SET payload = ?, version = version + 1, updated_at = ?
                WHERE user_id = ? AND kind = ? AND record_key = ? AND version = ?
                """,
                (payload, now, user_id, self.kind, record_key, expected_version),
            )
            if cursor.rowcount == 0:
                raise StaleWriteError(f"{self.kind}:{record_key} moved past v{expected_version}")
            return expected_version + 1

    def mutate(
        self,
        user_id: str,
        record_key: str,
        apply: Callable[[M | None], M],
    ) -> M:
        """
        Read-modify-write with optimistic concurrency.

        `apply` receives the current record (None if absent) and returns the
        new one. It must be free of side effects: it may run more than once.

        Raises:
            VersionConflictError: Conflicts persisted past max_retries
        """
        for attempt in range(1, self.max_retries + 1):
            current = self.get(user_id, record_key)
            updated = apply(current.record if current else None)
            try:
                self.save(
                    user_id,
                    record_key,
                    updated,
                    expected_version=current.version if current else None,
                )
                return updated
            except StaleWriteError as e:
                counter(f"storage.{self.kind}.cas_conflict")
                logger.debug("CAS conflict (attempt %d/%d): %s", attempt, self.max_retries, e)
                time.sleep(random.uniform(0, 0.005 * attempt))

        counter(f"storage.{self.kind}.cas_exhausted")
        logger.warning(
            "Gave up updating %s record after %d conflicting attempts", self.kind, self.max_retries
        )
        raise VersionConflictError(self.kind, record_key, self.max_retries)
