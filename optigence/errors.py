"""Exception types shared across the decision engine."""

from __future__ import annotations


class OptigenceError(RuntimeError):
    """Base class for engine failures that callers may want to handle."""


class InvalidInputError(ValueError):
    """Input rejected at the point of use (e.g. an empty interaction batch)."""


class VersionConflictError(OptigenceError):
    """A versioned record kept changing underneath a read-modify-write."""

    def __init__(self, kind: str, record_key: str, attempts: int):
        super().__init__(
            f"Version conflict on {kind}:{record_key} after {attempts} attempts"
        )
        self.kind = kind
        self.record_key = record_key
        self.attempts = attempts


class UnsupportedUpdateError(OptigenceError):
    """A memory update arrived with a kind the service does not handle."""
