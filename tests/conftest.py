"""
Pytest configuration shared across unit and integration tests

Every test gets its own SQLite file (via OPTIGENCE_DB_PATH) and clean
in-memory telemetry / budget state. The LLM tier is off unless a test turns
it on explicitly.
"""

from __future__ import annotations

import pytest

from optigence.infrastructure.database import init_database, reset_pool
from optigence.infrastructure.llm_budget import reset_budgets
from optigence.observability.telemetry import reset_counters, reset_latencies


@pytest.fixture(autouse=True)
def isolated_db(tmp_path, monkeypatch):
    """Fresh database per test."""
    db_path = tmp_path / "optigence_test.db"
    monkeypatch.setenv("OPTIGENCE_DB_PATH", str(db_path))
    monkeypatch.setenv("OPTIGENCE_USE_LLM", "false")
    reset_pool()
    init_database()
    reset_counters()
    reset_latencies()
    reset_budgets()
    yield db_path
    reset_pool()
