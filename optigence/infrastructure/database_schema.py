"""
Database schema initialization for Optigence.

Holds the SQL schema and initialization logic, kept apart from database.py.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path

from optigence.observability.logging import get_logger

logger = get_logger(__name__)

REQUIRED_TABLES = ("learning_records", "interaction_outcomes")


def init_database(db_path: Path) -> None:
    """
    Initialize database with schema (idempotent)

    Safe to run multiple times - uses CREATE TABLE IF NOT EXISTS.

    Args:
        db_path: Path to the database file

    Side Effects:
    - Creates tables in optigence.db if they don't exist
    - Creates indexes for query performance
    - Creates the parent directory if needed
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path)
    try:
        conn.executescript("""
            -- Versioned per-user documents (trust, profile, metrics, templates, threads,
            -- preferences). Writers compare-and-swap on version.
            CREATE TABLE IF NOT EXISTS learning_records (
                user_id TEXT NOT NULL,
                kind TEXT NOT NULL,
                record_key TEXT NOT NULL,
                version INTEGER NOT NULL DEFAULT 1,
                payload TEXT NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                PRIMARY KEY (user_id, kind, record_key)
            );

            CREATE INDEX IF NOT EXISTS idx_learning_records_user_kind
            ON learning_records(user_id, kind);

            -- Append-only outcome log; never updated or deduplicated.
            CREATE TABLE IF NOT EXISTS interaction_outcomes (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                interaction_type TEXT NOT NULL,
                outcome TEXT NOT NULL,
                timing_ms INTEGER NOT NULL DEFAULT 0,
                word_count INTEGER NOT NULL DEFAULT 0,
                metadata TEXT,
                recorded_at TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_outcomes_user_type
            ON interaction_outcomes(user_id, interaction_type);
        """)
        conn.commit()
    finally:
        conn.close()

    logger.info("Database schema initialized at %s", db_path)


def validate_schema(conn: sqlite3.Connection) -> bool:
    """
    Validate database has expected tables

    Raises:
        ValueError: If tables are missing
    """
    rows = conn.execute("SELECT name FROM sqlite_master WHERE type='table'").fetchall()
    existing = {row[0] for row in rows}
    missing = [table for table in REQUIRED_TABLES if table not in existing]
    if missing:
        raise ValueError(f"Missing tables: {', '.join(missing)}")
    return True
