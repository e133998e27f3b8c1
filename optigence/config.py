"""Centralized configuration for the Optigence backend.

Re-exports everything from optigence.infrastructure.settings, then adds typed
constants for the database, LLM, suggestion pipeline and API. Environment
variable overrides use safe defaults so the app starts without extra env
configuration.
"""

from __future__ import annotations

import os

from optigence.infrastructure.settings import *  # noqa: F401, F403 (re-export settings)


def _env(key: str, default: str) -> str:
    return os.getenv(key, default)


# --- App ---
APP_VERSION: str = "0.1.0"

# --- Database ---
DB_POOL_SIZE: int = int(_env("OPTIGENCE_DB_POOL_SIZE", "5"))
DB_POOL_TIMEOUT: float = float(_env("OPTIGENCE_DB_POOL_TIMEOUT", "5.0"))
DB_CONNECT_TIMEOUT: float = float(_env("OPTIGENCE_DB_CONNECT_TIMEOUT", "30.0"))
DB_TEMP_CONN_MAX: int = int(_env("OPTIGENCE_DB_TEMP_CONN_MAX", "10"))
DB_RETRY_MAX: int = 5
DB_RETRY_BASE_DELAY: float = 0.1
DB_RETRY_MAX_DELAY: float = 2.0
DB_RETRY_JITTER: float = 0.25

# --- Optimistic concurrency ---
CAS_MAX_RETRIES: int = int(_env("OPTIGENCE_CAS_MAX_RETRIES", "5"))

# --- LLM ---
LLM_TIMEOUT_SECONDS: float = float(_env("OPTIGENCE_LLM_TIMEOUT", "8"))
LLM_MAX_RETRIES: int = int(_env("OPTIGENCE_LLM_MAX_RETRIES", "2"))
CIRCUIT_FAIL_MAX: int = int(_env("OPTIGENCE_CIRCUIT_FAIL_MAX", "5"))
CIRCUIT_RESET_SECONDS: float = float(_env("OPTIGENCE_CIRCUIT_RESET_SECONDS", "60"))

# --- LLM Budget ---
LLM_USER_DAILY_LIMIT: int = int(_env("OPTIGENCE_LLM_USER_DAILY_LIMIT", "500"))
LLM_GLOBAL_DAILY_LIMIT: int = int(_env("OPTIGENCE_LLM_GLOBAL_DAILY_LIMIT", "10000"))

# --- Suggestions ---
SUGGESTION_MAX_WORKERS: int = int(_env("OPTIGENCE_SUGGESTION_MAX_WORKERS", "4"))
SUGGESTION_TIMEOUT_SECONDS: float = float(_env("OPTIGENCE_SUGGESTION_TIMEOUT", "2.0"))
# Local generators always get at least this long, even when the caller deadline is spent
SUGGESTION_MIN_BUDGET_SECONDS: float = float(_env("OPTIGENCE_SUGGESTION_MIN_BUDGET", "0.25"))

# --- API ---
API_TEXT_MAX_CHARS: int = 10000
API_INTERACTION_BATCH_MAX: int = 1000
