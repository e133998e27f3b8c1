"""FastAPI server for the Optigence decision engine"""

from __future__ import annotations

import os
import sqlite3
from typing import Any

from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from optigence.api.routes.health import router as health_router
from optigence.api.routes.intent import router as intent_router
from optigence.api.routes.learning import router as learning_router
from optigence.api.routes.memory import router as memory_router
from optigence.api.routes.suggestions import router as suggestions_router
from optigence.config import APP_VERSION, is_development
from optigence.infrastructure.database import init_database
from optigence.observability.logging import get_logger
from optigence.observability.telemetry import counter, log_event

# Load environment variables from .env file
load_dotenv()

logger = get_logger(__name__)

app = FastAPI(title="Optigence API", version=APP_VERSION)


# Custom validation error handler to prevent information leakage
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Return a sanitized 422 that names the invalid fields only.

    Side Effects:
        - Logs detailed validation errors (path only, no query string)
        - Increments api.validation_errors counter
    """
    logger.warning("Validation error on %s: %s", request.url.path, exc.errors())
    counter("api.validation_errors")

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "detail": "Invalid request format. Please check your request and try again.",
            "error_count": len(exc.errors()),
            "invalid_fields": [str(err["loc"][-1]) for err in exc.errors() if err.get("loc")],
        },
    )


ALLOWED_ORIGINS = [
    "https://mail.google.com",
]

# Extra origins (comma separated), e.g. the web client in staging
_extra_origins = os.getenv("OPTIGENCE_ALLOWED_ORIGINS", "")
ALLOWED_ORIGINS.extend(origin.strip() for origin in _extra_origins.split(",") if origin.strip())

if is_development():
    ALLOWED_ORIGINS.extend(
        [
            "http://localhost:3000",
            "http://localhost:8000",
            "http://127.0.0.1:3000",
            "http://127.0.0.1:8000",
        ]
    )

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
)

# Initialize database schema (idempotent - safe to run on every startup)
try:
    logger.info("Initializing database schema...")
    init_database()
    logger.info("Database initialization complete")
except sqlite3.OperationalError as e:
    logger.critical("Database schema error: %s", e)
    logger.critical("Database may be corrupted or locked by another process")
    raise RuntimeError(f"Database initialization failed: {e}") from e
except Exception as e:
    logger.critical("Unexpected database initialization error: %s", e)
    raise RuntimeError(f"Database initialization failed: {e}") from e


app.include_router(health_router)
app.include_router(intent_router)
app.include_router(suggestions_router)
app.include_router(learning_router)
app.include_router(memory_router)

log_event("api.startup", service="optigence", version=APP_VERSION)


# ============================================================================
# STARTUP VALIDATION
# ============================================================================
@app.on_event("startup")
async def validate_database_schema() -> None:
    """Validate database schema on startup (fail fast if database is broken)

    Side Effects:
        - Calls validate_schema() which reads from the Optigence database
        - May raise RuntimeError on validation failure (crashes the app)
    """
    from optigence.infrastructure.database import validate_schema

    try:
        validate_schema()
        logger.info("Database schema validation passed")
    except ValueError as e:
        logger.critical("Database schema invalid: %s", e)
        raise RuntimeError(f"Database schema validation failed: {e}") from e


@app.get("/")
def root() -> dict[str, Any]:
    return {
        "service": "Optigence API",
        "version": APP_VERSION,
        "status": "running",
        "endpoints": {
            "health": "/health",
            "classify": "/api/intent/classify",
            "decide": "/api/suggestions/decide",
            "outcome": "/api/learning/outcome",
            "contact_trust": "/api/learning/contacts/trust",
            "contacts": "/api/learning/contacts/{user_id}",
            "autosend": "/api/learning/autosend/{user_id}",
            "profile": "/api/learning/profile/{user_id}",
            "templates": "/api/learning/templates/{user_id}",
            "memory_update": "/api/memory/update",
            "thread_memory": "/api/memory/threads",
        },
    }
