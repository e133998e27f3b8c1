"""Explicit memory updates (preferences, contact trust, templates, threads)"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from optigence.api.dependencies import get_memory_service, get_thread_store
from optigence.api.models import MemoryUpdateRequest, ThreadMemoryRequest
from optigence.errors import UnsupportedUpdateError
from optigence.learning.memory_updates import MemoryUpdateService, parse_memory_update
from optigence.learning.models import ThreadMemory
from optigence.learning.threads import ThreadMemoryStore

router = APIRouter(prefix="/api/memory", tags=["memory"])


@router.post("/update")
def apply_memory_update(
    request: MemoryUpdateRequest,
    service: MemoryUpdateService = Depends(get_memory_service),
) -> dict[str, Any]:
    """
    Apply one tagged update.

    Returns 400 for an unknown update_type and 422 for a known kind with
    invalid fields.
    """
    try:
        update = parse_memory_update(request.update)
        return service.apply(request.user_id, update)
    except UnsupportedUpdateError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except ValidationError as e:
        raise RequestValidationError(e.errors()) from e


@router.post("/threads", response_model=ThreadMemory)
def update_thread_memory(
    request: ThreadMemoryRequest,
    store: ThreadMemoryStore = Depends(get_thread_store),
) -> ThreadMemory:
    return store.update(request.user_id, request.thread_id, request.update)
