"""Per-thread conversation memory (participants, decisions, follow-ups)."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from optigence.learning.models import ThreadMemory, ThreadPriority, evolve, utc_now
from optigence.storage.repository import RecordRepository

THREAD_KIND = "thread_memory"


class ThreadMemoryUpdate(BaseModel):
    """Partial update; unset fields leave the stored value alone."""

    model_config = ConfigDict(use_enum_values=True)

    participants: list[str] = Field(default_factory=list)
    context: str | None = None
    decisions: list[str] = Field(default_factory=list)
    follow_up_required: bool | None = None
    priority: ThreadPriority | None = None
    key_insights: list[str] = Field(default_factory=list)


def _merge_unique(existing: list[str], new: list[str]) -> list[str]:
    merged = list(existing)
    for item in new:
        if item and item not in merged:
            merged.append(item)
    return merged


def merge_thread_memory(memory: ThreadMemory, update: ThreadMemoryUpdate) -> ThreadMemory:
    changes: dict = {
        "participants": _merge_unique(
            memory.participants, [p.strip().lower() for p in update.participants]
        ),
        "decisions": memory.decisions + [d for d in update.decisions if d],
        "key_insights": _merge_unique(memory.key_insights, update.key_insights),
        "updated_at": utc_now(),
    }
    if update.context is not None:
        changes["context"] = update.context
    if update.follow_up_required is not None:
        changes["follow_up_required"] = update.follow_up_required
    if update.priority is not None:
        changes["priority"] = update.priority
    return evolve(memory, **changes)


class ThreadMemoryStore:
    def __init__(self, repository: RecordRepository[ThreadMemory] | None = None):
        self.repository = repository or RecordRepository(THREAD_KIND, ThreadMemory)

    def update(self, user_id: str, thread_id: str, update: ThreadMemoryUpdate) -> ThreadMemory:
        return self.repository.mutate(
            user_id,
            thread_id,
            lambda current: merge_thread_memory(
                current or ThreadMemory(thread_id=thread_id), update
            ),
        )

    def get(self, user_id: str, thread_id: str) -> ThreadMemory | None:
        return self.repository.load(user_id, thread_id)
