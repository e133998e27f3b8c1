"""
Tests for versioned record storage (optimistic concurrency)
"""

from __future__ import annotations

import threading

import pytest

from optigence.errors import VersionConflictError
from optigence.learning.models import PersonalityProfile, TemplatePerformance, evolve
from optigence.storage.repository import RecordRepository, StaleWriteError


@pytest.fixture
def repo():
    return RecordRepository("template_performance", TemplatePerformance)


def test_insert_then_update_bumps_version(repo):
    assert repo.save("u1", "t1", TemplatePerformance(template_id="t1"), None) == 1
    found = repo.get("u1", "t1")
    assert found.version == 1

    updated = evolve(found.record, usage_count=3)
    assert repo.save("u1", "t1", updated, found.version) == 2
    assert repo.load("u1", "t1").usage_count == 3


def test_stale_update_is_rejected(repo):
    repo.save("u1", "t1", TemplatePerformance(template_id="t1"), None)
    repo.save("u1", "t1", TemplatePerformance(template_id="t1", usage_count=1), 1)

    with pytest.raises(StaleWriteError):
        repo.save("u1", "t1", TemplatePerformance(template_id="t1", usage_count=9), 1)


def test_duplicate_insert_is_rejected(repo):
    repo.save("u1", "t1", TemplatePerformance(template_id="t1"), None)
    with pytest.raises(StaleWriteError):
        repo.save("u1", "t1", TemplatePerformance(template_id="t1"), None)


def test_mutate_retries_after_interleaved_write(repo):
    repo.save("u1", "t1", TemplatePerformance(template_id="t1"), None)
    interfered = []

    def apply(current):
        if not interfered:
            # Another writer sneaks in between our read and our write
            interfered.append(True)
            found = repo.get("u1", "t1")
            repo.save("u1", "t1", evolve(found.record, usage_count=10), found.version)
        return evolve(current, usage_count=current.usage_count + 1)

    result = repo.mutate("u1", "t1", apply)

    assert result.usage_count == 11
    assert repo.get("u1", "t1").version == 3


def test_mutate_gives_up_with_version_conflict():
    repo = RecordRepository("template_performance", TemplatePerformance, max_retries=2)
    repo.save("u1", "t1", TemplatePerformance(template_id="t1"), None)

    def always_interfere(current):
        found = repo.get("u1", "t1")
        repo.save("u1", "t1", found.record, found.version)
        return current

    with pytest.raises(VersionConflictError, match="after 2 attempts"):
        repo.mutate("u1", "t1", always_interfere)


def test_concurrent_mutations_do_not_lose_updates():
    repo = RecordRepository("personality", PersonalityProfile, max_retries=50)
    errors: list[Exception] = []

    def bump():
        try:
            for _ in range(5):
                repo.mutate(
                    "u1",
                    "profile",
                    lambda current: evolve(
                        current or PersonalityProfile(),
                        interactions_observed=(current.interactions_observed if current else 0) + 1,
                    ),
                )
        except Exception as e:  # pragma: no cover - surfaced by the assert below
            errors.append(e)

    threads = [threading.Thread(target=bump) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    assert repo.load("u1", "profile").interactions_observed == 20


def test_records_are_scoped_by_user_and_kind(repo):
    repo.save("u1", "t1", TemplatePerformance(template_id="t1"), None)
    other_kind = RecordRepository("other", TemplatePerformance)

    assert repo.load("u2", "t1") is None
    assert other_kind.load("u1", "t1") is None
    assert [t.template_id for t in repo.list_for_user("u1")] == ["t1"]
