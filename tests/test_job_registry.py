"""Tests for the in-memory job registry."""

import threading

import pytest

from vidgate.adapters.job_registry_inmemory import InMemoryJobRegistry
from vidgate.core.models.job import Job, JobState, NormalizedResult, ProviderName


def make_job(job_id="1", provider=ProviderName.vidu):
    return Job(id=job_id, provider=provider, submitted_prompt="p")


def test_add_and_get():
    registry = InMemoryJobRegistry()
    job = make_job()

    record = registry.add(job)

    assert record.last_result is None
    assert registry.get("vidu:1") == record
    assert "vidu:1" in registry
    assert len(registry) == 1


def test_same_id_on_different_providers_does_not_collide():
    registry = InMemoryJobRegistry()
    registry.add(make_job("123", ProviderName.pixverse))
    registry.add(make_job("123", ProviderName.vidu))

    assert len(registry) == 2
    assert registry.get("pixverse:123").job.provider == ProviderName.pixverse


def test_duplicate_add_raises():
    registry = InMemoryJobRegistry()
    registry.add(make_job())
    with pytest.raises(ValueError):
        registry.add(make_job())


def test_remove():
    registry = InMemoryJobRegistry()
    registry.add(make_job())

    removed = registry.remove("vidu:1")

    assert removed.job.id == "1"
    assert registry.get("vidu:1") is None
    assert registry.remove("vidu:1") is None


def test_update_in_place_replaces_the_record():
    registry = InMemoryJobRegistry()
    registry.add(make_job())
    running = NormalizedResult(state=JobState.running, progress=0.5)

    updated = registry.update_in_place("vidu:1", lambda record: record.with_result(running))

    assert updated.last_result == running
    assert registry.get("vidu:1").last_result == running


def test_update_in_place_on_missing_key_returns_none():
    registry = InMemoryJobRegistry()
    called = []
    assert registry.update_in_place("vidu:404", lambda r: called.append(r) or r) is None
    assert called == []


def test_mutator_cannot_change_the_key():
    registry = InMemoryJobRegistry()
    registry.add(make_job("1"))
    other = registry.add(make_job("2"))

    with pytest.raises(ValueError):
        registry.update_in_place("vidu:1", lambda record: other)
    assert registry.get("vidu:1").job.id == "1"


def test_list_filters_by_provider_and_state():
    registry = InMemoryJobRegistry()
    registry.add(make_job("a", ProviderName.vidu))
    registry.add(make_job("b", ProviderName.runway))
    done = NormalizedResult(state=JobState.succeeded, progress=1.0, media_url="u")
    registry.update_in_place("runway:b", lambda r: r.with_result(done))

    assert {r.key for r in registry.list()} == {"vidu:a", "runway:b"}
    assert [r.key for r in registry.list(provider=ProviderName.vidu)] == ["vidu:a"]
    assert [r.key for r in registry.list(state=JobState.succeeded)] == ["runway:b"]
    assert registry.list(provider=ProviderName.vidu, state=JobState.succeeded) == []


def test_concurrent_updates_are_serialized():
    registry = InMemoryJobRegistry()
    registry.add(make_job())
    counter = {"n": 0}

    def bump(record):
        counter["n"] += 1
        progress = min(0.01 * counter["n"], 0.99)
        return record.with_result(NormalizedResult(state=JobState.running, progress=progress))

    threads = [
        threading.Thread(target=lambda: [registry.update_in_place("vidu:1", bump) for _ in range(20)])
        for _ in range(5)
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert counter["n"] == 100
    assert registry.get("vidu:1").last_result.progress == 0.99
