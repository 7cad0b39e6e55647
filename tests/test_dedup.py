"""Duplicate action suppression tests."""

import asyncio

import pytest

from app.services.workflow.dedup import (
    DedupGuard,
    InMemoryDedupStore,
    RedisDedupStore,
    build_dedup_store,
)
from tests.conftest import FakeClock


@pytest.mark.asyncio
async def test_second_identical_action_is_a_duplicate(dedup_guard, clock):
    fingerprint = dedup_guard.fingerprint("TSR-1", "approve", "HOD", "Bob")

    first = await dedup_guard.check_and_mark(fingerprint)
    clock.advance(4)
    second = await dedup_guard.check_and_mark(fingerprint)

    assert first.is_duplicate is False
    assert second.is_duplicate is True
    assert second.time_remaining == 11


@pytest.mark.asyncio
async def test_completed_action_can_be_repeated(dedup_guard):
    fingerprint = dedup_guard.fingerprint("TSR-1", "approve", "HOD", "Bob")
    await dedup_guard.check_and_mark(fingerprint)
    await dedup_guard.mark_completed(fingerprint)

    result = await dedup_guard.check_and_mark(fingerprint)
    assert result.is_duplicate is False


@pytest.mark.asyncio
async def test_entry_expires_after_ttl(dedup_guard, clock):
    fingerprint = dedup_guard.fingerprint("TSR-1", "approve", "HOD", "Bob")
    await dedup_guard.check_and_mark(fingerprint)
    clock.advance(15)

    result = await dedup_guard.check_and_mark(fingerprint)
    assert result.is_duplicate is False


@pytest.mark.asyncio
async def test_concurrent_marks_let_exactly_one_through(dedup_guard):
    fingerprint = dedup_guard.fingerprint("CLM-1", "reject", "HOD", "Bob")
    results = await asyncio.gather(*(dedup_guard.check_and_mark(fingerprint) for _ in range(5)))
    assert sum(not result.is_duplicate for result in results) == 1


def test_fingerprint_depends_on_action_parts(dedup_guard):
    base = dedup_guard.fingerprint("TSR-1", "approve", "HOD", "Bob")
    assert base == dedup_guard.fingerprint("TSR-1", "approve", "HOD", "Bob")
    assert base != dedup_guard.fingerprint("TSR-1", "reject", "HOD", "Bob")
    assert base != dedup_guard.fingerprint("TSR-2", "approve", "HOD", "Bob")
    assert base != dedup_guard.fingerprint("TSR-1", "approve", "HOD", "Carol")


def test_fingerprint_changes_with_time_bucket():
    clock = FakeClock(now=150.0)
    guard = DedupGuard(InMemoryDedupStore(clock=clock), ttl_seconds=15, clock=clock)
    first = guard.fingerprint("TSR-1", "approve", "HOD", "Bob")
    clock.advance(14.9)
    assert guard.fingerprint("TSR-1", "approve", "HOD", "Bob") == first
    clock.advance(0.2)
    assert guard.fingerprint("TSR-1", "approve", "HOD", "Bob") != first


@pytest.mark.asyncio
async def test_retry_across_bucket_boundary_is_a_duplicate():
    # 1_000_005 is a multiple of the 15s bucket
    clock = FakeClock(now=1_000_004.9)
    guard = DedupGuard(InMemoryDedupStore(clock=clock), ttl_seconds=15, clock=clock)
    first = guard.fingerprint("TSR-001", "approve", "Department Focal", "Dan")
    assert (await guard.check_and_mark(first)).is_duplicate is False

    clock.advance(0.2)
    second = guard.fingerprint("TSR-001", "approve", "Department Focal", "Dan")
    result = await guard.check_and_mark(second)

    assert second != first
    assert result.is_duplicate is True
    assert result.time_remaining == 15

    await guard.mark_completed(first)
    assert (await guard.check_and_mark(second)).is_duplicate is False


def test_submission_fingerprint_ignores_key_order(submission_guard):
    first = submission_guard.submission_fingerprint("S1001", "claim_submission", {"a": 1, "b": [1, 2]})
    second = submission_guard.submission_fingerprint("S1001", "claim_submission", {"b": [1, 2], "a": 1})
    other = submission_guard.submission_fingerprint("S1002", "claim_submission", {"a": 1, "b": [1, 2]})
    assert first == second
    assert first != other


@pytest.mark.asyncio
async def test_purge_expired_drops_only_stale_entries(clock):
    store = InMemoryDedupStore(clock=clock)
    await store.put("old", clock() + 5)
    await store.put("fresh", clock() + 60)
    clock.advance(10)

    assert store.purge_expired() == 1
    assert store.pending_count() == 1
    assert await store.get("old") is None


def test_build_dedup_store():
    assert isinstance(build_dedup_store("memory"), InMemoryDedupStore)
    assert isinstance(build_dedup_store("redis", "redis://localhost:6379/0"), RedisDedupStore)
    with pytest.raises(ValueError):
        build_dedup_store("redis")
