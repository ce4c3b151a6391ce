from __future__ import annotations

import asyncio
import gc
from datetime import UTC, datetime, timedelta

import pytest

from shiptrack.state._locks import KeyedLocks
from shiptrack.state.gate import RefreshGate

_NOW = datetime(2025, 10, 1, 12, 0, 0, tzinfo=UTC)


class _Clock:
    def __init__(self, now: datetime = _NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.mark.asyncio
async def test_denied_inside_cooldown_with_wait_seconds() -> None:
    gate = RefreshGate(timedelta(hours=2), clock=_Clock())

    decision = await gate.try_acquire("SHP-1", _NOW - timedelta(minutes=30))

    assert decision.allowed is False
    assert decision.wait_seconds == 5400


@pytest.mark.asyncio
async def test_allowed_without_history() -> None:
    gate = RefreshGate(timedelta(hours=2), clock=_Clock())
    decision = await gate.try_acquire("SHP-1", None)
    assert decision.allowed is True
    assert decision.wait_seconds == 0


@pytest.mark.asyncio
async def test_allowed_once_cooldown_has_passed() -> None:
    gate = RefreshGate(timedelta(hours=2), clock=_Clock())
    decision = await gate.try_acquire("SHP-1", _NOW - timedelta(hours=2))
    assert decision.allowed is True


@pytest.mark.asyncio
async def test_wait_rounds_up_partial_seconds() -> None:
    gate = RefreshGate(timedelta(hours=2), clock=_Clock())
    remaining = gate.remaining("SHP-1", _NOW - timedelta(hours=2) + timedelta(milliseconds=200))
    assert remaining == 1


@pytest.mark.asyncio
async def test_acquisition_becomes_anchor_until_released() -> None:
    clock = _Clock()
    gate = RefreshGate(timedelta(hours=2), clock=clock)

    assert (await gate.try_acquire("SHP-1", None)).allowed is True
    clock.now = _NOW + timedelta(minutes=1)
    second = await gate.try_acquire("SHP-1", None)
    assert second.allowed is False
    assert second.wait_seconds == 7140

    await gate.release("SHP-1")
    assert (await gate.try_acquire("SHP-1", None)).allowed is True


@pytest.mark.asyncio
async def test_concurrent_acquire_allows_exactly_one() -> None:
    gate = RefreshGate(timedelta(hours=2), clock=_Clock())

    decisions = await asyncio.gather(*(gate.try_acquire("SHP-1", None) for _ in range(5)))

    assert sum(decision.allowed for decision in decisions) == 1


@pytest.mark.asyncio
async def test_shipments_are_independent() -> None:
    gate = RefreshGate(timedelta(hours=2), clock=_Clock())

    assert (await gate.try_acquire("SHP-1", None)).allowed is True
    assert (await gate.try_acquire("SHP-2", None)).allowed is True


@pytest.mark.asyncio
async def test_expired_anchors_are_dropped() -> None:
    clock = _Clock()
    gate = RefreshGate(timedelta(hours=2), clock=clock)
    await gate.try_acquire("SHP-1", None)
    await gate.try_acquire("SHP-2", None)
    assert gate.held_anchors == 2

    clock.now = _NOW + timedelta(hours=2)
    assert (await gate.try_acquire("SHP-3", None)).allowed is True

    assert gate.held_anchors == 1
    assert gate.remaining("SHP-1", None) == 0


@pytest.mark.asyncio
async def test_keyed_locks_forget_unused_keys() -> None:
    locks = KeyedLocks()

    async with locks.get("SHP-1"):
        assert len(locks) == 1
        assert locks.get("SHP-1") is locks.get("SHP-1")

    gc.collect()
    assert len(locks) == 0
