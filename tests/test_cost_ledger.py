from __future__ import annotations

import asyncio
from datetime import UTC, date, datetime, timedelta
from decimal import Decimal

import pytest

from shiptrack.exceptions import QuotaExceededError
from shiptrack.models.usage import UsagePeriod, period_key_for
from shiptrack.state.ledger import CostLedger
from shiptrack.state.repository import InMemoryRepository


class _Clock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def _ledger(
    repository: InMemoryRepository | None = None,
    *,
    limit: int = 1000,
    clock: _Clock | None = None,
) -> CostLedger:
    return CostLedger(
        repository or InMemoryRepository(),
        provider="crossing",
        monthly_limit=limit,
        clock=clock or _Clock(datetime(2025, 10, 15, 9, 0, tzinfo=UTC)),
    )


def test_period_key_is_calendar_month() -> None:
    assert period_key_for(datetime(2025, 10, 31, 23, 59, tzinfo=UTC)) == "2025-10"
    assert period_key_for(datetime(2025, 11, 1, 0, 0, tzinfo=UTC)) == "2025-11"


@pytest.mark.asyncio
async def test_unknown_period_reads_as_zero() -> None:
    usage = await _ledger().usage("2025-10")
    assert usage.call_count == 0
    assert usage.total_cost == Decimal("0.00")
    assert usage.monthly_limit == 1000


@pytest.mark.asyncio
async def test_record_call_counts_and_rounds_cost() -> None:
    ledger = _ledger()

    await ledger.record_call("2025-10", Decimal("4"), shipment_id="SHP-1")
    usage = await ledger.record_call("2025-10", Decimal("1.005"), shipment_id="SHP-1")

    assert usage.call_count == 2
    assert usage.total_cost == Decimal("5.01")


@pytest.mark.asyncio
async def test_quota_refused_at_limit() -> None:
    ledger = _ledger(limit=2)
    await ledger.record_call("2025-10", Decimal("4.00"), shipment_id="SHP-1")
    assert await ledger.check_quota("2025-10") is True
    await ledger.record_call("2025-10", Decimal("4.00"), shipment_id="SHP-1")

    assert await ledger.check_quota("2025-10") is False
    with pytest.raises(QuotaExceededError) as exc_info:
        await ledger.ensure_within_quota("2025-10")
    assert exc_info.value.used_calls == 2
    assert exc_info.value.monthly_limit == 2


@pytest.mark.asyncio
async def test_new_month_starts_fresh() -> None:
    ledger = _ledger(limit=1)
    await ledger.record_call("2025-10", Decimal("4.00"), shipment_id="SHP-1")

    assert await ledger.check_quota("2025-10") is False
    assert await ledger.check_quota("2025-11") is True


@pytest.mark.asyncio
async def test_stored_period_can_be_reset_externally() -> None:
    repository = InMemoryRepository()
    ledger = _ledger(repository, limit=1)
    await ledger.record_call("2025-10", Decimal("4.00"), shipment_id="SHP-1")

    await repository.save_usage(UsagePeriod(provider="crossing", period_key="2025-10", monthly_limit=1))

    assert await ledger.check_quota("2025-10") is True


@pytest.mark.asyncio
async def test_concurrent_records_are_not_lost() -> None:
    ledger = _ledger()
    await asyncio.gather(*(ledger.record_call("2025-10", Decimal("4.00"), shipment_id="SHP-1") for _ in range(10)))

    usage = await ledger.usage("2025-10")
    assert usage.call_count == 10
    assert usage.total_cost == Decimal("40.00")


@pytest.mark.asyncio
async def test_summary_breaks_down_per_day() -> None:
    clock = _Clock(datetime(2025, 10, 14, 9, 0, tzinfo=UTC))
    ledger = _ledger(clock=clock)
    await ledger.record_call("2025-10", Decimal("4.00"), shipment_id="SHP-1", records_found=3)
    clock.now = datetime(2025, 10, 15, 9, 0, tzinfo=UTC)
    await ledger.record_call("2025-10", Decimal("4.00"), shipment_id="SHP-1")
    await ledger.record_call("2025-10", Decimal("4.00"), shipment_id="SHP-2")

    summary = await ledger.summary("2025-10")

    assert summary.period.call_count == 3
    assert [(d.day, d.calls, d.cost) for d in summary.daily] == [
        (date(2025, 10, 14), 1, Decimal("4.00")),
        (date(2025, 10, 15), 2, Decimal("8.00")),
    ]
    assert summary.percent_used == pytest.approx(0.3)


@pytest.mark.asyncio
async def test_prune_call_log_keeps_totals() -> None:
    clock = _Clock(datetime(2025, 9, 1, 9, 0, tzinfo=UTC))
    repository = InMemoryRepository()
    ledger = _ledger(repository, clock=clock)
    await ledger.record_call("2025-09", Decimal("4.00"), shipment_id="SHP-1")
    clock.now = datetime(2025, 10, 15, 9, 0, tzinfo=UTC)
    await ledger.record_call("2025-10", Decimal("4.00"), shipment_id="SHP-1")

    removed = await ledger.prune_call_log(timedelta(days=30))

    assert removed == 1
    assert await repository.list_call_records("crossing", "2025-09") == []
    assert (await ledger.usage("2025-09")).call_count == 1


@pytest.mark.asyncio
async def test_concurrent_reservations_never_exceed_limit() -> None:
    ledger = _ledger(limit=2)

    outcomes = await asyncio.gather(*(ledger.reserve("2025-10") for _ in range(5)), return_exceptions=True)

    assert sum(isinstance(outcome, UsagePeriod) for outcome in outcomes) == 2
    assert sum(isinstance(outcome, QuotaExceededError) for outcome in outcomes) == 3
    assert ledger.pending("2025-10") == 2
    assert await ledger.check_quota("2025-10") is False


@pytest.mark.asyncio
async def test_reserved_call_is_settled_by_record_or_release() -> None:
    ledger = _ledger(limit=2)
    await ledger.reserve("2025-10")
    await ledger.reserve("2025-10")

    usage = await ledger.record_call("2025-10", Decimal("4.00"), shipment_id="SHP-1", reserved=True)
    ledger.release("2025-10")

    assert usage.call_count == 1
    assert ledger.pending("2025-10") == 0
    assert await ledger.check_quota("2025-10") is True
    await ledger.reserve("2025-10")
    with pytest.raises(QuotaExceededError) as exc_info:
        await ledger.reserve("2025-10")
    assert exc_info.value.used_calls == 2
