"""Monthly call and cost accounting per provider.

Usage is kept as one :class:`UsagePeriod` per ``(provider, "YYYY-MM")``
in the repository. There is no reset job: a month that has never been
written reads back as a zero record.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from decimal import Decimal

from shiptrack.exceptions import QuotaExceededError
from shiptrack.models.events import SourceKind
from shiptrack.models.usage import ApiCallRecord, DailyUsage, UsagePeriod, UsageSummary, quantize_cost
from shiptrack.state._locks import KeyedLocks
from shiptrack.state.repository import TrackingRepository

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class CostLedger:
    """Call counter and cost accumulator for one provider."""

    def __init__(
        self,
        repository: TrackingRepository,
        *,
        provider: str,
        monthly_limit: int,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._repository = repository
        self._provider = provider
        self._monthly_limit = monthly_limit
        self._clock = clock
        self._locks = KeyedLocks()
        # Reserved calls per period that are still waiting on the provider
        self._pending: dict[str, int] = {}

    @property
    def provider(self) -> str:
        return self._provider

    def pending(self, period_key: str) -> int:
        """Calls reserved for *period_key* that are not yet recorded or released."""
        return self._pending.get(period_key, 0)

    async def usage(self, period_key: str) -> UsagePeriod:
        """Stored usage for *period_key*, or a fresh zero record."""
        stored = await self._repository.get_usage(self._provider, period_key)
        if stored is not None:
            return stored
        return UsagePeriod(provider=self._provider, period_key=period_key, monthly_limit=self._monthly_limit)

    async def check_quota(self, period_key: str) -> bool:
        period = await self.usage(period_key)
        return period.call_count + self.pending(period_key) < period.monthly_limit

    def _refuse_if_exhausted(self, period: UsagePeriod) -> None:
        used = period.call_count + self.pending(period.period_key)
        if used < period.monthly_limit:
            return
        _logger.warning(
            "%s quota exhausted for %s: %d/%d",
            self._provider,
            period.period_key,
            used,
            period.monthly_limit,
        )
        raise QuotaExceededError(
            used_calls=used,
            monthly_limit=period.monthly_limit,
            period_key=period.period_key,
        )

    async def ensure_within_quota(self, period_key: str) -> UsagePeriod:
        """Raise :class:`QuotaExceededError` once the monthly limit is used up.

        Reserved calls count as used.
        """
        period = await self.usage(period_key)
        self._refuse_if_exhausted(period)
        return period

    async def reserve(self, period_key: str) -> UsagePeriod:
        """Claim one call slot before a paid provider call.

        The check and the claim happen under the period lock, so
        concurrent callers can never claim more slots than the limit
        allows. Settle every reservation with exactly one of
        ``record_call(..., reserved=True)`` or :meth:`release`.

        Raises
        ------
        QuotaExceededError
            If stored plus reserved calls already reach the limit.
        """
        async with self._locks.get(period_key):
            period = await self.usage(period_key)
            self._refuse_if_exhausted(period)
            self._pending[period_key] = self.pending(period_key) + 1
        return period

    def release(self, period_key: str) -> None:
        """Give back a reserved slot whose call was not billed."""
        left = self.pending(period_key) - 1
        if left > 0:
            self._pending[period_key] = left
        else:
            self._pending.pop(period_key, None)

    async def record_call(
        self,
        period_key: str,
        cost: Decimal,
        *,
        shipment_id: str,
        records_found: int = 0,
        source_kind: SourceKind = SourceKind.REAL,
        reserved: bool = False,
    ) -> UsagePeriod:
        """Count one successful call and add its cost.

        With ``reserved=True`` the call settles a slot taken by :meth:`reserve`.
        """
        amount = quantize_cost(cost)
        async with self._locks.get(period_key):
            if reserved:
                self.release(period_key)
            period = (await self.usage(period_key)).add_call(amount)
            await self._repository.save_usage(period)
            await self._repository.add_call_record(
                ApiCallRecord(
                    provider=self._provider,
                    shipment_id=shipment_id,
                    called_at=self._clock(),
                    cost=amount,
                    records_found=records_found,
                    source_kind=source_kind,
                )
            )
        _logger.debug(
            "Recorded %s call for shipment=%s cost=%s usage=%d/%d",
            self._provider,
            shipment_id,
            amount,
            period.call_count,
            period.monthly_limit,
        )
        return period

    async def summary(self, period_key: str) -> UsageSummary:
        """Monthly usage plus a per-day breakdown of audited calls."""
        period = await self.usage(period_key)
        records = await self._repository.list_call_records(self._provider, period_key)

        by_day: dict[object, tuple[int, Decimal]] = {}
        for record in records:
            day = record.called_at.date()
            calls, cost = by_day.get(day, (0, Decimal("0.00")))
            by_day[day] = (calls + 1, cost + record.cost)

        daily = [DailyUsage(day=day, calls=calls, cost=cost) for day, (calls, cost) in sorted(by_day.items())]
        return UsageSummary(period=period, daily=daily)

    async def prune_call_log(self, retention: timedelta) -> int:
        """Delete audit records older than *retention*. Usage totals are kept."""
        cutoff = self._clock() - retention
        removed = await self._repository.delete_call_records_before(cutoff)
        if removed:
            _logger.info("Pruned %d API call record(s) older than %s", removed, cutoff.isoformat())
        return removed
