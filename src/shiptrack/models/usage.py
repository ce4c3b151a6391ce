"""Monthly usage and API call audit records."""

from __future__ import annotations

import datetime as dt
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from pydantic import Field, field_validator

from shiptrack.models._base import TrackBaseModel, UtcTimestamp
from shiptrack.models.events import SourceKind

_CENT = Decimal("0.01")


def quantize_cost(value: Any) -> Decimal:
    """Round a currency amount to 2 decimal places (half up)."""
    return Decimal(str(value)).quantize(_CENT, rounding=ROUND_HALF_UP)


def period_key_for(moment: dt.datetime) -> str:
    """Calendar-month key, e.g. ``"2025-10"``."""
    return f"{moment.year:04d}-{moment.month:02d}"


class UsagePeriod(TrackBaseModel):
    """Calls made and money spent on one provider in one calendar month.

    A period key that has never been written is simply a fresh zero
    record, which is how the monthly rollover happens.
    """

    provider: str
    period_key: str = Field(..., pattern=r"^\d{4}-\d{2}$")
    call_count: int = Field(default=0, ge=0)
    total_cost: Decimal = Decimal("0.00")
    monthly_limit: int = Field(..., ge=0)

    @field_validator("total_cost", mode="before")
    @classmethod
    def _round_cost(cls, value: Any) -> Decimal:
        return quantize_cost(value)

    @property
    def within_limit(self) -> bool:
        return self.call_count < self.monthly_limit

    @property
    def remaining_calls(self) -> int:
        return max(0, self.monthly_limit - self.call_count)

    def add_call(self, cost: Decimal) -> UsagePeriod:
        return self.model_copy(
            update={
                "call_count": self.call_count + 1,
                "total_cost": quantize_cost(self.total_cost + quantize_cost(cost)),
            }
        )


class ApiCallRecord(TrackBaseModel):
    """Audit entry for one successful provider call."""

    provider: str
    shipment_id: str
    called_at: UtcTimestamp
    cost: Decimal
    records_found: int = Field(default=0, ge=0)
    source_kind: SourceKind = SourceKind.REAL

    @field_validator("cost", mode="before")
    @classmethod
    def _round_cost(cls, value: Any) -> Decimal:
        return quantize_cost(value)

    @property
    def period_key(self) -> str:
        return period_key_for(self.called_at)


class DailyUsage(TrackBaseModel):
    day: dt.date
    calls: int = 0
    cost: Decimal = Decimal("0.00")


class UsageSummary(TrackBaseModel):
    """Monthly usage with a per-day breakdown."""

    period: UsagePeriod
    daily: list[DailyUsage] = Field(default_factory=list)

    @property
    def percent_used(self) -> float:
        if self.period.monthly_limit == 0:
            return 100.0
        return round(self.period.call_count / self.period.monthly_limit * 100, 1)
