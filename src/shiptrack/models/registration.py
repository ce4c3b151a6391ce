"""SIM registration for cellular tracking."""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta
from decimal import Decimal
from typing import cast

from pydantic import Field, model_validator

from shiptrack.models._base import TrackBaseModel, UtcTimestamp


class SimRegistration(TrackBaseModel):
    """Per-shipment cellular tracking subscription.

    Expires on its own once ``now > expires_at``; there is no explicit
    cancellation.
    """

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    shipment_id: str
    phone: str = Field(..., pattern=r"^\d{10}$")
    registered_at: UtcTimestamp
    days: int = Field(..., ge=1)
    daily_cost: Decimal = Field(default=Decimal("0.00"), ge=0, decimal_places=2)
    expires_at: UtcTimestamp | None = None

    @model_validator(mode="after")
    def _derive_expiry(self) -> SimRegistration:
        if self.expires_at is None:
            object.__setattr__(self, "expires_at", self.registered_at + timedelta(days=self.days))
        return self

    @classmethod
    def create(
        cls,
        *,
        shipment_id: str,
        phone: str,
        days: int,
        daily_cost: Decimal,
        now: datetime,
    ) -> SimRegistration:
        return cls(
            shipment_id=shipment_id,
            phone=phone,
            registered_at=now,
            days=days,
            daily_cost=daily_cost,
        )

    @property
    def total_cost(self) -> Decimal:
        return self.daily_cost * self.days

    def is_active(self, now: datetime) -> bool:
        # Always set by _derive_expiry
        return now <= cast(datetime, self.expires_at)
