"""Normalized location events.

Both provider paths convert their records into these events. Only the
event store is allowed to persist them.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import Field, field_validator

from shiptrack.ingestion.normalize import round_coordinate_key, time_bucket
from shiptrack.models._base import TrackBaseModel, UtcTimestamp


class SourceKind(StrEnum):
    REAL = "real"
    MOCK = "mock"


IdentityKey = tuple[str, ...]


class _LocationEvent(TrackBaseModel):
    shipment_id: str
    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)
    source_kind: SourceKind = SourceKind.REAL
    raw: dict[str, Any] = Field(default_factory=dict)

    @field_validator("shipment_id")
    @classmethod
    def _shipment_id_non_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("shipment_id must be non-empty")
        return value

    @property
    def coordinate_key(self) -> str:
        return round_coordinate_key(self.latitude, self.longitude)

    @property
    def is_mock(self) -> bool:
        return self.source_kind == SourceKind.MOCK


class CrossingEvent(_LocationEvent):
    """A vehicle passing a toll gantry."""

    plaza_name: str
    crossed_at: UtcTimestamp
    vehicle_class: str = "VC10"

    @field_validator("plaza_name")
    @classmethod
    def _plaza_non_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("plaza_name must be non-empty")
        return value

    @property
    def occurred_at(self) -> datetime:
        return self.crossed_at

    @property
    def display_name(self) -> str | None:
        return self.plaza_name

    def identity_key(self, bucket_seconds: int) -> IdentityKey:
        return (
            self.shipment_id,
            self.plaza_name,
            self.coordinate_key,
            str(time_bucket(self.crossed_at, bucket_seconds)),
        )


class PingEvent(_LocationEvent):
    """A cellular-network location sample."""

    recorded_at: UtcTimestamp
    speed: float | None = Field(default=None, ge=0)
    location_name: str | None = None

    @property
    def occurred_at(self) -> datetime:
        return self.recorded_at

    @property
    def display_name(self) -> str | None:
        return self.location_name

    def identity_key(self, bucket_seconds: int) -> IdentityKey:
        return (
            self.shipment_id,
            self.coordinate_key,
            str(time_bucket(self.recorded_at, bucket_seconds)),
        )


LocationEvent = CrossingEvent | PingEvent
