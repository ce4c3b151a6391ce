"""Provider wire records.

Field names follow the providers' camelCase keys through the
``to_camel`` alias generator; a few keys get extra aliases because the
providers are not consistent about them.
"""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, Field, field_validator

from shiptrack.ingestion.normalize import safe_float, safe_str
from shiptrack.models._base import WireModel


class CrossingRecord(WireModel):
    """One toll-plaza read as returned by the crossing provider.

    Every field stays loosely typed here; strict parsing happens in
    :mod:`shiptrack.ingestion.crossings`.
    """

    reader_read_time: str | None = None
    toll_plaza_name: str | None = None
    toll_plaza_geocode: str | None = None
    vehicle_type: str | None = None
    vehicle_reg_no: str | None = None

    @field_validator(
        "reader_read_time",
        "toll_plaza_name",
        "toll_plaza_geocode",
        "vehicle_type",
        "vehicle_reg_no",
        mode="before",
    )
    @classmethod
    def _coerce_str(cls, value: Any) -> str | None:
        return safe_str(value)


class PingRecord(WireModel):
    """One cellular location sample."""

    latitude: float | None = Field(default=None, validation_alias=AliasChoices("latitude", "lat"))
    longitude: float | None = Field(
        default=None,
        validation_alias=AliasChoices("longitude", "lng", "lon"),
    )
    speed: float | None = None
    recorded_at: Any = Field(
        default=None,
        validation_alias=AliasChoices("recordedAt", "recorded_at", "timestamp", "time"),
    )
    location_name: str | None = Field(
        default=None,
        validation_alias=AliasChoices("locationName", "location_name", "address"),
    )

    @field_validator("latitude", "longitude", "speed", mode="before")
    @classmethod
    def _coerce_floats(cls, value: Any) -> float | None:
        return safe_float(value)

    @field_validator("location_name", mode="before")
    @classmethod
    def _coerce_name(cls, value: Any) -> str | None:
        return safe_str(value)


class CellularResponse(WireModel):
    """Envelope returned by the cellular provider."""

    current: dict[str, Any] | None = None
    history: list[Any] = Field(default_factory=list)
    source: str | None = None

    @field_validator("current", mode="before")
    @classmethod
    def _current_dict(cls, value: Any) -> dict[str, Any] | None:
        return value if isinstance(value, dict) else None

    @field_validator("history", mode="before")
    @classmethod
    def _history_list(cls, value: Any) -> list[Any]:
        return value if isinstance(value, list) else []

    @property
    def is_mock(self) -> bool:
        return (self.source or "").strip().upper() == "MOCK"
