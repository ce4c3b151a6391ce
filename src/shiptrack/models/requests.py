"""Pydantic request models for tracker entrypoints.

These models provide a consistent "validate → normalize → execute" flow.
They are used internally by :class:`shiptrack.tracker.ShipmentTracker`.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from shiptrack.ingestion.normalize import normalize_phone


class ShipmentRequest(BaseModel):
    """Request containing a shipment id."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        validate_default=True,
        str_strip_whitespace=True,
    )

    shipment_id: str

    @field_validator("shipment_id")
    @classmethod
    def _shipment_id_non_empty(cls, value: str) -> str:
        shipment_id = value.strip()
        if not shipment_id:
            raise ValueError("shipment_id must be non-empty")
        return shipment_id


class EnableCellularRequest(ShipmentRequest):
    phone: str
    days: int = Field(..., ge=1, le=365)

    @field_validator("phone", mode="before")
    @classmethod
    def _phone_ten_digits(cls, value: Any) -> str:
        phone = normalize_phone(value)
        if phone is None:
            raise ValueError("phone must be a valid 10-digit number")
        return phone
