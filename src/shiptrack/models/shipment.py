"""Shipment and vehicle assignment records read from the booking system."""

from __future__ import annotations

from enum import StrEnum

from pydantic import field_validator

from shiptrack.models._base import TrackBaseModel, UtcTimestamp


class ShipmentStatus(StrEnum):
    BOOKED = "BOOKED"
    DISPATCHED = "DISPATCHED"
    IN_TRANSIT = "IN_TRANSIT"
    AT_WAREHOUSE = "AT_WAREHOUSE"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in (ShipmentStatus.DELIVERED, ShipmentStatus.CANCELLED)


class AssignmentStatus(StrEnum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    UNASSIGNED = "UNASSIGNED"


class Shipment(TrackBaseModel):
    """A tracked booking.

    Owned by the booking subsystem; the tracker only reads it.
    """

    id: str
    status: ShipmentStatus
    tracking_end_at: UtcTimestamp | None = None

    @field_validator("id")
    @classmethod
    def _id_non_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("id must be non-empty")
        return value


class VehicleAssignment(TrackBaseModel):
    """A vehicle assigned to a shipment."""

    id: str
    shipment_id: str
    vehicle_number: str
    status: AssignmentStatus = AssignmentStatus.ACTIVE
    assigned_at: UtcTimestamp | None = None
    tracking_end_at: UtcTimestamp | None = None

    @field_validator("vehicle_number")
    @classmethod
    def _normalize_vehicle_number(cls, value: str) -> str:
        return "".join(value.split()).upper()

    @property
    def is_active(self) -> bool:
        return self.status == AssignmentStatus.ACTIVE

    @property
    def tracking_ended(self) -> bool:
        return self.tracking_end_at is not None
