from __future__ import annotations

from datetime import UTC, datetime

import pytest

from shiptrack.exceptions import LifecycleDisabledError
from shiptrack.lifecycle import InMemoryBookingDirectory, TrackingLifecycle, evaluate
from shiptrack.models.shipment import AssignmentStatus, Shipment, ShipmentStatus, VehicleAssignment


def _assignment(**overrides: object) -> VehicleAssignment:
    fields: dict[str, object] = {
        "id": "A-1",
        "shipment_id": "SHP-1",
        "vehicle_number": "ka 01 ab 1234",
    }
    fields.update(overrides)
    return VehicleAssignment.model_validate(fields)


def test_vehicle_number_is_normalized() -> None:
    assert _assignment().vehicle_number == "KA01AB1234"


@pytest.mark.parametrize(
    ("shipment", "assignment", "enabled", "reason"),
    [
        (None, _assignment(), False, "booking not found"),
        (Shipment(id="SHP-1", status=ShipmentStatus.DELIVERED), _assignment(), False, "booking delivered"),
        (Shipment(id="SHP-1", status=ShipmentStatus.CANCELLED), _assignment(), False, "booking cancelled"),
        (Shipment(id="SHP-1", status=ShipmentStatus.IN_TRANSIT), None, False, "no active assignment"),
        (
            Shipment(id="SHP-1", status=ShipmentStatus.IN_TRANSIT),
            _assignment(status=AssignmentStatus.COMPLETED),
            False,
            "no active assignment",
        ),
        (
            Shipment(id="SHP-1", status=ShipmentStatus.IN_TRANSIT),
            _assignment(tracking_end_at="2025-10-02 00:00:00"),
            False,
            "tracking period ended",
        ),
        (
            Shipment(id="SHP-1", status=ShipmentStatus.BOOKED, tracking_end_at=datetime(2025, 10, 2, tzinfo=UTC)),
            _assignment(),
            False,
            "tracking period ended",
        ),
        (Shipment(id="SHP-1", status=ShipmentStatus.IN_TRANSIT), _assignment(), True, None),
    ],
)
def test_evaluate(
    shipment: Shipment | None,
    assignment: VehicleAssignment | None,
    enabled: bool,
    reason: str | None,
) -> None:
    state = evaluate(shipment, assignment)
    assert state.enabled is enabled
    assert state.reason == reason


def test_terminal_status_wins_over_active_assignment() -> None:
    state = evaluate(Shipment(id="SHP-1", status=ShipmentStatus.DELIVERED), _assignment())
    assert state.reason == "booking delivered"


@pytest.mark.asyncio
async def test_check_rereads_directory_every_time() -> None:
    directory = InMemoryBookingDirectory(
        shipments=[Shipment(id="SHP-1", status=ShipmentStatus.IN_TRANSIT)],
        assignments=[_assignment()],
    )
    lifecycle = TrackingLifecycle(directory)
    assert (await lifecycle.check("SHP-1")).enabled is True

    directory.put_shipment(Shipment(id="SHP-1", status=ShipmentStatus.DELIVERED))

    state = await lifecycle.check("SHP-1")
    assert state.enabled is False
    assert state.reason == "booking delivered"


@pytest.mark.asyncio
async def test_require_enabled_returns_active_assignment() -> None:
    directory = InMemoryBookingDirectory(
        shipments=[Shipment(id="SHP-1", status=ShipmentStatus.IN_TRANSIT)],
        assignments=[
            _assignment(id="A-0", vehicle_number="MH12XY0001", status=AssignmentStatus.COMPLETED),
            _assignment(),
        ],
    )
    assignment = await TrackingLifecycle(directory).require_enabled("SHP-1")
    assert assignment.id == "A-1"


@pytest.mark.asyncio
async def test_require_enabled_raises_with_reason() -> None:
    lifecycle = TrackingLifecycle(InMemoryBookingDirectory())

    with pytest.raises(LifecycleDisabledError) as exc_info:
        await lifecycle.require_enabled("SHP-404")
    assert exc_info.value.reason == "booking not found"
