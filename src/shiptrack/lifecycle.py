"""Tracking lifecycle.

Decides whether a shipment may be tracked right now. The decision is
re-read from the booking system on every refresh because shipment and
assignment state change underneath the tracker.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Protocol

from shiptrack.exceptions import LifecycleDisabledError
from shiptrack.models.results import LifecycleState
from shiptrack.models.shipment import Shipment, VehicleAssignment

_logger = logging.getLogger(__name__)

REASON_NOT_FOUND = "booking not found"
REASON_NO_ASSIGNMENT = "no active assignment"
REASON_PERIOD_ENDED = "tracking period ended"


class BookingDirectory(Protocol):
    """Read-only view of the booking subsystem."""

    async def get_shipment(self, shipment_id: str) -> Shipment | None: ...

    async def get_active_assignment(self, shipment_id: str) -> VehicleAssignment | None: ...


class InMemoryBookingDirectory:
    """Booking directory backed by dicts, for tests and the CLI."""

    def __init__(
        self,
        shipments: Iterable[Shipment] = (),
        assignments: Iterable[VehicleAssignment] = (),
    ) -> None:
        self._shipments: dict[str, Shipment] = {s.id: s for s in shipments}
        self._assignments: dict[str, list[VehicleAssignment]] = {}
        for assignment in assignments:
            self.put_assignment(assignment)

    def put_shipment(self, shipment: Shipment) -> None:
        self._shipments[shipment.id] = shipment

    def put_assignment(self, assignment: VehicleAssignment) -> None:
        existing = [a for a in self._assignments.get(assignment.shipment_id, []) if a.id != assignment.id]
        existing.append(assignment)
        self._assignments[assignment.shipment_id] = existing

    async def get_shipment(self, shipment_id: str) -> Shipment | None:
        return self._shipments.get(shipment_id)

    async def get_active_assignment(self, shipment_id: str) -> VehicleAssignment | None:
        for assignment in reversed(self._assignments.get(shipment_id, [])):
            if assignment.is_active:
                return assignment
        return None


def evaluate(shipment: Shipment | None, assignment: VehicleAssignment | None) -> LifecycleState:
    """Resolve the lifecycle state; the first matching rule wins.

    1. unknown shipment, or status DELIVERED/CANCELLED
    2. no active vehicle assignment
    3. tracking end timestamp set
    4. otherwise enabled
    """
    if shipment is None:
        return LifecycleState.disabled(REASON_NOT_FOUND)
    if shipment.status.is_terminal:
        return LifecycleState.disabled(f"booking {shipment.status.value.lower()}")
    if assignment is None or not assignment.is_active:
        return LifecycleState.disabled(REASON_NO_ASSIGNMENT)
    if assignment.tracking_ended or shipment.tracking_end_at is not None:
        return LifecycleState.disabled(REASON_PERIOD_ENDED)
    return LifecycleState.enabled_state()


class TrackingLifecycle:
    """Lifecycle checks against a :class:`BookingDirectory`."""

    def __init__(self, directory: BookingDirectory) -> None:
        self._directory = directory

    async def resolve(self, shipment_id: str) -> tuple[LifecycleState, VehicleAssignment | None]:
        shipment = await self._directory.get_shipment(shipment_id)
        assignment = await self._directory.get_active_assignment(shipment_id) if shipment is not None else None
        return evaluate(shipment, assignment), assignment

    async def check(self, shipment_id: str) -> LifecycleState:
        state, _ = await self.resolve(shipment_id)
        return state

    async def require_enabled(self, shipment_id: str) -> VehicleAssignment:
        """Return the active assignment or raise :class:`LifecycleDisabledError`."""
        state, assignment = await self.resolve(shipment_id)
        if not state.enabled or assignment is None:
            reason = state.reason or REASON_NO_ASSIGNMENT
            _logger.info("Tracking disabled for shipment=%s: %s", shipment_id, reason)
            raise LifecycleDisabledError(shipment_id, reason)
        return assignment
