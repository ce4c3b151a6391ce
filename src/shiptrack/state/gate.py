"""Per-shipment cooldown between paid provider calls."""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from shiptrack.models.results import GateDecision
from shiptrack.state._locks import KeyedLocks

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class RefreshGate:
    """Cooldown gate.

    The anchor for a shipment is the later of the newest stored event
    time passed by the caller and the last acquisition made through this
    gate. An allowed acquisition immediately becomes the new anchor, so
    a second concurrent refresh of the same shipment is denied.

    In-process anchors are only kept while their cooldown is running.
    """

    def __init__(
        self,
        cooldown: timedelta,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._cooldown = cooldown
        self._clock = clock
        self._locks = KeyedLocks()
        self._anchors: dict[str, datetime] = {}

    @property
    def cooldown(self) -> timedelta:
        return self._cooldown

    @property
    def held_anchors(self) -> int:
        """Number of shipments with an in-process anchor still held."""
        return len(self._anchors)

    def _anchor(self, shipment_id: str, last_event_at: datetime | None) -> datetime | None:
        candidates = [ts for ts in (last_event_at, self._anchors.get(shipment_id)) if ts is not None]
        return max(candidates) if candidates else None

    def _drop_expired(self, now: datetime) -> None:
        expired = [key for key, anchor in self._anchors.items() if anchor + self._cooldown <= now]
        for key in expired:
            del self._anchors[key]

    def remaining(self, shipment_id: str, last_event_at: datetime | None) -> int:
        """Whole seconds left on the cooldown (0 when a call is allowed)."""
        anchor = self._anchor(shipment_id, last_event_at)
        if anchor is None:
            return 0
        left = (anchor + self._cooldown - self._clock()).total_seconds()
        return max(0, math.ceil(left))

    async def try_acquire(self, shipment_id: str, last_event_at: datetime | None) -> GateDecision:
        async with self._locks.get(shipment_id):
            now = self._clock()
            self._drop_expired(now)
            wait_seconds = self.remaining(shipment_id, last_event_at)
            if wait_seconds > 0:
                _logger.debug("Refresh denied for shipment=%s; %ds left", shipment_id, wait_seconds)
                return GateDecision(allowed=False, wait_seconds=wait_seconds)
            self._anchors[shipment_id] = now
            return GateDecision(allowed=True)

    async def release(self, shipment_id: str) -> None:
        """Forget the in-process anchor, e.g. when a call produced nothing billable."""
        async with self._locks.get(shipment_id):
            self._anchors.pop(shipment_id, None)
