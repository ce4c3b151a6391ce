"""Append-only location history per shipment.

This is the only component allowed to persist location events.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Collection, Sequence
from datetime import datetime

from shiptrack._constants import DEFAULT_TIMESTAMP_BUCKET_SECONDS, PLACEHOLDER_LOCATION_NAMES
from shiptrack.models.events import CrossingEvent, IdentityKey, PingEvent
from shiptrack.models.results import MergeResult
from shiptrack.state._locks import KeyedLocks
from shiptrack.state.policy import TEvent, is_placeholder, sort_by_time, without_placeholders
from shiptrack.state.repository import TrackingRepository

_logger = logging.getLogger(__name__)


class EventStore:
    """Idempotent merge of provider events into stored history.

    Merging the same batch twice adds nothing the second time, and a
    merge never removes an event that was accepted earlier. Events whose
    plaza/location name is on the placeholder deny-list are never stored
    and never returned.
    """

    def __init__(
        self,
        repository: TrackingRepository,
        *,
        deny_names: Collection[str] = PLACEHOLDER_LOCATION_NAMES,
        bucket_seconds: int = DEFAULT_TIMESTAMP_BUCKET_SECONDS,
    ) -> None:
        self._repository = repository
        self._deny_names = frozenset(deny_names)
        self._bucket_seconds = bucket_seconds
        self._locks = KeyedLocks()

    @property
    def deny_names(self) -> frozenset[str]:
        return self._deny_names

    async def _merge(
        self,
        shipment_id: str,
        incoming: Sequence[TEvent],
        *,
        kind: str,
        load: Callable[[str], Awaitable[list[TEvent]]],
        append: Callable[[str, Sequence[TEvent]], Awaitable[None]],
    ) -> MergeResult:
        async with self._locks.get((kind, shipment_id)):
            existing = await load(shipment_id)
            known: set[IdentityKey] = {event.identity_key(self._bucket_seconds) for event in existing}

            added: list[TEvent] = []
            for event in incoming:
                if event.shipment_id != shipment_id:
                    raise ValueError(f"{kind} event for shipment {event.shipment_id} merged into {shipment_id}")
                if is_placeholder(event, self._deny_names):
                    _logger.info("Skipping placeholder %s %r for shipment=%s", kind, event.display_name, shipment_id)
                    continue
                key = event.identity_key(self._bucket_seconds)
                if key in known:
                    continue
                known.add(key)
                added.append(event)

            if added:
                await append(shipment_id, added)
                _logger.info("Merged %d new %s event(s) for shipment=%s", len(added), kind, shipment_id)

        merged = sort_by_time(without_placeholders([*existing, *added], self._deny_names))
        return MergeResult(added=len(added), events=merged)

    async def merge_crossings(self, shipment_id: str, incoming: Sequence[CrossingEvent]) -> MergeResult:
        return await self._merge(
            shipment_id,
            incoming,
            kind="crossing",
            load=self._repository.list_crossings,
            append=self._repository.add_crossings,
        )

    async def merge_pings(self, shipment_id: str, incoming: Sequence[PingEvent]) -> MergeResult:
        return await self._merge(
            shipment_id,
            incoming,
            kind="ping",
            load=self._repository.list_pings,
            append=self._repository.add_pings,
        )

    async def load_crossings(self, shipment_id: str, *, include_mock: bool = True) -> list[CrossingEvent]:
        """Stored crossings, time-ascending, without placeholder names."""
        events = without_placeholders(await self._repository.list_crossings(shipment_id), self._deny_names)
        if not include_mock:
            events = [event for event in events if not event.is_mock]
        return sort_by_time(events)

    async def recent_pings(self, shipment_id: str, limit: int) -> list[PingEvent]:
        """The newest *limit* pings, most recent first."""
        events = without_placeholders(await self._repository.list_pings(shipment_id), self._deny_names)
        return list(reversed(sort_by_time(events)))[:limit]

    async def latest_real_crossing_at(self, shipment_id: str) -> datetime | None:
        events = await self.load_crossings(shipment_id, include_mock=False)
        if not events:
            return None
        return events[-1].crossed_at
