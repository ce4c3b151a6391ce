"""Filtering and ordering rules for stored location events.

Kept free of storage and network concerns so the same rules apply to
merges and to cache reads.
"""

from __future__ import annotations

from collections.abc import Collection, Iterable
from typing import TypeVar

from shiptrack.models.events import CrossingEvent, PingEvent

TEvent = TypeVar("TEvent", CrossingEvent, PingEvent)


def is_placeholder(event: CrossingEvent | PingEvent, deny_names: Collection[str]) -> bool:
    """Whether the event's plaza/location name is on the deny-list (exact match)."""
    name = event.plaza_name if isinstance(event, CrossingEvent) else event.location_name
    return name is not None and name in deny_names


def without_placeholders(events: Iterable[TEvent], deny_names: Collection[str]) -> list[TEvent]:
    return [event for event in events if not is_placeholder(event, deny_names)]


def sort_by_time(events: Iterable[TEvent]) -> list[TEvent]:
    """Ascending by event time; stable for equal timestamps."""
    return sorted(events, key=lambda event: event.occurred_at)
