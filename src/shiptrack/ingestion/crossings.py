"""Crossing record ingestion.

Turns raw toll-provider records into :class:`CrossingEvent` objects.
Records that fail strict parsing are dropped, never the whole batch.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from pydantic import ValidationError

from shiptrack.ingestion.normalize import parse_geocode, parse_reader_time
from shiptrack.models.events import CrossingEvent, SourceKind
from shiptrack.models.wire import CrossingRecord

_logger = logging.getLogger(__name__)

_DEFAULT_VEHICLE_CLASS = "VC10"


def parse_crossing(
    shipment_id: str,
    item: Any,
    *,
    source_kind: SourceKind = SourceKind.REAL,
) -> CrossingEvent | None:
    """Parse one raw record; ``None`` when it is unusable."""
    if not isinstance(item, dict):
        return None
    try:
        record = CrossingRecord.model_validate(item)
    except ValidationError:
        return None

    if record.toll_plaza_name is None:
        return None
    coords = parse_geocode(record.toll_plaza_geocode)
    if coords is None:
        return None
    crossed_at = parse_reader_time(record.reader_read_time)
    if crossed_at is None:
        return None

    latitude, longitude = coords
    return CrossingEvent(
        shipment_id=shipment_id,
        plaza_name=record.toll_plaza_name,
        latitude=latitude,
        longitude=longitude,
        crossed_at=crossed_at,
        vehicle_class=record.vehicle_type or _DEFAULT_VEHICLE_CLASS,
        source_kind=source_kind,
        raw=record.raw,
    )


def parse_crossings(
    shipment_id: str,
    items: Iterable[Any],
    *,
    source_kind: SourceKind = SourceKind.REAL,
) -> tuple[list[CrossingEvent], int]:
    """Parse a batch, returning ``(events, dropped_count)``."""
    events: list[CrossingEvent] = []
    dropped = 0
    for item in items:
        event = parse_crossing(shipment_id, item, source_kind=source_kind)
        if event is None:
            dropped += 1
            _logger.warning("Dropping unparsable crossing record for shipment=%s: %r", shipment_id, item)
            continue
        events.append(event)
    return events, dropped
