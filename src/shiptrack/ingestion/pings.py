"""Cellular ping ingestion."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from pydantic import ValidationError

from shiptrack.ingestion.normalize import parse_coordinates, parse_reader_time
from shiptrack.models.events import PingEvent, SourceKind
from shiptrack.models.wire import PingRecord

_logger = logging.getLogger(__name__)


def parse_ping(
    shipment_id: str,
    item: Any,
    *,
    source_kind: SourceKind = SourceKind.REAL,
) -> PingEvent | None:
    if not isinstance(item, dict):
        return None
    try:
        record = PingRecord.model_validate(item)
    except ValidationError:
        return None

    coords = parse_coordinates(record.latitude, record.longitude)
    if coords is None:
        return None
    # 0,0 is what the provider reports while consent is still pending.
    if coords == (0.0, 0.0):
        return None
    recorded_at = parse_reader_time(record.recorded_at)
    if recorded_at is None:
        return None

    speed = record.speed if record.speed is not None and record.speed >= 0 else None
    latitude, longitude = coords
    return PingEvent(
        shipment_id=shipment_id,
        latitude=latitude,
        longitude=longitude,
        speed=speed,
        recorded_at=recorded_at,
        location_name=record.location_name,
        source_kind=source_kind,
        raw=record.raw,
    )


def parse_pings(
    shipment_id: str,
    items: Iterable[Any],
    *,
    source_kind: SourceKind = SourceKind.REAL,
) -> tuple[list[PingEvent], int]:
    """Parse a batch, returning ``(events, dropped_count)``."""
    events: list[PingEvent] = []
    dropped = 0
    for item in items:
        event = parse_ping(shipment_id, item, source_kind=source_kind)
        if event is None:
            dropped += 1
            _logger.warning("Dropping unparsable ping for shipment=%s: %r", shipment_id, item)
            continue
        events.append(event)
    return events, dropped
