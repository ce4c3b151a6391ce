"""Map data: grid clustering, viewport fitting and route polylines.

The output is plain data for the map layer; nothing here knows about
tiles or widgets.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime

from shiptrack._constants import (
    COORDINATE_PRECISION,
    DEFAULT_MAP_CENTER,
    DEFAULT_MAP_ZOOM,
    FALLBACK_ZOOM,
    ZOOM_BREAKPOINTS,
)
from shiptrack.ingestion.normalize import round_coordinate_key
from shiptrack.models.events import CrossingEvent, PingEvent
from shiptrack.models.results import ClusterGroup, MapPoint, MapView, Viewport


def to_point(event: CrossingEvent | PingEvent) -> MapPoint:
    meta: dict[str, object] = {"source_kind": event.source_kind.value}
    if isinstance(event, CrossingEvent):
        meta["vehicle_class"] = event.vehicle_class
    elif event.speed is not None:
        meta["speed"] = event.speed
    return MapPoint(
        latitude=event.latitude,
        longitude=event.longitude,
        timestamp=event.occurred_at,
        label=event.display_name,
        meta=meta,
    )


def _latest_index(points: Sequence[MapPoint]) -> int | None:
    """Index of the newest point; the last one wins ties and untimed input."""
    if not points:
        return None
    best: int | None = None
    best_ts: datetime | None = None
    for index, point in enumerate(points):
        ts = point.timestamp
        if not isinstance(ts, datetime):
            continue
        if best_ts is None or ts >= best_ts:
            best, best_ts = index, ts
    return best if best is not None else len(points) - 1


def cluster(points: Sequence[MapPoint], *, precision: int = COORDINATE_PRECISION) -> list[ClusterGroup]:
    """Group points sharing a rounded coordinate.

    Groups come back in first-seen order and take the coordinates of
    their first member. The group holding the newest point, and that
    point itself, are flagged ``is_latest``.
    """
    latest = _latest_index(points)
    grouped: dict[str, list[MapPoint]] = {}
    latest_key: str | None = None
    for index, point in enumerate(points):
        key = round_coordinate_key(point.latitude, point.longitude, precision)
        if index == latest:
            point = point.model_copy(update={"is_latest": True})
            latest_key = key
        grouped.setdefault(key, []).append(point)

    return [
        ClusterGroup(
            key=key,
            latitude=members[0].latitude,
            longitude=members[0].longitude,
            members=members,
            is_latest=key == latest_key,
        )
        for key, members in grouped.items()
    ]


def zoom_for_span(span: float) -> int:
    for threshold, zoom in ZOOM_BREAKPOINTS:
        if span > threshold:
            return zoom
    return FALLBACK_ZOOM


def fit_viewport(points: Iterable[MapPoint]) -> Viewport:
    """Center on the bounding-box midpoint; zoom from the larger span.

    This is a coarse threshold table, not a real fit-to-bounds.
    """
    lats: list[float] = []
    lngs: list[float] = []
    for point in points:
        lats.append(point.latitude)
        lngs.append(point.longitude)
    if not lats:
        return Viewport(latitude=DEFAULT_MAP_CENTER[0], longitude=DEFAULT_MAP_CENTER[1], zoom=DEFAULT_MAP_ZOOM)

    min_lat, max_lat = min(lats), max(lats)
    min_lng, max_lng = min(lngs), max(lngs)
    span = max(max_lat - min_lat, max_lng - min_lng)
    return Viewport(
        latitude=(min_lat + max_lat) / 2,
        longitude=(min_lng + max_lng) / 2,
        zoom=zoom_for_span(span),
    )


def polyline(points: Sequence[MapPoint]) -> list[tuple[float, float]]:
    """Route path in time order; untimed points follow in input order."""
    if len(points) < 2:
        return []
    timed = sorted((p for p in points if isinstance(p.timestamp, datetime)), key=lambda p: p.timestamp)
    untimed = [p for p in points if not isinstance(p.timestamp, datetime)]
    return [(p.latitude, p.longitude) for p in [*timed, *untimed]]


def build_map_view(events: Sequence[CrossingEvent | PingEvent]) -> MapView:
    points = [to_point(event) for event in events]
    latest = _latest_index(points)
    if latest is not None:
        points[latest] = points[latest].model_copy(update={"is_latest": True})
    return MapView(
        points=points,
        clusters=cluster(points),
        polyline=polyline(points),
        viewport=fit_viewport(points),
    )
