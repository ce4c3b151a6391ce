"""Result types returned by the tracking components."""

from __future__ import annotations

from typing import Any

from pydantic import Field

from shiptrack.models._base import TrackBaseModel
from shiptrack.models.events import CrossingEvent, PingEvent, SourceKind
from shiptrack.models.registration import SimRegistration
from shiptrack.models.usage import UsagePeriod


class ProviderResult(TrackBaseModel):
    """Parsed output of one provider call.

    ``error_reason`` is informational only: it carries the original
    failure when the records are a synthetic stand-in.
    """

    records: list[CrossingEvent | PingEvent] = Field(default_factory=list)
    source_kind: SourceKind = SourceKind.REAL
    error_reason: str | None = None
    current: PingEvent | None = None
    dropped: int = Field(default=0, ge=0)

    @property
    def is_mock(self) -> bool:
        return self.source_kind == SourceKind.MOCK


class MergeResult(TrackBaseModel):
    added: int = Field(default=0, ge=0)
    events: list[CrossingEvent | PingEvent] = Field(default_factory=list)


class GateDecision(TrackBaseModel):
    allowed: bool
    wait_seconds: int = Field(default=0, ge=0)


class LifecycleState(TrackBaseModel):
    enabled: bool
    reason: str | None = None

    @classmethod
    def enabled_state(cls) -> LifecycleState:
        return cls(enabled=True)

    @classmethod
    def disabled(cls, reason: str) -> LifecycleState:
        return cls(enabled=False, reason=reason)


class CrossingRefresh(TrackBaseModel):
    """Successful crossing refresh."""

    events: list[CrossingEvent] = Field(default_factory=list)
    new_count: int = 0
    source_kind: SourceKind = SourceKind.REAL
    error_reason: str | None = None
    usage: UsagePeriod | None = None


class RefreshDenied(TrackBaseModel):
    """Crossing refresh refused because the cooldown is still running.

    Carries the cached history so the caller can keep displaying it.
    """

    wait_seconds: int = Field(..., ge=0)
    events: list[CrossingEvent] = Field(default_factory=list)


class PingRefresh(TrackBaseModel):
    current: PingEvent | None = None
    history: list[PingEvent] = Field(default_factory=list)
    new_count: int = 0
    source_kind: SourceKind = SourceKind.REAL


class EnableResult(TrackBaseModel):
    registration: SimRegistration
    reused_existing: bool = False


class MapPoint(TrackBaseModel):
    latitude: float
    longitude: float
    timestamp: Any = None
    label: str | None = None
    is_latest: bool = False
    meta: dict[str, Any] = Field(default_factory=dict)


class ClusterGroup(TrackBaseModel):
    key: str
    latitude: float
    longitude: float
    members: list[MapPoint] = Field(default_factory=list)
    is_latest: bool = False

    @property
    def count(self) -> int:
        return len(self.members)


class Viewport(TrackBaseModel):
    latitude: float
    longitude: float
    zoom: int


class MapView(TrackBaseModel):
    """Everything the map layer needs to draw a route."""

    points: list[MapPoint] = Field(default_factory=list)
    clusters: list[ClusterGroup] = Field(default_factory=list)
    polyline: list[tuple[float, float]] = Field(default_factory=list)
    viewport: Viewport
