"""Data models for shipment tracking."""

from shiptrack.models._base import TrackBaseModel, UtcTimestamp, WireModel
from shiptrack.models.events import CrossingEvent, IdentityKey, LocationEvent, PingEvent, SourceKind
from shiptrack.models.registration import SimRegistration
from shiptrack.models.requests import EnableCellularRequest, ShipmentRequest
from shiptrack.models.results import (
    ClusterGroup,
    CrossingRefresh,
    EnableResult,
    GateDecision,
    LifecycleState,
    MapPoint,
    MapView,
    MergeResult,
    PingRefresh,
    ProviderResult,
    RefreshDenied,
    Viewport,
)
from shiptrack.models.shipment import AssignmentStatus, Shipment, ShipmentStatus, VehicleAssignment
from shiptrack.models.usage import ApiCallRecord, DailyUsage, UsagePeriod, UsageSummary, period_key_for
from shiptrack.models.wire import CellularResponse, CrossingRecord, PingRecord

__all__ = [
    "ApiCallRecord",
    "AssignmentStatus",
    "CellularResponse",
    "ClusterGroup",
    "CrossingEvent",
    "CrossingRecord",
    "CrossingRefresh",
    "DailyUsage",
    "EnableCellularRequest",
    "EnableResult",
    "GateDecision",
    "IdentityKey",
    "LifecycleState",
    "LocationEvent",
    "MapPoint",
    "MapView",
    "MergeResult",
    "PingEvent",
    "PingRecord",
    "PingRefresh",
    "ProviderResult",
    "RefreshDenied",
    "Shipment",
    "ShipmentRequest",
    "ShipmentStatus",
    "SimRegistration",
    "SourceKind",
    "TrackBaseModel",
    "UsagePeriod",
    "UsageSummary",
    "UtcTimestamp",
    "VehicleAssignment",
    "Viewport",
    "WireModel",
    "period_key_for",
]
