"""shiptrack - Async vehicle location tracking for shipments."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("shiptrack")
except PackageNotFoundError:
    __version__ = "0+local"
from shiptrack.config import TrackerConfig
from shiptrack.exceptions import (
    LifecycleDisabledError,
    NotRegisteredError,
    QuotaExceededError,
    TrackingConfigError,
    TrackingError,
    TrackingTransportError,
)
from shiptrack.lifecycle import BookingDirectory, InMemoryBookingDirectory
from shiptrack.models import (
    CrossingEvent,
    CrossingRefresh,
    EnableResult,
    MapView,
    PingEvent,
    PingRefresh,
    RefreshDenied,
    Shipment,
    ShipmentStatus,
    SimRegistration,
    SourceKind,
    UsagePeriod,
    UsageSummary,
    VehicleAssignment,
)
from shiptrack.state.repository import InMemoryRepository, TrackingRepository
from shiptrack.tracker import ShipmentTracker

__all__ = [
    "__version__",
    "BookingDirectory",
    "CrossingEvent",
    "CrossingRefresh",
    "EnableResult",
    "InMemoryBookingDirectory",
    "InMemoryRepository",
    "LifecycleDisabledError",
    "MapView",
    "NotRegisteredError",
    "PingEvent",
    "PingRefresh",
    "QuotaExceededError",
    "RefreshDenied",
    "Shipment",
    "ShipmentStatus",
    "ShipmentTracker",
    "SimRegistration",
    "SourceKind",
    "TrackerConfig",
    "TrackingConfigError",
    "TrackingError",
    "TrackingRepository",
    "TrackingTransportError",
    "UsagePeriod",
    "UsageSummary",
    "VehicleAssignment",
]
