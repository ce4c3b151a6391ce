"""Internal constants shared across the library."""

from __future__ import annotations

from decimal import Decimal

USER_AGENT = "shiptrack/1"

CROSSING_PROVIDER = "crossing"
CELLULAR_PROVIDER = "cellular"

#: Minimum interval between paid crossing calls for one shipment.
CROSSING_COOLDOWN_SECONDS: float = 2 * 3600

CROSSING_CALL_COST = Decimal("4.00")
PING_CALL_COST = Decimal("1.00")
SIM_DAILY_COST = Decimal("1.00")

DEFAULT_MONTHLY_API_LIMIT = 1000
DEFAULT_REQUEST_TIMEOUT: float = 12.0
DEFAULT_PING_HISTORY_LIMIT = 20
DEFAULT_TIMESTAMP_BUCKET_SECONDS = 60
DEFAULT_CALL_LOG_RETENTION_DAYS = 30

# Seed/demo plaza names that must never show up in live history.
PLACEHOLDER_LOCATION_NAMES: frozenset[str] = frozenset(
    {
        "Jaipur Entry Toll",
        "Kherki Daula Toll Plaza",
        "Manesar Toll Plaza",
        "Demo Toll Plaza",
    }
)

# ------------------------------------------------------------------
# Map viewport
# ------------------------------------------------------------------

#: Rounding used for map grid cells (~11 m).
COORDINATE_PRECISION = 4

DEFAULT_MAP_CENTER: tuple[float, float] = (23.0225, 72.5714)
DEFAULT_MAP_ZOOM = 7

#: (span in degrees, zoom) checked top to bottom with ``span > threshold``.
ZOOM_BREAKPOINTS: tuple[tuple[float, int], ...] = (
    (5.0, 6),
    (2.0, 7),
    (1.0, 8),
    (0.5, 9),
)
FALLBACK_ZOOM = 10

# ------------------------------------------------------------------
# Synthetic crossing records returned when the toll provider is down
# ------------------------------------------------------------------

MOCK_CROSSING_RECORDS: tuple[dict[str, str], ...] = (
    {
        "readerReadTime": "2025-10-01 02:52:12",
        "tollPlazaName": "Pattana",
        "tollPlazaGeocode": "17.3970162,76.7061871",
        "vehicleType": "VC10",
    },
    {
        "readerReadTime": "2025-09-30 19:52:38",
        "tollPlazaName": "Halaharvi TOLL PLAZA",
        "tollPlazaGeocode": "15.819781,77.454008",
        "vehicleType": "VC10",
    },
)
