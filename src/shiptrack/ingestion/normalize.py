"""Normalization helpers.

Centralizes defensive parsing of provider payloads.
"""

from __future__ import annotations

import math
from datetime import UTC, datetime
from typing import Any

_READER_TIME_FORMATS = ("%Y-%m-%d %H:%M:%S", "%Y-%m-%d %H:%M")


def safe_float(value: Any) -> float | None:
    if value is None or value == "" or value == "--":
        return None
    if isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def safe_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text if text else None


def is_valid_coordinate(latitude: float, longitude: float) -> bool:
    return -90.0 <= latitude <= 90.0 and -180.0 <= longitude <= 180.0


def parse_coordinates(latitude: Any, longitude: Any) -> tuple[float, float] | None:
    """Parse a latitude/longitude pair, rejecting garbage and out-of-range values."""
    lat = safe_float(latitude)
    lng = safe_float(longitude)
    if lat is None or lng is None:
        return None
    if not is_valid_coordinate(lat, lng):
        return None
    return lat, lng


def parse_geocode(value: Any) -> tuple[float, float] | None:
    """Split a ``"lat,lng"`` string into two floats.

    Returns ``None`` for anything that is not exactly two numeric parts.
    """
    text = safe_str(value)
    if text is None:
        return None
    parts = text.split(",")
    if len(parts) != 2:
        return None
    return parse_coordinates(parts[0].strip(), parts[1].strip())


def parse_reader_time(value: Any) -> datetime | None:
    """Parse a provider timestamp into an aware UTC datetime.

    Accepts ``"YYYY-MM-DD HH:MM:SS"`` with optional fractional seconds
    (naive, taken as UTC), ISO-8601 strings, and epoch seconds or
    milliseconds.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=UTC)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        ts = safe_float(value)
        if ts is None or ts <= 0:
            return None
        # Treat values above 1e11 as milliseconds.
        if ts > 1e11:
            ts /= 1000.0
        return datetime.fromtimestamp(ts, tz=UTC)

    text = safe_str(value)
    if text is None:
        return None

    head = text.split(".", 1)[0] if " " in text else text
    for fmt in _READER_TIME_FORMATS:
        try:
            return datetime.strptime(head, fmt).replace(tzinfo=UTC)
        except ValueError:
            continue

    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def time_bucket(moment: datetime, bucket_seconds: int) -> int:
    """Index of the fixed-width time bucket holding *moment*."""
    return int(moment.timestamp()) // bucket_seconds


def round_coordinate_key(latitude: float, longitude: float, precision: int = 4) -> str:
    """Map grid cell key, e.g. ``"17.3970,76.7062"``."""
    return f"{latitude:.{precision}f},{longitude:.{precision}f}"


def normalize_phone(value: Any) -> str | None:
    """Strip separators and a leading country code; return 10 digits or ``None``."""
    text = safe_str(value)
    if text is None:
        return None
    digits = "".join(ch for ch in text if ch not in " -+()")
    if len(digits) == 12 and digits.startswith("91"):
        digits = digits[2:]
    if len(digits) != 10 or not digits.isdigit():
        return None
    return digits
