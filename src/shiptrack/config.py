"""Tracker configuration for shiptrack."""

from __future__ import annotations

import dataclasses
import os
from decimal import Decimal, InvalidOperation
from typing import Any

from shiptrack._constants import (
    CROSSING_CALL_COST,
    CROSSING_COOLDOWN_SECONDS,
    DEFAULT_CALL_LOG_RETENTION_DAYS,
    DEFAULT_MONTHLY_API_LIMIT,
    DEFAULT_PING_HISTORY_LIMIT,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_TIMESTAMP_BUCKET_SECONDS,
    PING_CALL_COST,
    PLACEHOLDER_LOCATION_NAMES,
    SIM_DAILY_COST,
)
from shiptrack.exceptions import TrackingConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_decimal(name: str, value: str) -> Decimal:
    try:
        return Decimal(value.strip())
    except InvalidOperation as exc:
        raise TrackingConfigError(f"{name} must be a decimal amount, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class TrackerConfig:
    """Tracker configuration.

    Parameters
    ----------
    crossing_base_url : str
        Base URL of the toll-crossing provider.
    crossing_api_key : str
        API key sent as ``x-api-key`` to the toll-crossing provider.
    cellular_base_url : str
        Base URL of the cellular location provider.
    cellular_api_key : str
        API key sent as ``x-api-key`` to the cellular provider.
    request_timeout : float
        Seconds before a provider call is abandoned and treated as a
        transport failure.
    crossing_cooldown : float
        Minimum seconds between paid crossing calls for one shipment.
    crossing_call_cost : Decimal
        Price of one real crossing call.
    ping_call_cost : Decimal
        Price of one real cellular ping.
    sim_daily_cost : Decimal
        Daily price stored on new SIM registrations.
    monthly_api_limit : int
        Crossing calls allowed per calendar month.
    ping_history_limit : int
        Number of recent pings returned to callers.
    timestamp_bucket_seconds : int
        Width of the time bucket used in event identity keys.
    placeholder_location_names : frozenset of str
        Plaza/location names that are never kept in live history.
    use_mock_data : bool
        Serve synthetic crossing data without calling the provider.
    call_log_retention_days : int
        Age after which API call audit records are pruned.
    """

    crossing_base_url: str = "https://apisathi.com"
    crossing_api_key: str = ""
    cellular_base_url: str = "https://api.lorryinfo.in"
    cellular_api_key: str = ""
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    crossing_cooldown: float = CROSSING_COOLDOWN_SECONDS
    crossing_call_cost: Decimal = CROSSING_CALL_COST
    ping_call_cost: Decimal = PING_CALL_COST
    sim_daily_cost: Decimal = SIM_DAILY_COST
    monthly_api_limit: int = DEFAULT_MONTHLY_API_LIMIT
    ping_history_limit: int = DEFAULT_PING_HISTORY_LIMIT
    timestamp_bucket_seconds: int = DEFAULT_TIMESTAMP_BUCKET_SECONDS
    placeholder_location_names: frozenset[str] = PLACEHOLDER_LOCATION_NAMES
    use_mock_data: bool = False
    call_log_retention_days: int = DEFAULT_CALL_LOG_RETENTION_DAYS

    def __post_init__(self) -> None:
        if self.request_timeout <= 0:
            raise TrackingConfigError("request_timeout must be positive")
        if self.crossing_cooldown < 0:
            raise TrackingConfigError("crossing_cooldown must not be negative")
        if self.monthly_api_limit < 0:
            raise TrackingConfigError("monthly_api_limit must not be negative")
        if self.ping_history_limit < 1:
            raise TrackingConfigError("ping_history_limit must be at least 1")
        if self.timestamp_bucket_seconds < 1:
            raise TrackingConfigError("timestamp_bucket_seconds must be at least 1")

    @classmethod
    def from_env(cls, **overrides: Any) -> TrackerConfig:
        """Create configuration from environment variables.

        Reads optional ``SHIPTRACK_*`` variables. Explicit keyword
        arguments override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        TrackerConfig
            Populated configuration.
        """
        env = os.environ

        _ENV_STR_MAP = {
            "SHIPTRACK_CROSSING_BASE_URL": "crossing_base_url",
            "SHIPTRACK_CROSSING_API_KEY": "crossing_api_key",
            "SHIPTRACK_CELLULAR_BASE_URL": "cellular_base_url",
            "SHIPTRACK_CELLULAR_API_KEY": "cellular_api_key",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        _ENV_FLOAT_MAP = {
            "SHIPTRACK_REQUEST_TIMEOUT": "request_timeout",
            "SHIPTRACK_CROSSING_COOLDOWN": "crossing_cooldown",
        }
        for env_key, field_name in _ENV_FLOAT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = float(val)

        _ENV_INT_MAP = {
            "SHIPTRACK_MONTHLY_API_LIMIT": "monthly_api_limit",
            "SHIPTRACK_PING_HISTORY_LIMIT": "ping_history_limit",
            "SHIPTRACK_CALL_LOG_RETENTION_DAYS": "call_log_retention_days",
        }
        for env_key, field_name in _ENV_INT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = int(val)

        _ENV_DECIMAL_MAP = {
            "SHIPTRACK_CROSSING_CALL_COST": "crossing_call_cost",
            "SHIPTRACK_PING_CALL_COST": "ping_call_cost",
            "SHIPTRACK_SIM_DAILY_COST": "sim_daily_cost",
        }
        for env_key, field_name in _ENV_DECIMAL_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = _env_decimal(env_key, val)

        # Comma separated; replaces the built-in list entirely
        names_env = env.get("SHIPTRACK_PLACEHOLDER_LOCATIONS")
        if names_env is not None and "placeholder_location_names" not in overrides:
            config_kwargs["placeholder_location_names"] = frozenset(
                name.strip() for name in names_env.split(",") if name.strip()
            )

        if "use_mock_data" not in overrides:
            config_kwargs["use_mock_data"] = _env_bool(env.get("SHIPTRACK_USE_MOCK_DATA"), False)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
