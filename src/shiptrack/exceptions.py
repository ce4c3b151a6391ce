"""Custom exception hierarchy for shiptrack."""

from __future__ import annotations


class TrackingError(Exception):
    """Base exception for all shiptrack errors."""


class TrackingConfigError(TrackingError):
    """Invalid or missing configuration."""


class TrackingTransportError(TrackingError):
    """Provider call failed (network, timeout, non-200, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class QuotaExceededError(TrackingError):
    """Monthly call limit reached for a paid provider.

    Raised before any network call is made so nothing is charged.
    """

    def __init__(self, *, used_calls: int, monthly_limit: int, period_key: str) -> None:
        self.used_calls = used_calls
        self.monthly_limit = monthly_limit
        self.period_key = period_key
        super().__init__(f"Monthly API limit reached: used {used_calls}/{monthly_limit} in {period_key}")


class NotRegisteredError(TrackingError):
    """Cellular tracking requested without a valid SIM registration."""

    def __init__(self, shipment_id: str) -> None:
        self.shipment_id = shipment_id
        super().__init__(f"No active SIM registration for shipment {shipment_id}")


class LifecycleDisabledError(TrackingError):
    """Shipment or assignment state forbids tracking."""

    def __init__(self, shipment_id: str, reason: str) -> None:
        self.shipment_id = shipment_id
        self.reason = reason
        super().__init__(f"Tracking disabled for shipment {shipment_id}: {reason}")
