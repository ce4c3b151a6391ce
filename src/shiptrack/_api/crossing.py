"""Toll-crossing provider.

Endpoint:
  - /api/v1/fastagTracking (POST ``{"vehiclenumber": ...}``)

The provider answers with a JSON array of gantry reads. When the call
fails for any reason a small fixed synthetic set is returned instead,
tagged ``SourceKind.MOCK``, so map and history views stay populated.
Mock results must never be charged.
"""

from __future__ import annotations

import logging
from typing import Any

from shiptrack._constants import MOCK_CROSSING_RECORDS
from shiptrack._transport import JsonTransport
from shiptrack.config import TrackerConfig
from shiptrack.exceptions import TrackingTransportError
from shiptrack.ingestion.crossings import parse_crossings
from shiptrack.models.events import SourceKind
from shiptrack.models.results import ProviderResult

_logger = logging.getLogger(__name__)

CROSSING_ENDPOINT = "/api/v1/fastagTracking"


def _extract_records(body: Any, endpoint: str) -> list[Any]:
    """Return the record array from a provider body.

    The provider normally sends a bare array; a ``{"data": [...]}``
    wrapper is accepted too.
    """
    if isinstance(body, list):
        return body
    if isinstance(body, dict) and isinstance(body.get("data"), list):
        return list(body["data"])
    raise TrackingTransportError(
        f"Unexpected crossing payload from {endpoint}: {type(body).__name__}",
        endpoint=endpoint,
    )


class CrossingProvider:
    """Adapter for the toll-gantry crossing source."""

    def __init__(self, config: TrackerConfig, transport: JsonTransport) -> None:
        self._config = config
        self._transport = transport

    @property
    def url(self) -> str:
        return f"{self._config.crossing_base_url.rstrip('/')}{CROSSING_ENDPOINT}"

    def mock_result(self, shipment_id: str, error_reason: str | None) -> ProviderResult:
        events, _ = parse_crossings(shipment_id, MOCK_CROSSING_RECORDS, source_kind=SourceKind.MOCK)
        return ProviderResult(records=events, source_kind=SourceKind.MOCK, error_reason=error_reason)

    async def fetch(self, shipment_id: str, vehicle_number: str) -> ProviderResult:
        """Fetch crossings for the vehicle carrying *shipment_id*.

        Never raises for provider failures; those come back as a mock
        result with ``error_reason`` set.
        """
        if self._config.use_mock_data:
            _logger.debug("Mock crossing data enabled; skipping provider call for shipment=%s", shipment_id)
            return self.mock_result(shipment_id, None)

        headers = {"x-api-key": self._config.crossing_api_key} if self._config.crossing_api_key else None
        try:
            body = await self._transport.post_json(
                self.url,
                {"vehiclenumber": vehicle_number},
                headers=headers,
            )
            items = _extract_records(body, self.url)
        except TrackingTransportError as exc:
            _logger.warning(
                "Crossing provider failed for shipment=%s vehicle=%s; serving mock data: %s",
                shipment_id,
                vehicle_number,
                exc,
            )
            return self.mock_result(shipment_id, str(exc))

        events, dropped = parse_crossings(shipment_id, items)
        _logger.debug(
            "Crossing provider returned %d records for shipment=%s (%d dropped)",
            len(items),
            shipment_id,
            dropped,
        )
        return ProviderResult(records=events, source_kind=SourceKind.REAL, dropped=dropped)
