"""Cellular location provider.

Endpoint:
  - /api/v1/simLocation (POST ``{"shipmentId": ..., "phoneNumber": ...}``)

Unlike the crossing provider there is no synthetic fallback: any
failure is raised to the caller.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from shiptrack._transport import JsonTransport
from shiptrack.config import TrackerConfig
from shiptrack.exceptions import NotRegisteredError, TrackingTransportError
from shiptrack.ingestion.pings import parse_ping, parse_pings
from shiptrack.models.events import SourceKind
from shiptrack.models.registration import SimRegistration
from shiptrack.models.results import ProviderResult
from shiptrack.models.wire import CellularResponse

_logger = logging.getLogger(__name__)

CELLULAR_ENDPOINT = "/api/v1/simLocation"


class CellularProvider:
    """Adapter for the cellular-network location source."""

    def __init__(self, config: TrackerConfig, transport: JsonTransport) -> None:
        self._config = config
        self._transport = transport

    @property
    def url(self) -> str:
        return f"{self._config.cellular_base_url.rstrip('/')}{CELLULAR_ENDPOINT}"

    async def fetch(self, shipment_id: str, registration: SimRegistration | None) -> ProviderResult:
        """Fetch the current ping and recent history.

        Raises
        ------
        NotRegisteredError
            If *registration* is missing.
        TrackingTransportError
            If the call fails or the response cannot be parsed.
        """
        if registration is None:
            raise NotRegisteredError(shipment_id)

        headers = {"x-api-key": self._config.cellular_api_key} if self._config.cellular_api_key else None
        body = await self._transport.post_json(
            self.url,
            {"shipmentId": shipment_id, "phoneNumber": registration.phone},
            headers=headers,
        )
        if not isinstance(body, dict):
            raise TrackingTransportError(
                f"Unexpected cellular payload from {self.url}: {type(body).__name__}",
                endpoint=self.url,
            )
        try:
            response = CellularResponse.model_validate(body)
        except ValidationError as exc:
            raise TrackingTransportError(f"Invalid cellular payload from {self.url}", endpoint=self.url) from exc

        source_kind = SourceKind.MOCK if response.is_mock else SourceKind.REAL
        current = parse_ping(shipment_id, response.current, source_kind=source_kind) if response.current else None
        history, dropped = parse_pings(shipment_id, response.history, source_kind=source_kind)

        records = list(history)
        if current is not None:
            records.append(current)
        _logger.debug(
            "Cellular provider returned current=%s history=%d for shipment=%s (source=%s, %d dropped)",
            current is not None,
            len(history),
            shipment_id,
            source_kind,
            dropped,
        )
        return ProviderResult(records=records, source_kind=source_kind, current=current, dropped=dropped)
