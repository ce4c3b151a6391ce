"""Persistence boundary.

The hosted database is an external collaborator; the tracker talks to
it only through :class:`TrackingRepository`. :class:`InMemoryRepository`
is the implementation used by tests and the CLI.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Any, Protocol

from shiptrack.models.events import CrossingEvent, PingEvent
from shiptrack.models.registration import SimRegistration
from shiptrack.models.usage import ApiCallRecord, UsagePeriod


class TrackingRepository(Protocol):
    """Structural storage interface used by the state components."""

    async def list_crossings(self, shipment_id: str) -> list[CrossingEvent]: ...

    async def add_crossings(self, shipment_id: str, events: Sequence[CrossingEvent]) -> None: ...

    async def list_pings(self, shipment_id: str) -> list[PingEvent]: ...

    async def add_pings(self, shipment_id: str, events: Sequence[PingEvent]) -> None: ...

    async def get_usage(self, provider: str, period_key: str) -> UsagePeriod | None: ...

    async def save_usage(self, period: UsagePeriod) -> None: ...

    async def add_call_record(self, record: ApiCallRecord) -> None: ...

    async def list_call_records(self, provider: str, period_key: str) -> list[ApiCallRecord]: ...

    async def delete_call_records_before(self, cutoff: datetime) -> int: ...

    async def list_registrations(self, shipment_id: str) -> list[SimRegistration]: ...

    async def add_registration(self, registration: SimRegistration) -> None: ...


class InMemoryRepository:
    """Dict-backed repository. Insertion order is preserved."""

    def __init__(self) -> None:
        self._crossings: dict[str, list[CrossingEvent]] = {}
        self._pings: dict[str, list[PingEvent]] = {}
        self._usage: dict[tuple[str, str], UsagePeriod] = {}
        self._call_records: list[ApiCallRecord] = []
        self._registrations: dict[str, list[SimRegistration]] = {}

    async def list_crossings(self, shipment_id: str) -> list[CrossingEvent]:
        return list(self._crossings.get(shipment_id, []))

    async def add_crossings(self, shipment_id: str, events: Sequence[CrossingEvent]) -> None:
        self._crossings.setdefault(shipment_id, []).extend(events)

    async def list_pings(self, shipment_id: str) -> list[PingEvent]:
        return list(self._pings.get(shipment_id, []))

    async def add_pings(self, shipment_id: str, events: Sequence[PingEvent]) -> None:
        self._pings.setdefault(shipment_id, []).extend(events)

    async def get_usage(self, provider: str, period_key: str) -> UsagePeriod | None:
        return self._usage.get((provider, period_key))

    async def save_usage(self, period: UsagePeriod) -> None:
        self._usage[(period.provider, period.period_key)] = period

    async def add_call_record(self, record: ApiCallRecord) -> None:
        self._call_records.append(record)

    async def list_call_records(self, provider: str, period_key: str) -> list[ApiCallRecord]:
        return [r for r in self._call_records if r.provider == provider and r.period_key == period_key]

    async def delete_call_records_before(self, cutoff: datetime) -> int:
        kept = [r for r in self._call_records if r.called_at >= cutoff]
        removed = len(self._call_records) - len(kept)
        self._call_records = kept
        return removed

    async def list_registrations(self, shipment_id: str) -> list[SimRegistration]:
        return list(self._registrations.get(shipment_id, []))

    async def add_registration(self, registration: SimRegistration) -> None:
        self._registrations.setdefault(registration.shipment_id, []).append(registration)

    def snapshot(self) -> dict[str, Any]:
        """JSON-compatible copy of everything stored."""
        return {
            "crossings": {k: [e.model_dump(mode="json") for e in v] for k, v in self._crossings.items()},
            "pings": {k: [e.model_dump(mode="json") for e in v] for k, v in self._pings.items()},
            "usage": [p.model_dump(mode="json") for p in self._usage.values()],
            "call_records": [r.model_dump(mode="json") for r in self._call_records],
            "registrations": {k: [r.model_dump(mode="json") for r in v] for k, v in self._registrations.items()},
        }

    @classmethod
    def from_snapshot(cls, data: Mapping[str, Any]) -> InMemoryRepository:
        repo = cls()
        for shipment_id, items in data.get("crossings", {}).items():
            repo._crossings[shipment_id] = [CrossingEvent.model_validate(item) for item in items]
        for shipment_id, items in data.get("pings", {}).items():
            repo._pings[shipment_id] = [PingEvent.model_validate(item) for item in items]
        for item in data.get("usage", []):
            period = UsagePeriod.model_validate(item)
            repo._usage[(period.provider, period.period_key)] = period
        repo._call_records = [ApiCallRecord.model_validate(item) for item in data.get("call_records", [])]
        for shipment_id, items in data.get("registrations", {}).items():
            repo._registrations[shipment_id] = [SimRegistration.model_validate(item) for item in items]
        return repo
