"""High-level async tracker composing providers, state and lifecycle."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from datetime import UTC, datetime, timedelta
from typing import Any, TypeVar

import aiohttp

from shiptrack import geo
from shiptrack._api.cellular import CellularProvider
from shiptrack._api.crossing import CrossingProvider
from shiptrack._constants import CELLULAR_PROVIDER, CROSSING_PROVIDER
from shiptrack._transport import HttpTransport, JsonTransport
from shiptrack.config import TrackerConfig
from shiptrack.exceptions import NotRegisteredError, TrackingError
from shiptrack.lifecycle import BookingDirectory, TrackingLifecycle
from shiptrack.models.events import CrossingEvent, PingEvent, SourceKind
from shiptrack.models.registration import SimRegistration
from shiptrack.models.requests import EnableCellularRequest, ShipmentRequest
from shiptrack.models.results import (
    CrossingRefresh,
    EnableResult,
    LifecycleState,
    MapView,
    PingRefresh,
    RefreshDenied,
)
from shiptrack.models.usage import UsageSummary, period_key_for
from shiptrack.state._locks import KeyedLocks
from shiptrack.state.gate import RefreshGate
from shiptrack.state.ledger import CostLedger
from shiptrack.state.repository import InMemoryRepository, TrackingRepository
from shiptrack.state.store import EventStore

_logger = logging.getLogger(__name__)

T = TypeVar("T")


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ShipmentTracker:
    """Async entry point for shipment location tracking.

    Usage::

        async with ShipmentTracker(config, directory=bookings) as tracker:
            result = await tracker.refresh_crossings("SHP-1001")

    Parameters
    ----------
    config : TrackerConfig
        Provider endpoints, prices and limits.
    directory : BookingDirectory
        Read access to shipments and vehicle assignments.
    repository : TrackingRepository, optional
        Storage for events, usage and registrations. Defaults to a fresh
        :class:`InMemoryRepository`.
    session : aiohttp.ClientSession, optional
        Borrowed HTTP session. When omitted the tracker opens and closes
        its own.
    transport : JsonTransport, optional
        Replaces the HTTP transport entirely; no session is opened.
    clock : callable, optional
        Returns the current aware UTC time.
    """

    def __init__(
        self,
        config: TrackerConfig,
        *,
        directory: BookingDirectory,
        repository: TrackingRepository | None = None,
        session: aiohttp.ClientSession | None = None,
        transport: JsonTransport | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._config = config
        self._clock = clock
        self._repository: TrackingRepository = repository if repository is not None else InMemoryRepository()
        self._external_session = session is not None
        self._http_session = session
        self._injected_transport = transport
        self._transport: JsonTransport | None = None
        self._crossing_provider: CrossingProvider | None = None
        self._cellular_provider: CellularProvider | None = None
        self._inflight: set[asyncio.Task[Any]] = set()
        self._registration_locks = KeyedLocks()

        self._store = EventStore(
            self._repository,
            deny_names=config.placeholder_location_names,
            bucket_seconds=config.timestamp_bucket_seconds,
        )
        self._crossing_ledger = CostLedger(
            self._repository,
            provider=CROSSING_PROVIDER,
            monthly_limit=config.monthly_api_limit,
            clock=clock,
        )
        # Cellular usage is tracked for cost reporting only; the limit is not enforced.
        self._cellular_ledger = CostLedger(
            self._repository,
            provider=CELLULAR_PROVIDER,
            monthly_limit=config.monthly_api_limit,
            clock=clock,
        )
        self._gate = RefreshGate(timedelta(seconds=config.crossing_cooldown), clock=clock)
        self._lifecycle = TrackingLifecycle(directory)

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> ShipmentTracker:
        if self._injected_transport is not None:
            self._transport = self._injected_transport
        else:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._transport = HttpTransport(self._http_session, timeout=self._config.request_timeout)
        self._crossing_provider = CrossingProvider(self._config, self._transport)
        self._cellular_provider = CellularProvider(self._config, self._transport)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        # Let shielded provider calls finish before the session goes away
        if self._inflight:
            await asyncio.gather(*self._inflight, return_exceptions=True)
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        self._transport = None
        self._crossing_provider = None
        self._cellular_provider = None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @property
    def config(self) -> TrackerConfig:
        return self._config

    @property
    def repository(self) -> TrackingRepository:
        return self._repository

    def _require_providers(self) -> tuple[CrossingProvider, CellularProvider]:
        if self._crossing_provider is None or self._cellular_provider is None:
            raise TrackingError("Tracker not initialized. Use 'async with ShipmentTracker(...) as tracker:'")
        return self._crossing_provider, self._cellular_provider

    async def _run_detached(self, coro: Coroutine[Any, Any, T]) -> T:
        """Await *coro* so that a cancelled caller does not abort it.

        Provider calls cost money; once started, the result is persisted
        and billed even if nobody waits for it anymore.
        """
        task = asyncio.ensure_future(coro)
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return await asyncio.shield(task)

    async def _active_registration(self, shipment_id: str) -> SimRegistration | None:
        now = self._clock()
        for registration in reversed(await self._repository.list_registrations(shipment_id)):
            if registration.is_active(now):
                return registration
        return None

    # ------------------------------------------------------------------
    # Crossings
    # ------------------------------------------------------------------

    async def refresh_crossings(self, shipment_id: str) -> CrossingRefresh | RefreshDenied:
        """Fetch new toll crossings for a shipment.

        Checks run in a fixed order: lifecycle, monthly quota, cooldown.
        Only a real provider answer is billed and consumes the cooldown.

        Returns
        -------
        CrossingRefresh or RefreshDenied
            ``RefreshDenied`` carries the cached history and the seconds
            left on the cooldown.

        Raises
        ------
        LifecycleDisabledError
            If the shipment may not be tracked.
        QuotaExceededError
            If the monthly crossing call limit is used up.
        """
        shipment_id = ShipmentRequest(shipment_id=shipment_id).shipment_id
        crossing_provider, _ = self._require_providers()

        assignment = await self._lifecycle.require_enabled(shipment_id)
        period_key = period_key_for(self._clock())
        ledger = self._crossing_ledger

        async def _complete() -> CrossingRefresh:
            try:
                result = await crossing_provider.fetch(shipment_id, assignment.vehicle_number)
            except Exception:
                ledger.release(period_key)
                await self._gate.release(shipment_id)
                raise

            crossings = [event for event in result.records if isinstance(event, CrossingEvent)]
            if result.is_mock:
                ledger.release(period_key)
                await self._gate.release(shipment_id)
                usage = await ledger.usage(period_key)
                _logger.info(
                    "Serving synthetic crossings for shipment=%s (reason=%s)",
                    shipment_id,
                    result.error_reason or "mock mode",
                )
            else:
                usage = await ledger.record_call(
                    period_key,
                    self._config.crossing_call_cost,
                    shipment_id=shipment_id,
                    records_found=len(crossings),
                    source_kind=SourceKind.REAL,
                    reserved=True,
                )

            merged = await self._store.merge_crossings(shipment_id, crossings)
            return CrossingRefresh(
                events=[event for event in merged.events if isinstance(event, CrossingEvent)],
                new_count=merged.added,
                source_kind=result.source_kind,
                error_reason=result.error_reason,
                usage=usage,
            )

        # A reserved slot is settled exactly once: released here on denial,
        # otherwise recorded or released by _complete.
        await ledger.reserve(period_key)
        handed_off = False
        try:
            last_real = await self._store.latest_real_crossing_at(shipment_id)
            decision = await self._gate.try_acquire(shipment_id, last_real)
            if not decision.allowed:
                cached = await self._store.load_crossings(shipment_id)
                return RefreshDenied(wait_seconds=decision.wait_seconds, events=cached)
            handed_off = True
        finally:
            if not handed_off:
                ledger.release(period_key)

        return await self._run_detached(_complete())

    async def load_cached_crossings(self, shipment_id: str) -> list[CrossingEvent]:
        """Stored crossings without any network call."""
        return await self._store.load_crossings(ShipmentRequest(shipment_id=shipment_id).shipment_id)

    async def cooldown_remaining(self, shipment_id: str) -> int:
        """Seconds until the next paid crossing call is allowed."""
        last_real = await self._store.latest_real_crossing_at(shipment_id)
        return self._gate.remaining(shipment_id, last_real)

    async def map_view(self, shipment_id: str) -> MapView:
        return geo.build_map_view(await self.load_cached_crossings(shipment_id))

    # ------------------------------------------------------------------
    # Cellular
    # ------------------------------------------------------------------

    async def enable_cellular_tracking(self, shipment_id: str, phone: str, days: int) -> EnableResult:
        """Register a phone for cellular tracking.

        An unexpired registration for the same phone is returned as-is
        instead of creating a second paid one.

        Raises
        ------
        pydantic.ValidationError
            If the phone is not a 10-digit number or *days* is out of range.
        LifecycleDisabledError
            If the shipment may not be tracked.
        """
        request = EnableCellularRequest(shipment_id=shipment_id, phone=phone, days=days)
        await self._lifecycle.require_enabled(request.shipment_id)

        async with self._registration_locks.get(request.shipment_id):
            now = self._clock()
            for existing in reversed(await self._repository.list_registrations(request.shipment_id)):
                if existing.phone == request.phone and existing.is_active(now):
                    _logger.info(
                        "Reusing SIM registration %s for shipment=%s",
                        existing.id,
                        request.shipment_id,
                    )
                    return EnableResult(registration=existing, reused_existing=True)

            registration = SimRegistration.create(
                shipment_id=request.shipment_id,
                phone=request.phone,
                days=request.days,
                daily_cost=self._config.sim_daily_cost,
                now=now,
            )
            await self._repository.add_registration(registration)
        _logger.info(
            "Created SIM registration %s for shipment=%s (%d days, expires %s)",
            registration.id,
            registration.shipment_id,
            registration.days,
            registration.expires_at,
        )
        return EnableResult(registration=registration)

    async def refresh_ping(self, shipment_id: str) -> PingRefresh:
        """Fetch the latest cellular position for a shipment.

        Raises
        ------
        NotRegisteredError
            If there is no unexpired SIM registration.
        LifecycleDisabledError
            If the shipment may not be tracked.
        TrackingTransportError
            If the provider call fails.
        """
        shipment_id = ShipmentRequest(shipment_id=shipment_id).shipment_id
        _, cellular_provider = self._require_providers()

        registration = await self._active_registration(shipment_id)
        if registration is None:
            raise NotRegisteredError(shipment_id)
        await self._lifecycle.require_enabled(shipment_id)

        async def _complete() -> PingRefresh:
            result = await cellular_provider.fetch(shipment_id, registration)
            pings = [event for event in result.records if isinstance(event, PingEvent)]
            merged = await self._store.merge_pings(shipment_id, pings)
            if not result.is_mock:
                await self._cellular_ledger.record_call(
                    period_key_for(self._clock()),
                    self._config.ping_call_cost,
                    shipment_id=shipment_id,
                    records_found=len(pings),
                    source_kind=SourceKind.REAL,
                )

            history = await self._store.recent_pings(shipment_id, self._config.ping_history_limit)
            current = result.current
            if current is None and history:
                current = history[0]
            return PingRefresh(
                current=current,
                history=history,
                new_count=merged.added,
                source_kind=result.source_kind,
            )

        return await self._run_detached(_complete())

    async def recent_pings(self, shipment_id: str) -> list[PingEvent]:
        return await self._store.recent_pings(shipment_id, self._config.ping_history_limit)

    # ------------------------------------------------------------------
    # Lifecycle, usage and maintenance
    # ------------------------------------------------------------------

    async def tracking_state(self, shipment_id: str) -> LifecycleState:
        return await self._lifecycle.check(shipment_id)

    async def usage_summary(self, provider: str = CROSSING_PROVIDER) -> UsageSummary:
        """Current month's usage for *provider* with a per-day breakdown."""
        if provider == CROSSING_PROVIDER:
            ledger = self._crossing_ledger
        elif provider == CELLULAR_PROVIDER:
            ledger = self._cellular_ledger
        else:
            raise ValueError(f"Unknown provider {provider!r}")
        return await ledger.summary(period_key_for(self._clock()))

    async def run_maintenance(self) -> int:
        """Prune API call audit records past the retention window."""
        # Both ledgers share one call log
        return await self._crossing_ledger.prune_call_log(timedelta(days=self._config.call_log_retention_days))
