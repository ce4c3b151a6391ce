from __future__ import annotations

import asyncio
import contextlib
from collections.abc import AsyncIterator, Awaitable, Callable
from datetime import UTC, datetime
from decimal import Decimal

import aiohttp
import pytest
from aiohttp import test_utils, web

from shiptrack._api.cellular import CELLULAR_ENDPOINT, CellularProvider
from shiptrack._api.crossing import CROSSING_ENDPOINT, CrossingProvider
from shiptrack._transport import HttpTransport
from shiptrack.config import TrackerConfig
from shiptrack.exceptions import TrackingTransportError
from shiptrack.models.events import SourceKind
from shiptrack.models.registration import SimRegistration

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]

_TIMEOUT = 0.2


@contextlib.asynccontextmanager
async def _provider_server(handler: Handler) -> AsyncIterator[str]:
    """Serve *handler* on both provider endpoints and yield the base URL."""
    app = web.Application()
    app.router.add_post(CROSSING_ENDPOINT, handler)
    app.router.add_post(CELLULAR_ENDPOINT, handler)
    async with test_utils.TestServer(app) as server:
        yield str(server.make_url("/"))


async def _invalid_utf8(request: web.Request) -> web.Response:
    return web.Response(body=b"\xff\xfe[not utf8", content_type="application/json", charset="utf-8")


async def _server_error(request: web.Request) -> web.Response:
    return web.Response(status=500, text="upstream exploded")


async def _not_json(request: web.Request) -> web.Response:
    return web.Response(text="<html>bad gateway</html>", content_type="text/html")


async def _too_slow(request: web.Request) -> web.Response:
    await asyncio.sleep(_TIMEOUT * 3)
    return web.json_response([])


_FAILURES = [
    pytest.param(_invalid_utf8, None, id="invalid-utf8"),
    pytest.param(_server_error, 500, id="http-500"),
    pytest.param(_not_json, None, id="not-json"),
    pytest.param(_too_slow, None, id="timeout"),
]


def _registration() -> SimRegistration:
    return SimRegistration.create(
        shipment_id="SHP-1",
        phone="9999999999",
        days=3,
        daily_cost=Decimal("1.00"),
        now=datetime(2025, 10, 1, tzinfo=UTC),
    )


@pytest.mark.asyncio
async def test_post_json_sends_headers_and_decodes_body() -> None:
    seen: dict[str, object] = {}

    async def _echo(request: web.Request) -> web.Response:
        seen["payload"] = await request.json()
        seen["api_key"] = request.headers.get("x-api-key")
        seen["content_type"] = request.headers.get("content-type")
        return web.json_response({"data": [{"tollPlazaName": "Pattana"}]})

    async with _provider_server(_echo) as base_url, aiohttp.ClientSession() as session:
        transport = HttpTransport(session, timeout=_TIMEOUT * 10)
        body = await transport.post_json(
            f"{base_url.rstrip('/')}{CROSSING_ENDPOINT}",
            {"vehiclenumber": "KA01AB1234"},
            headers={"x-api-key": "k-1"},
        )

    assert body == {"data": [{"tollPlazaName": "Pattana"}]}
    assert seen["payload"] == {"vehiclenumber": "KA01AB1234"}
    assert seen["api_key"] == "k-1"
    assert seen["content_type"] == "application/json; charset=UTF-8"


@pytest.mark.asyncio
@pytest.mark.parametrize(("handler", "status_code"), _FAILURES)
async def test_post_json_maps_failures_to_transport_error(handler: Handler, status_code: int | None) -> None:
    async with _provider_server(handler) as base_url, aiohttp.ClientSession() as session:
        transport = HttpTransport(session, timeout=_TIMEOUT)
        url = f"{base_url.rstrip('/')}{CELLULAR_ENDPOINT}"
        with pytest.raises(TrackingTransportError) as exc_info:
            await transport.post_json(url, {"shipmentId": "SHP-1"})

    assert exc_info.value.endpoint == url
    assert exc_info.value.status_code == status_code


@pytest.mark.asyncio
@pytest.mark.parametrize(("handler", "status_code"), _FAILURES)
async def test_crossing_provider_serves_mock_on_http_failure(handler: Handler, status_code: int | None) -> None:
    async with _provider_server(handler) as base_url, aiohttp.ClientSession() as session:
        config = TrackerConfig(crossing_base_url=base_url, request_timeout=_TIMEOUT)
        provider = CrossingProvider(config, HttpTransport(session, timeout=config.request_timeout))
        result = await provider.fetch("SHP-1", "KA01AB1234")

    assert result.source_kind == SourceKind.MOCK
    assert result.error_reason
    assert {event.plaza_name for event in result.records} == {"Pattana", "Halaharvi TOLL PLAZA"}


@pytest.mark.asyncio
@pytest.mark.parametrize(("handler", "status_code"), _FAILURES)
async def test_cellular_provider_raises_on_http_failure(handler: Handler, status_code: int | None) -> None:
    async with _provider_server(handler) as base_url, aiohttp.ClientSession() as session:
        config = TrackerConfig(cellular_base_url=base_url, request_timeout=_TIMEOUT)
        provider = CellularProvider(config, HttpTransport(session, timeout=config.request_timeout))
        with pytest.raises(TrackingTransportError) as exc_info:
            await provider.fetch("SHP-1", _registration())

    assert exc_info.value.status_code == status_code
