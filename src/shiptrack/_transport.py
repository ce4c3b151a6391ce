"""HTTP transport for provider calls."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from shiptrack._constants import USER_AGENT
from shiptrack._redact import redact_for_log
from shiptrack.exceptions import TrackingTransportError

_logger = logging.getLogger(__name__)


class JsonTransport(Protocol):
    """Structural transport interface used by the provider adapters.

    Having a protocol here makes it easy to pass test doubles while
    keeping the production implementation (`HttpTransport`) concrete.
    """

    async def post_json(
        self,
        url: str,
        payload: Mapping[str, Any],
        *,
        headers: Mapping[str, str] | None = None,
    ) -> Any: ...


class HttpTransport:
    """JSON-over-HTTP transport with a bounded per-call timeout."""

    def __init__(self, http_session: aiohttp.ClientSession, *, timeout: float) -> None:
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    async def post_json(
        self,
        url: str,
        payload: Mapping[str, Any],
        *,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        """POST *payload* as JSON and return the decoded JSON body.

        Raises
        ------
        TrackingTransportError
            On network failure, timeout, non-200 status or a body that
            does not decode as JSON text.
        """
        request_headers: dict[str, str] = {
            "content-type": "application/json; charset=UTF-8",
            "user-agent": USER_AGENT,
        }
        if headers:
            request_headers.update(headers)

        _logger.debug("POST %s payload=%s", url, redact_for_log(dict(payload)))

        try:
            async with self._http.post(
                url,
                data=json.dumps(payload, separators=(",", ":")),
                headers=request_headers,
                timeout=self._timeout,
            ) as resp:
                raw = await resp.read()
                charset = resp.charset or "utf-8"
                if resp.status != 200:
                    raise TrackingTransportError(
                        f"HTTP {resp.status} from {url}: {raw[:200].decode('utf-8', errors='replace')}",
                        status_code=resp.status,
                        endpoint=url,
                    )
        except TrackingTransportError:
            raise
        except TimeoutError as exc:
            raise TrackingTransportError(f"Request to {url} timed out", endpoint=url) from exc
        except aiohttp.ClientError as exc:
            raise TrackingTransportError(f"Request to {url} failed: {exc}", endpoint=url) from exc

        # UnicodeDecodeError and JSONDecodeError are both ValueError; LookupError is an unknown charset
        try:
            body = json.loads(raw.decode(charset))
        except (LookupError, ValueError) as exc:
            raise TrackingTransportError(f"Invalid JSON from {url}: {raw[:200]!r}", endpoint=url) from exc

        _logger.debug("Response from %s: %s", url, redact_for_log(body))
        return body
