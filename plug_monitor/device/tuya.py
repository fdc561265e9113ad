"""
Async Tuya cloud OpenAPI client for the smart plug.

Signs every request with HMAC-SHA256 as the Tuya OpenAPI requires, caches the
access token until shortly before it expires, and maps transport problems to
the provider error taxonomy:

- ``httpx.TimeoutException`` -> :class:`ProviderTimeout`
- any other ``httpx.TransportError`` (refused, reset, DNS) ->
  :class:`ProviderConnectionError`
- HTTP error status, non-JSON body, ``success: false`` or an unexpected
  ``result`` shape -> :class:`ProviderProtocolError`

Operations:
- fetch_status(device_id): GET /v1.0/devices/{id}/status
- send_command(device_id, commands): POST /v1.0/devices/{id}/commands

CHANGELOG:
- 2026-10-20: Drop set_switch; the switch route sends commands directly (STORY-018)
- 2026-10-10: Reuse one AsyncClient for the process lifetime (STORY-012)
- 2026-10-03: Initial creation (STORY-003)

TODO:
- None
"""

from __future__ import annotations

import asyncio
import hashlib
import hmac
import json
import logging
import time
from collections.abc import Callable
from typing import Any

import httpx

from plug_monitor.errors import (
    ProviderConnectionError,
    ProviderProtocolError,
    ProviderTimeout,
)
from plug_monitor.models import Reading, readings_from_status

logger = logging.getLogger(__name__)

TOKEN_PATH = "/v1.0/token?grant_type=1"
TOKEN_REFRESH_MARGIN_S = 60.0
"""Refresh the access token this many seconds before it expires."""

DEFAULT_TIMEOUT_S = 10.0


def build_base_url(region: str) -> str:
    """Return the OpenAPI base URL for a region host label such as ``tuyaeu``."""
    return f"https://openapi.{region}.com"


def sign_request(
    *,
    client_id: str,
    client_secret: str,
    method: str,
    url_path: str,
    t: str,
    body: str = "",
    access_token: str = "",
) -> str:
    """Compute the Tuya HMAC-SHA256 request signature.

    Args:
        client_id: Cloud project access ID.
        client_secret: Cloud project access secret (HMAC key).
        method: HTTP method, upper case.
        url_path: Path plus query string, e.g. ``/v1.0/token?grant_type=1``.
        t: Millisecond timestamp string sent in the ``t`` header.
        body: Raw request body ("" for GET).
        access_token: Access token, empty for the token request itself.

    Returns:
        Upper-case hex digest.
    """
    content_hash = hashlib.sha256(body.encode("utf-8")).hexdigest()
    string_to_sign = "\n".join([method, content_hash, "", url_path])
    message = client_id + access_token + t + string_to_sign
    return (
        hmac.new(client_secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha256)
        .hexdigest()
        .upper()
    )


class TuyaClient:
    """Tuya cloud client implementing the device telemetry provider protocol.

    Args:
        client_id: Cloud project access ID.
        client_secret: Cloud project access secret.
        region: Region host label (``tuyaeu``, ``tuyaus``, ``tuyain``...).
        timeout_s: Per-request timeout in seconds.
        http: Optional pre-built ``httpx.AsyncClient`` (tests pass one with a
            ``MockTransport``). When omitted the client builds and owns one.
        clock: Returns the current time in seconds. Injected for tests.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        region: str = "tuyaeu",
        *,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        http: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self._base_url = build_base_url(region)
        self._timeout_s = timeout_s
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(timeout=timeout_s)
        self._clock = clock
        self._token: str | None = None
        self._token_expires_at = 0.0
        self._token_lock = asyncio.Lock()

    @property
    def base_url(self) -> str:
        return self._base_url

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_http:
            await self._http.aclose()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def fetch_status(self, device_id: str) -> list[Reading]:
        """Return the device's current datapoints.

        Raises:
            ProviderTimeout, ProviderConnectionError, ProviderProtocolError
        """
        body = await self._request("GET", f"/v1.0/devices/{device_id}/status")
        self._require_success(body, "status")
        result = body.get("result")
        if not isinstance(result, list) or not all(
            isinstance(item, dict) and "code" in item for item in result
        ):
            raise ProviderProtocolError("status result is not a list of {code, value}")
        return list(readings_from_status(result))

    async def send_command(self, device_id: str, commands: list[dict[str, Any]]) -> dict[str, Any]:
        """Send device commands and return the raw provider response.

        A response with ``success: false`` is returned, not raised; callers
        decide how to report it.
        """
        payload = json.dumps({"commands": commands}, separators=(",", ":"))
        logger.info("Sending commands to device %s: %s", device_id, payload)
        body = await self._request(
            "POST",
            f"/v1.0/devices/{device_id}/commands",
            body=payload,
        )
        logger.info("Tuya command response: %s", body)
        return body

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _access_token(self) -> str:
        async with self._token_lock:
            now = self._clock()
            if self._token is not None and now < self._token_expires_at:
                return self._token

            body = await self._send("GET", TOKEN_PATH, access_token="")
            self._require_success(body, "token")
            result = body.get("result")
            if not isinstance(result, dict) or "access_token" not in result:
                raise ProviderProtocolError("token response has no access_token")

            expire_s = float(result.get("expire_time", 0))
            self._token = result["access_token"]
            self._token_expires_at = now + expire_s - TOKEN_REFRESH_MARGIN_S
            logger.debug("Fetched Tuya access token (expires in %.0fs)", expire_s)
            return self._token

    async def _request(self, method: str, url_path: str, body: str = "") -> dict[str, Any]:
        token = await self._access_token()
        return await self._send(method, url_path, body=body, access_token=token)

    async def _send(
        self,
        method: str,
        url_path: str,
        *,
        body: str = "",
        access_token: str,
    ) -> dict[str, Any]:
        t = str(int(self._clock() * 1000))
        headers = {
            "client_id": self._client_id,
            "sign": sign_request(
                client_id=self._client_id,
                client_secret=self._client_secret,
                method=method,
                url_path=url_path,
                t=t,
                body=body,
                access_token=access_token,
            ),
            "t": t,
            "sign_method": "HMAC-SHA256",
        }
        if access_token:
            headers["access_token"] = access_token
        if body:
            headers["Content-Type"] = "application/json"

        try:
            response = await self._http.request(
                method,
                f"{self._base_url}{url_path}",
                content=body or None,
                headers=headers,
                timeout=self._timeout_s,
            )
        except httpx.TimeoutException as exc:
            raise ProviderTimeout(f"Tuya API did not respond within {self._timeout_s}s") from exc
        except httpx.TransportError as exc:
            raise ProviderConnectionError(f"Tuya API connection failed: {exc}") from exc

        if response.status_code >= 400:
            logger.warning(
                "Tuya API %s %s returned HTTP %d: %s",
                method,
                url_path,
                response.status_code,
                response.text[:500],
            )
            raise ProviderProtocolError(f"Tuya API returned HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as exc:
            raise ProviderProtocolError("Tuya API returned a non-JSON body") from exc
        if not isinstance(data, dict):
            raise ProviderProtocolError("Tuya API returned a non-object body")
        return data

    @staticmethod
    def _require_success(body: dict[str, Any], what: str) -> None:
        if body.get("success") is False:
            raise ProviderProtocolError(
                f"Tuya {what} request failed: code={body.get('code')} msg={body.get('msg')}"
            )
