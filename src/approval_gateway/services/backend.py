"""HTTP client for the approval backend.

Wraps the three endpoints the gateway consumes and turns transport and
status failures into ``NetworkError`` / ``ApiError``. Response bodies are
returned undecoded-by-schema; validation happens in ``approval_gateway.validator``.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError as PydanticValidationError

from approval_gateway.exceptions import ApiError, NetworkError
from approval_gateway.models.wire import (
    DecisionRequest,
    DecisionResponse,
    DeviceRegistrationRequest,
    DeviceRegistrationResponse,
)

logger = logging.getLogger(__name__)

PENDING_APPROVALS_PATH = "/pushcut/status"
DEVICES_REGISTER_PATH = "/devices/register"
DEVICE_TOKEN_HEADER = "X-Device-Token"


def mask_token(token: str) -> str:
    """Shorten a device token for log output."""
    return f"{token[:8]}..." if len(token) > 8 else "***"


def _is_success(response: httpx.Response) -> bool:
    return 200 <= response.status_code < 300


def _json_body(response: httpx.Response) -> Any:
    """Decode a JSON body, or None when there is none."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return None


class ApprovalsBackend:
    """Client for the approval backend REST surface.

    A fresh ``httpx.AsyncClient`` is opened per call; the gateway issues few
    requests and never holds a connection across polls.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 15.0,
        registration_timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the backend client.

        Args:
            base_url: Backend root URL
            timeout: Timeout in seconds for list and decision requests
            registration_timeout: Timeout in seconds for device registration
            transport: Optional httpx transport (tests, proxies)
        """
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._registration_timeout = registration_timeout
        self._transport = transport

    @property
    def base_url(self) -> str:
        return self._base_url

    def _headers(self, token: str) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            DEVICE_TOKEN_HEADER: token,
        }

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=timeout, transport=self._transport)

    async def _send(
        self,
        method: str,
        url: str,
        token: str,
        payload: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> httpx.Response:
        """Send a request and map failures onto the gateway's error types."""
        try:
            async with self._client(timeout or self._timeout) as client:
                if method == "GET":
                    response = await client.get(url, headers=self._headers(token))
                else:
                    response = await client.post(url, json=payload, headers=self._headers(token))
        except httpx.TimeoutException as e:
            raise NetworkError(f"Timeout calling {url}") from e
        except httpx.TransportError as e:
            raise NetworkError(f"Connection error calling {url}: {e}") from e

        if not _is_success(response):
            raise ApiError(response.status_code, f"API error: {response.status_code}")
        return response

    async def fetch_pending(self, token: str) -> Any:
        """Fetch the raw pending list from ``GET /pushcut/status``.

        Returns:
            The decoded JSON body, unvalidated

        Raises:
            ApiError: Non-2xx response
            NetworkError: Transport failure, timeout or a non-JSON body
        """
        url = f"{self._base_url}{PENDING_APPROVALS_PATH}"
        response = await self._send("GET", url, token)
        try:
            return response.json()
        except ValueError as e:
            raise NetworkError(f"Invalid JSON from {url}") from e

    async def submit_decision(self, url: str, token: str, action_id: str) -> DecisionResponse:
        """POST a decision to an action's approve or reject endpoint.

        The HTTP status decides success; the body is informational and an
        unexpected body never turns a 2xx into a failure.
        """
        body = DecisionRequest(token=token, action_id=action_id).model_dump(by_alias=True)
        response = await self._send("POST", url, token, payload=body)

        raw = _json_body(response)
        if raw is None:
            return DecisionResponse()
        try:
            return DecisionResponse.model_validate(raw)
        except PydanticValidationError:
            logger.debug(f"Non-standard decision response for {action_id}: {raw!r}")
            return DecisionResponse()

    async def register_device(
        self,
        token: str,
        push_token: str | None = None,
    ) -> DeviceRegistrationResponse | None:
        """Register the device token with ``POST /devices/register``.

        Returns:
            The parsed response body, or None if the server sent none

        Raises:
            ApiError: Non-2xx response
            NetworkError: Transport failure or timeout
        """
        url = f"{self._base_url}{DEVICES_REGISTER_PATH}"
        body = DeviceRegistrationRequest(token=token, push_token=push_token).model_dump(
            by_alias=True, exclude_none=True
        )
        response = await self._send(
            "POST", url, token, payload=body, timeout=self._registration_timeout
        )

        raw = _json_body(response)
        if raw is None:
            return None
        try:
            return DeviceRegistrationResponse.model_validate(raw)
        except PydanticValidationError:
            logger.warning(f"Non-standard registration response: {raw!r}")
            return None
