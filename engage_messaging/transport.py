"""HTTP transport used to reach the provider.

The send layer only depends on the :class:`Transport` protocol so hosts can
inject their own client (with their own timeout and cancellation policy).
:class:`HttpxTransport` is the default implementation.
"""

from __future__ import annotations

import base64
import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx

from engage_messaging.errors import ProviderError, ProviderResponse

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0

FormData = Mapping[str, "str | list[str]"]


class Response(Protocol):
    status: int
    headers: Mapping[str, str]

    def json(self) -> Any:
        ...


class Transport(Protocol):
    """Interface that all transports must implement.

    Implementations raise :class:`ProviderError` for requests that never got
    a response. They may also raise for non-2xx responses; callers check the
    status with :func:`raise_for_status` either way.
    """

    async def request(
        self,
        url: str,
        *,
        method: str = "GET",
        headers: Mapping[str, str] | None = None,
        data: FormData | None = None,
        json: Any = None,
    ) -> Response:
        ...


def basic_auth_header(username: str, password: str) -> str:
    token = base64.b64encode(f"{username}:{password}".encode()).decode("ascii")
    return f"Basic {token}"


@dataclass(frozen=True)
class HttpResponse:
    """A completed response, detached from the underlying client."""

    status: int
    headers: Mapping[str, str] = field(default_factory=dict)
    content: bytes = b""

    def json(self) -> Any:
        return json.loads(self.content or b"{}")


class HttpxTransport:
    """Transport backed by ``httpx.AsyncClient``."""

    def __init__(self, client: httpx.AsyncClient | None = None, *, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> None:
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def request(
        self,
        url: str,
        *,
        method: str = "GET",
        headers: Mapping[str, str] | None = None,
        data: FormData | None = None,
        json: Any = None,
    ) -> HttpResponse:
        try:
            response = await self._client.request(
                method,
                url,
                headers=dict(headers or {}),
                data=dict(data) if data is not None else None,
                json=json,
            )
        except httpx.HTTPError as exc:
            logger.error("Request to %s failed: %s", url, exc)
            raise ProviderError(str(exc) or type(exc).__name__) from exc

        result = HttpResponse(status=response.status_code, headers=response.headers, content=response.content)
        raise_for_status(result)
        return result

    async def aclose(self) -> None:
        await self._client.aclose()


def raise_for_status(response: Response) -> None:
    """Raise :class:`ProviderError` if *response* is not a 2xx.

    The error carries the status, the body's ``code``/``message`` and the
    response data and headers for the error classifier.
    """
    if 200 <= response.status < 300:
        return
    try:
        payload = response.json()
    except ValueError:
        payload = {}
    if not isinstance(payload, dict):
        payload = {}
    raise ProviderError(
        payload.get("message") or f"Request failed with status {response.status}",
        str(payload["code"]) if payload.get("code") is not None else None,
        response.status,
        response=ProviderResponse(data=payload, headers=response.headers),
    )
