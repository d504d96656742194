"""
Transport protocol for Horizon gateway calls.

Defines the seam where the HTTP implementation plugs in. The sequence
fetcher and the submitter depend on this protocol, not on httpx
directly, so tests can swap in a fake without touching parsing logic.

Concrete implementations:
    - HttpxTransport (default, one shared httpx.AsyncClient per run)
    - FakeTransport (tests, returns canned responses)

Responses are returned for every HTTP status. Only failures where no
response exists at all (timeout, refused connection, TLS error) raise,
as ``GatewayUnavailable`` with a ``kind`` of TIMEOUT, CONNECTION_FAILED
or HTTP_ERROR. Status interpretation is the caller's concern.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from types import TracebackType
from typing import Any, Protocol, runtime_checkable

import httpx

from stellar_remit.errors import GatewayUnavailable


@dataclass(frozen=True)
class GatewayResponse:
    """Status and raw body of one gateway response."""

    status_code: int
    text: str

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def is_server_error(self) -> bool:
        return 500 <= self.status_code < 600

    @property
    def is_client_error(self) -> bool:
        return 400 <= self.status_code < 500

    def json(self) -> Any:
        """Parse the body as JSON. Raises ``json.JSONDecodeError``."""
        return json.loads(self.text)


@runtime_checkable
class GatewayTransport(Protocol):
    """Async transport for the two Horizon calls the pipeline makes."""

    async def get(self, url: str) -> GatewayResponse:
        """Send a GET request and return the response, whatever its status."""
        ...

    async def post_form(self, url: str, fields: dict[str, str]) -> GatewayResponse:
        """Send a form-encoded POST and return the response, whatever its status."""
        ...


class HttpxTransport:
    """Default transport on top of ``httpx.AsyncClient``.

    The client is reused for every call made through this transport and
    holds no transaction state between calls. Pass an existing client to
    share connection pools, or let the transport own one and close it
    with ``aclose()`` / ``async with``.

    Args:
        timeout: Request timeout in seconds.
        client: Optional pre-built client. Not closed by this transport.
    """

    def __init__(self, timeout: float = 30.0, client: httpx.AsyncClient | None = None) -> None:
        self._timeout = timeout
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            headers={"Accept": "application/json"},
        )

    async def get(self, url: str) -> GatewayResponse:
        return await self._send("GET", url)

    async def post_form(self, url: str, fields: dict[str, str]) -> GatewayResponse:
        return await self._send("POST", url, data=fields)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> HttpxTransport:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def _send(self, method: str, url: str, **kwargs: Any) -> GatewayResponse:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise GatewayUnavailable(
                f"{method} {url} timed out after {self._timeout}s",
                kind="TIMEOUT",
                details={"url": url, "timeout_s": self._timeout},
            ) from e
        except httpx.ConnectError as e:
            raise GatewayUnavailable(
                f"failed to connect to {url}",
                kind="CONNECTION_FAILED",
                details={"url": url},
            ) from e
        except httpx.HTTPError as e:
            raise GatewayUnavailable(
                f"{method} {url} failed",
                kind="HTTP_ERROR",
                details={"url": url, "error": str(e)},
            ) from e

        return GatewayResponse(status_code=response.status_code, text=response.text)
