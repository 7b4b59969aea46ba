"""HTTP transport used by the executor.

The executor only needs `request()`; anything implementing the Transport
protocol can replace the httpx-backed default (e.g. in tests).
"""

from typing import Any, Protocol, runtime_checkable

import httpx

from .errors import NetworkError


@runtime_checkable
class Transport(Protocol):
    """Protocol for sending one REST request and decoding its JSON body."""

    async def request(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        body: Any = None,
    ) -> Any:
        ...


class HttpxTransport:
    """Transport backed by `httpx.AsyncClient`.

    Examples:
        transport = HttpxTransport(timeout=10.0)

        # Custom client, e.g. with a mock transport
        transport = HttpxTransport(httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    """

    def __init__(self, client: httpx.AsyncClient | None = None, timeout: float = 30.0):
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def aclose(self):
        """Close the HTTP client if this transport created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def request(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        body: Any = None,
    ) -> Any:
        client = await self._get_client()
        try:
            response = await client.request(method, url, headers=headers, json=body)
        except httpx.RequestError as e:
            raise NetworkError(f"Request to {url} failed: {e}", status_code=0, url=url) from e

        if not response.is_success:
            raise NetworkError(
                f"Request to {url} failed with status {response.status_code}",
                status_code=response.status_code,
                url=url,
            )

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise NetworkError(
                f"Response from {url} is not valid JSON",
                status_code=response.status_code,
                url=url,
            ) from e
