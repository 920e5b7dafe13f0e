"""Stream transports.

A transport opens one POST request against a collaborator endpoint and
exposes the response body as an async iterator of raw byte chunks.
"""

import logging
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Mapping, Protocol, runtime_checkable

import httpx

from narration_engine.exceptions import TransportError

logger = logging.getLogger(__name__)


@dataclass
class StreamResponse:
    """An open streaming response.

    Attributes:
        chunks: Raw body chunks in arrival order.
        status_code: HTTP status code (200 for non-HTTP transports).
        headers: Response headers.
    """

    chunks: AsyncIterator[bytes]
    status_code: int = 200
    headers: Mapping[str, str] = field(default_factory=dict)


@runtime_checkable
class StreamTransport(Protocol):
    """Protocol for stream transports."""

    def open(
        self, endpoint: str, payload: dict[str, Any]
    ) -> AbstractAsyncContextManager[StreamResponse]:
        """Open a stream for the given endpoint and JSON payload.

        Args:
            endpoint: Endpoint path relative to the transport's base URL.
            payload: JSON request body.

        Returns:
            Async context manager yielding the open response. Leaving the
            context closes the underlying connection.

        Raises:
            TransportError: If the stream cannot be opened.
        """
        ...


class HttpStreamTransport:
    """httpx-backed streaming transport.

    Supports:
    - One shared AsyncClient per transport (connection pooling)
    - Non-2xx responses surfaced as TransportError with the body text
    - Timeouts and network errors surfaced as retryable TransportError
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            base_url: Base URL for endpoint paths.
            timeout: Connect/read timeout in seconds.
            client: Optional pre-configured client (for testing).
        """
        self._base_url = base_url
        self._timeout = timeout
        self._client_instance: httpx.AsyncClient | None = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the async client."""
        if self._client_instance is None:
            self._client_instance = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
            )
        return self._client_instance

    @asynccontextmanager
    async def open(
        self, endpoint: str, payload: dict[str, Any]
    ) -> AsyncIterator[StreamResponse]:
        """Open a streaming POST request."""
        client = self._get_client()
        try:
            async with client.stream(
                "POST",
                endpoint,
                json=payload,
                headers={"Accept": "text/event-stream"},
            ) as response:
                if response.status_code >= 400:
                    body = (await response.aread()).decode("utf-8", errors="replace")
                    raise TransportError(
                        body.strip() or f"HTTP {response.status_code}",
                        is_retryable=response.status_code >= 500
                        or response.status_code == 429,
                        status_code=response.status_code,
                    )
                logger.debug(f"Opened stream {endpoint} ({response.status_code})")
                yield StreamResponse(
                    chunks=response.aiter_bytes(),
                    status_code=response.status_code,
                    headers=response.headers,
                )
        except httpx.TimeoutException as e:
            raise TransportError(f"Request timed out: {e}", is_retryable=True) from e
        except httpx.HTTPError as e:
            raise TransportError(f"Transport failed: {e}", is_retryable=True) from e

    async def aclose(self) -> None:
        """Close the client if this transport created it."""
        if self._client_instance is not None and self._owns_client:
            await self._client_instance.aclose()
            self._client_instance = None
