"""aiohttp-backed transport."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from types import TracebackType
from typing import Optional

import aiohttp
from multidict import CIMultiDictProxy

from ..models.config import TransportSettings
from .protocols import TransportRequest

logger = logging.getLogger(__name__)


class AiohttpResponse:
    """
    RawResponse adapter over an aiohttp ClientResponse.

    The body is read lazily and the connection released once it has been
    fully read or the stream has been exhausted. Reads enforce the
    transport's content size limit.
    """

    CHUNK_SIZE = 8192

    def __init__(self, response: aiohttp.ClientResponse, max_content_size: int) -> None:
        self._response = response
        self._max_content_size = max_content_size
        self._body_used = False

    @property
    def status(self) -> int:
        return self._response.status

    @property
    def reason(self) -> str:
        return self._response.reason or ""

    @property
    def headers(self) -> CIMultiDictProxy:
        return self._response.headers

    @property
    def url(self) -> str:
        return str(self._response.url)

    @property
    def body_used(self) -> bool:
        return self._body_used

    def _check_declared_size(self) -> None:
        content_length = self._response.headers.get("Content-Length")
        if content_length and content_length.isdigit() and int(content_length) > self._max_content_size:
            raise ValueError(f"Content too large: {content_length} bytes")

    async def read(self) -> bytes:
        if self._body_used:
            raise RuntimeError("Body has already been read")
        self._body_used = True
        chunks = []
        async for chunk in self._stream():
            chunks.append(chunk)
        return b"".join(chunks)

    def iter_chunks(self) -> AsyncIterator[bytes]:
        if self._body_used:
            raise RuntimeError("Body has already been read")
        self._body_used = True
        return self._stream()

    def release(self) -> None:
        """Return the connection to the pool, discarding any unread body."""
        self._response.release()

    async def _stream(self) -> AsyncIterator[bytes]:
        try:
            self._check_declared_size()
            received = 0
            async for chunk in self._response.content.iter_chunked(self.CHUNK_SIZE):
                received += len(chunk)
                if received > self._max_content_size:
                    raise ValueError(f"Content size limit exceeded: >{self._max_content_size} bytes")
                yield chunk
        finally:
            self._response.release()


class AiohttpTransport:
    """
    Transport that sends requests through a shared aiohttp ClientSession.

    Features:
    - Connection pooling with total and per-host limits
    - DNS cache
    - Default User-Agent and headers
    - Optional proxy
    - Content size limits to prevent memory exhaustion

    Cancellation and timeouts are handled by the executor, which cancels
    the in-flight call when the effective signal fires.

    Example:
        async with AiohttpTransport(TransportSettings()) as transport:
            executor = RequestExecutor(transport)
            response = await executor.execute(descriptor)
            print(await response.get_text())
    """

    DEFAULT_USER_AGENT = "create-request/1.0 (+aiohttp)"

    def __init__(self, settings: Optional[TransportSettings] = None) -> None:
        """
        Initialize the transport.

        Args:
            settings: Transport settings (defaults used if None)
        """
        self._settings = settings or TransportSettings()
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> AiohttpTransport:
        """Enter async context and create session."""
        connector = aiohttp.TCPConnector(
            limit=self._settings.connection_limit,
            limit_per_host=self._settings.per_host_limit,
            ttl_dns_cache=self._settings.dns_cache_ttl,
        )
        headers = {"User-Agent": self._settings.user_agent or self.DEFAULT_USER_AGENT}
        headers.update(self._settings.default_headers)
        self._session = aiohttp.ClientSession(connector=connector, headers=headers)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit async context and close session."""
        if self._session:
            await self._session.close()
            self._session = None

    async def __call__(self, request: TransportRequest) -> AiohttpResponse:
        """
        Send a request and return the un-read response.

        Args:
            request: The prepared request

        Returns:
            AiohttpResponse wrapping the aiohttp response

        Raises:
            RuntimeError: If used outside the async context
            aiohttp.ClientError: On network errors
        """
        if self._session is None:
            raise RuntimeError("Transport not initialized. Use 'async with' context manager.")

        options = dict(request.options)
        if self._settings.proxy and "proxy" not in options:
            options["proxy"] = self._settings.proxy

        logger.debug(f"{request.method} {request.url}")
        response = await self._session.request(
            request.method,
            request.url,
            headers=dict(request.headers),
            data=request.body,
            **options,
        )
        return AiohttpResponse(response, self._settings.max_content_size)
