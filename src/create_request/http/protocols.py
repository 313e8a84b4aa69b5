"""Protocol definitions for the transport abstraction."""

from __future__ import annotations

from collections.abc import AsyncIterator, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ..core.signals import AbortSignal


@dataclass
class TransportRequest:
    """
    Fully prepared request handed to a Transport.

    Attributes:
        url: Final URL including query string
        method: HTTP method
        headers: Request headers
        body: Encoded body (str, bytes, FormData, async iterable or None)
        signal: Effective cancellation signal, or None if uncancellable
        options: Transport-level extras
    """

    url: str
    method: str
    headers: Mapping[str, str]
    body: Any = None
    signal: Optional[AbortSignal] = None
    options: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class RawResponse(Protocol):
    """
    Protocol for responses returned by a Transport.

    The body can be read once, either fully with read() or incrementally
    with iter_chunks(). body_used becomes True as soon as either starts.
    """

    @property
    def status(self) -> int: ...

    @property
    def reason(self) -> str: ...

    @property
    def headers(self) -> Mapping[str, str]: ...

    @property
    def url(self) -> str: ...

    @property
    def body_used(self) -> bool: ...

    async def read(self) -> bytes:
        """
        Read the whole body.

        Returns:
            Raw body bytes

        Raises:
            Exception on read failure or size limit exceeded
        """
        ...

    def iter_chunks(self) -> AsyncIterator[bytes]:
        """
        Stream the body.

        Returns:
            Async iterator over body chunks
        """
        ...

    def release(self) -> None:
        """Give the underlying connection back without reading the rest of the body."""
        ...


class Transport(Protocol):
    """
    Protocol for fetch-like transports.

    This abstraction allows for:
    - Fake transports in tests
    - Different backends (aiohttp, httpx, etc.)
    - The executor depending only on a narrow contract
    """

    async def __call__(self, request: TransportRequest) -> RawResponse:
        """
        Send a request.

        Args:
            request: The prepared request

        Returns:
            A RawResponse whose body has not been read yet

        Raises:
            Exception on network-level failure
        """
        ...
