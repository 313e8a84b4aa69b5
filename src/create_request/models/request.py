"""Request-side data model: descriptor, interceptor view and retry context."""

from __future__ import annotations

import json
from collections.abc import AsyncIterable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional, Union

import aiohttp
from multidict import CIMultiDict, MultiDict

from .config import GraphQLOptions, RetryPolicy

if TYPE_CHECKING:
    from ..core.signals import AbortController, AbortSignal
    from ..errors import RequestError
    from ..http.protocols import RawResponse
    from ..response import ResponseWrapper


class HttpMethod(str, Enum):
    """HTTP methods supported by the executor."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"


class BodyKind(str, Enum):
    """Shape of a request body."""

    NONE = "none"
    TEXT = "text"
    JSON = "json"
    BINARY = "binary"
    FORM = "form"
    STREAM = "stream"


def classify_body(body: Any) -> BodyKind:
    """
    Work out which kind of body a value is.

    Args:
        body: The request body value

    Returns:
        The matching BodyKind

    Raises:
        TypeError: If the value is not a supported body type
    """
    if body is None:
        return BodyKind.NONE
    if isinstance(body, str):
        return BodyKind.TEXT
    if isinstance(body, (bytes, bytearray, memoryview)):
        return BodyKind.BINARY
    if isinstance(body, (aiohttp.FormData, MultiDict)):
        return BodyKind.FORM
    if isinstance(body, (dict, list, tuple)):
        return BodyKind.JSON
    if isinstance(body, AsyncIterable):
        return BodyKind.STREAM
    raise TypeError(f"Unsupported body type: {type(body).__name__}")


def encode_body(body: Any) -> tuple[BodyKind, Any, Optional[str]]:
    """
    Convert a body into what the transport sends.

    Returns:
        Tuple of (kind, payload, default content type or None)

    Raises:
        TypeError, ValueError: If the body cannot be encoded
    """
    kind = classify_body(body)
    if kind is BodyKind.TEXT:
        return kind, body, "text/plain"
    if kind is BodyKind.JSON:
        return kind, json.dumps(body), "application/json"
    return kind, body, None


RequestInterceptor = Callable[
    ["RequestConfig"],
    Union["RequestConfig", "RawResponse", "ResponseWrapper", None, Awaitable[Any]],
]
ResponseInterceptor = Callable[["ResponseWrapper"], Union["ResponseWrapper", None, Awaitable[Any]]]
ErrorInterceptor = Callable[
    ["RequestError"],
    Union["RequestError", "RawResponse", "ResponseWrapper", None, Awaitable[Any]],
]
RetryCallback = Callable[["RetryContext"], Optional[Awaitable[None]]]


@dataclass
class RequestConfig:
    """
    Mutable view of a request handed to request interceptors.

    Interceptors may change any field; the executor sends whatever the last
    interceptor returned.

    Example:
        def add_request_id(config: RequestConfig) -> RequestConfig:
            config.headers["X-Request-ID"] = new_id()
            return config
    """

    url: str
    method: str
    headers: CIMultiDict
    body: Any = None
    signal: Optional[AbortSignal] = None
    options: dict[str, Any] = field(default_factory=dict)


@dataclass
class RetryContext:
    """
    Information passed to ``on_retry`` hooks and delay functions.

    Attributes:
        attempt: Retry number, 1-based (the first retry is 1)
        error: The classified error that triggered the retry
        status: HTTP status of the failed attempt, if any
    """

    attempt: int
    error: RequestError
    status: Optional[int] = None


@dataclass
class RequestDescriptor:
    """
    Declarative description of one HTTP call.

    Consumed by RequestExecutor.execute(). Header keys are compared
    case-insensitively and the last write for a key wins.

    Attributes:
        method: HTTP method
        url: Target URL (absolute or relative)
        headers: Request headers
        query: Query parameters appended to the URL, repeated keys allowed
        body: Request body (str, dict/list, bytes, FormData, async iterable)
        timeout_ms: Timeout per attempt in milliseconds
        retries: Retry count or RetryPolicy
        on_retry: Hook invoked before each retry
        abort_controller: External cancellation handle
        graphql: GraphQL response handling options
        csrf_protection: Apply CSRF headers from the client config
        options: Transport-level extras (e.g. allow_redirects, proxy)
    """

    method: HttpMethod
    url: str
    headers: CIMultiDict = field(default_factory=CIMultiDict)
    query: MultiDict = field(default_factory=MultiDict)
    body: Any = None
    timeout_ms: Optional[float] = None
    retries: Union[int, RetryPolicy, None] = None
    on_retry: Optional[RetryCallback] = None
    abort_controller: Optional[AbortController] = None
    graphql: Optional[GraphQLOptions] = None
    csrf_protection: bool = True
    options: dict[str, Any] = field(default_factory=dict)

    request_interceptors: list[RequestInterceptor] = field(default_factory=list)
    response_interceptors: list[ResponseInterceptor] = field(default_factory=list)
    error_interceptors: list[ErrorInterceptor] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.method = HttpMethod(self.method.upper() if isinstance(self.method, str) else self.method)
        if not isinstance(self.headers, CIMultiDict):
            self.headers = CIMultiDict(self.headers)
        if not isinstance(self.query, MultiDict):
            self.query = MultiDict(self.query)

    def merge_headers(self, headers: dict[str, Optional[str]]) -> None:
        """Merge headers in, replacing case-insensitive duplicates and skipping None values."""
        for key, value in headers.items():
            if value is not None:
                self.headers[key] = value

    def has_header(self, name: str) -> bool:
        """Check for a header regardless of case."""
        return name in self.headers
