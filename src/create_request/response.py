"""Single-consumption response wrapper with cached body materialization."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Union

from charset_normalizer import from_bytes as detect_encoding

from .errors import BodyConsumedError, GraphQLError, ParseError
from .http.protocols import RawResponse
from .models.config import GraphQLOptions

logger = logging.getLogger(__name__)


class BodyFormat(str, Enum):
    """Representation a response body was materialized as."""

    TEXT = "text"
    JSON = "json"
    BLOB = "blob"
    BYTES = "bytes"
    STREAM = "stream"


@dataclass(frozen=True)
class Unconsumed:
    """Body not read yet."""


@dataclass(frozen=True)
class ConsumedAs:
    """
    Body read as ``format``.

    ``value`` is the cached result. When the read or conversion failed,
    ``error`` holds the exception and ``value`` is None.
    """

    format: BodyFormat
    value: Any = None
    error: Optional[Exception] = None


BodyState = Union[Unconsumed, ConsumedAs]


@dataclass(frozen=True)
class Blob:
    """
    Binary body with its content type.

    Attributes:
        data: Raw body bytes
        content_type: Content-Type header value
    """

    data: bytes
    content_type: str = ""

    @property
    def size(self) -> int:
        return len(self.data)

    def text(self, encoding: str = "utf-8") -> str:
        return self.data.decode(encoding, errors="replace")


def decode_content(content: bytes, content_type: str) -> str:
    """
    Decode content with intelligent encoding detection.

    Fallback chain:
    1. Content-Type header charset
    2. charset-normalizer detection
    3. UTF-8 with replacement

    Args:
        content: Raw bytes content
        content_type: Content-Type header value

    Returns:
        Decoded string
    """
    if not content:
        return ""

    encoding = None
    if content_type:
        for part in content_type.split(";"):
            part = part.strip()
            if part.lower().startswith("charset="):
                encoding = part.split("=", 1)[1].strip().strip("\"'")
                break

    if encoding:
        try:
            return content.decode(encoding)
        except (UnicodeDecodeError, LookupError):
            logger.debug(f"Failed to decode with declared encoding: {encoding}")

    try:
        return content.decode("utf-8")
    except UnicodeDecodeError:
        pass

    result = detect_encoding(content)
    best_match = result.best() if result else None
    if best_match:
        logger.debug(f"Detected encoding: {best_match.encoding}")
        return str(best_match)

    return content.decode("utf-8", errors="replace")


def _graphql_message(entry: Any) -> str:
    if isinstance(entry, str):
        return entry
    if isinstance(entry, Mapping) and "message" in entry:
        return str(entry["message"] or "Unknown error")
    if isinstance(entry, (Mapping, list)):
        return json.dumps(entry, default=str)
    return str(entry)


class ResponseWrapper:
    """
    Wrapper around one raw response.

    The body can be materialized once. Calling the same get_* method again
    returns the cached value; calling a different one raises
    BodyConsumedError. get_body() is never cached.

    Example:
        response = await executor.execute(descriptor)
        data = await response.get_json()
        same = await response.get_json()  # cached
        await response.get_text()  # raises BodyConsumedError
    """

    def __init__(
        self,
        raw: RawResponse,
        url: Optional[str] = None,
        method: Optional[str] = None,
        graphql: Optional[GraphQLOptions] = None,
    ) -> None:
        """
        Initialize the wrapper.

        Args:
            raw: The transport response
            url: Request URL (defaults to the response URL)
            method: Request method
            graphql: GraphQL handling options
        """
        self._raw = raw
        self.url = url if url is not None else raw.url
        self.method = method or ""
        self._graphql = graphql
        self._state: BodyState = Unconsumed()
        self._lock = asyncio.Lock()

    @property
    def status(self) -> int:
        return self._raw.status

    @property
    def status_text(self) -> str:
        return self._raw.reason

    @property
    def headers(self) -> Mapping[str, str]:
        return self._raw.headers

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def raw(self) -> RawResponse:
        return self._raw

    @property
    def state(self) -> BodyState:
        return self._state

    @property
    def body_used(self) -> bool:
        return isinstance(self._state, ConsumedAs) or self._raw.body_used

    def release(self) -> None:
        """Release the underlying connection. Unread body data is discarded."""
        self._raw.release()

    def __repr__(self) -> str:
        return f"<ResponseWrapper {self.method} {self.url} [{self.status}]>"

    def _error_context(self) -> dict[str, Any]:
        return {"status": self.status or None, "response": self}

    def _consumed_error(self) -> BodyConsumedError:
        return BodyConsumedError("Body already consumed", self.url, self.method, **self._error_context())

    async def _materialize(self, fmt: BodyFormat, convert: Callable[[bytes], Any]) -> Any:
        async with self._lock:
            state = self._state
            if isinstance(state, ConsumedAs):
                if state.format is fmt:
                    if state.error is not None:
                        raise state.error
                    return state.value
                raise self._consumed_error()
            if self._raw.body_used:
                raise self._consumed_error()

            try:
                content = await self._raw.read()
            except Exception as e:
                error = ParseError(f"Read failed: {e}", self.url, self.method, cause=e, **self._error_context())
                self._state = ConsumedAs(fmt, error=error)
                raise error from e

            try:
                value = convert(content)
            except Exception as e:
                self._state = ConsumedAs(fmt, error=e)
                raise
            self._state = ConsumedAs(fmt, value)
            return value

    async def get_text(self) -> str:
        """
        Get the response body as text.

        Returns:
            The decoded body

        Raises:
            BodyConsumedError: If the body was read in another format
            ParseError: If reading fails
        """
        content_type = self.headers.get("Content-Type", "")
        return await self._materialize(BodyFormat.TEXT, lambda content: decode_content(content, content_type))

    async def get_json(self) -> Any:
        """
        Parse the response body as JSON.

        With GraphQL throw_on_error enabled, a body carrying a non-empty
        ``errors`` list raises GraphQLError on every call.

        Returns:
            The parsed JSON data

        Raises:
            BodyConsumedError: If the body was read in another format
            ParseError: If reading or parsing fails
            GraphQLError: If GraphQL errors are present and throw_on_error is set
        """

        def parse(content: bytes) -> Any:
            try:
                return json.loads(content)
            except ValueError as e:
                raise ParseError(f"Invalid JSON: {e}", self.url, self.method, cause=e, **self._error_context()) from e

        data = await self._materialize(BodyFormat.JSON, parse)
        self._check_graphql_errors(data)
        return data

    async def get_blob(self) -> Blob:
        """Get the response body as a Blob."""
        content_type = self.headers.get("Content-Type", "")
        return await self._materialize(BodyFormat.BLOB, lambda content: Blob(content, content_type))

    async def get_bytes(self) -> bytes:
        """Get the raw response body bytes."""
        return await self._materialize(BodyFormat.BYTES, bytes)

    def get_body(self) -> AsyncIterator[bytes]:
        """
        Get the response body as a stream of byte chunks.

        Returns:
            Async iterator over body chunks

        Raises:
            BodyConsumedError: If the body was already read or streamed
        """
        if self.body_used or self._lock.locked():
            raise self._consumed_error()
        self._state = ConsumedAs(BodyFormat.STREAM)
        return self._raw.iter_chunks()

    async def get_data(self, selector: Optional[Callable[[Any], Any]] = None) -> Any:
        """
        Parse the body as JSON and optionally extract part of it.

        Args:
            selector: Function applied to the parsed data

        Returns:
            The parsed data, or the selector's result

        Raises:
            ParseError: If parsing or the selector fails
        """
        data = await self.get_json()
        if selector is None:
            return data
        try:
            return selector(data)
        except Exception as e:
            raise ParseError(f"Data selector failed: {e}", self.url, self.method, cause=e, **self._error_context()) from e

    def _check_graphql_errors(self, data: Any) -> None:
        if self._graphql is None or not self._graphql.throw_on_error:
            return
        if not isinstance(data, Mapping):
            return
        errors = data.get("errors")
        if not isinstance(errors, list) or not errors:
            return

        summary = ", ".join(_graphql_message(entry) for entry in errors)
        raise GraphQLError(f"GraphQL errors: {summary}", self.url, self.method, errors=errors, **self._error_context())
