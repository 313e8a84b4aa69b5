"""Classified error taxonomy for create_request.

Every failure surfaced to a caller is exactly one of these classes. The
classes carry the request context (URL and method) and, where a response was
received, the status code and the response itself.
"""

from __future__ import annotations

import traceback
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from .response import ResponseWrapper


class RequestError(Exception):
    """
    Base class for all classified request failures.

    Attributes:
        message: Human-readable error description
        url: The URL that was requested
        method: The HTTP method that was used
        status: HTTP status code if a response was received (never 0)
        response: The response wrapper if one was received
        cause: The original exception, if this error wraps one
        cause_traceback: Formatted traceback of the original exception

    Example:
        try:
            await executor.execute(descriptor)
        except RequestError as e:
            print(e.url, e.method, e.status, e.is_timeout)
    """

    is_timeout = False
    is_aborted = False

    def __init__(
        self,
        message: str,
        url: str = "",
        method: str = "",
        *,
        status: Optional[int] = None,
        response: Optional[ResponseWrapper] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.url = url
        self.method = method
        # Status 0 means no real status was received
        self.status = status or None
        self.response = response
        self.cause = cause
        self.cause_traceback: Optional[str] = None
        if cause is not None:
            self.__cause__ = cause
            self.cause_traceback = "".join(
                traceback.format_exception(type(cause), cause, cause.__traceback__)
            ).rstrip()

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        parts = [f"{self.message!r}", f"url={self.url!r}", f"method={self.method!r}"]
        if self.status is not None:
            parts.append(f"status={self.status}")
        return f"{type(self).__name__}({', '.join(parts)})"

    def format_with_cause(self) -> str:
        """Render this error followed by the original failure's traceback."""
        own = "".join(traceback.format_exception(type(self), self, self.__traceback__, chain=False)).rstrip()
        if not self.cause_traceback:
            return own
        return f"{own}\n\nCaused by: {self.cause_traceback}"


class NetworkError(RequestError):
    """The transport failed before any response was received."""


class DnsError(NetworkError):
    """Host name resolution failed."""


class ConnectionFailedError(NetworkError):
    """The connection was refused or reset by the peer."""


class RequestTimeoutError(RequestError):
    """The request exceeded its deadline."""

    is_timeout = True

    def __init__(self, message: str, url: str = "", method: str = "", *, timeout_ms: Optional[float] = None, **kwargs: Any) -> None:
        super().__init__(message, url, method, **kwargs)
        self.timeout_ms = timeout_ms


class AbortedError(RequestError):
    """The request was cancelled through an external abort controller."""

    is_aborted = True


class HttpStatusError(RequestError):
    """A response was received but its status indicates failure."""


class ParseError(RequestError):
    """Materializing the response body failed."""


class BodyConsumedError(ParseError):
    """The response body was already read in a different representation."""


class GraphQLError(ParseError):
    """
    A GraphQL response carried a non-empty ``errors`` collection.

    Attributes:
        errors: The raw ``errors`` entries from the response body
    """

    def __init__(self, message: str, url: str = "", method: str = "", *, errors: Optional[list] = None, **kwargs: Any) -> None:
        super().__init__(message, url, method, **kwargs)
        self.errors = errors or []


class InterceptorError(RequestError):
    """
    An interceptor raised an exception.

    Attributes:
        phase: Which chain failed ("request", "response" or "error")
    """

    def __init__(self, message: str, url: str = "", method: str = "", *, phase: str = "", **kwargs: Any) -> None:
        super().__init__(message, url, method, **kwargs)
        self.phase = phase


class ConfigurationError(RequestError):
    """Programmer error in the request configuration. Never retried."""


class RetryConfigError(ConfigurationError):
    """A retry delay resolved to an unusable value."""


__all__ = [
    "AbortedError",
    "BodyConsumedError",
    "ConfigurationError",
    "ConnectionFailedError",
    "DnsError",
    "GraphQLError",
    "HttpStatusError",
    "InterceptorError",
    "NetworkError",
    "ParseError",
    "RequestError",
    "RequestTimeoutError",
    "RetryConfigError",
]
