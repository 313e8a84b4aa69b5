"""Mapping raw failures onto the classified error taxonomy."""

from __future__ import annotations

import errno
import socket
import traceback
from typing import TYPE_CHECKING, Optional

from ..errors import (
    AbortedError,
    ConnectionFailedError,
    DnsError,
    HttpStatusError,
    NetworkError,
    RequestError,
    RequestTimeoutError,
)
from .signals import EffectiveSignal

if TYPE_CHECKING:
    from ..response import ResponseWrapper

# Error codes may arrive as errno integers or as symbolic strings
TIMEOUT_CODES = frozenset({errno.ETIMEDOUT, "ETIMEDOUT"})
REFUSED_CODES = frozenset({errno.ECONNREFUSED, "ECONNREFUSED"})
RESET_CODES = frozenset({errno.ECONNRESET, errno.ECONNABORTED, "ECONNRESET", "ECONNABORTED"})
CONNECTION_CODES = REFUSED_CODES | RESET_CODES
DNS_CODES = frozenset(
    {
        socket.EAI_NONAME,
        socket.EAI_AGAIN,
        "ENOTFOUND",
        "EAI_AGAIN",
        "EAI_NODATA",
        "EAI_NONAME",
    }
)
if hasattr(socket, "EAI_NODATA"):
    DNS_CODES = DNS_CODES | {socket.EAI_NODATA}

TIMEOUT_MARKERS = ("aborted due to timeout", "timeout", "timed out")
DNS_MARKERS = ("getaddrinfo", "name or service not known", "nodename nor servname", "enotfound")
CONNECTION_MARKERS = ("connection refused", "connection reset", "econnrefused", "econnreset")


def timeout_error(url: str, method: str, timeout_ms: Optional[float], cause: Optional[BaseException] = None) -> RequestTimeoutError:
    """Build the timeout error for a configured deadline."""
    message = f"Timeout {_format_ms(timeout_ms)}ms" if timeout_ms else f"Timeout {url}"
    return RequestTimeoutError(message, url, method, timeout_ms=timeout_ms, cause=cause)


def aborted_error(url: str, method: str, cause: Optional[BaseException] = None) -> AbortedError:
    return AbortedError("Aborted", url, method, cause=cause)


def classify_response(response: ResponseWrapper) -> Optional[RequestError]:
    """
    Classify a response by its status.

    Returns:
        None for 2xx responses, NetworkError for status 0, otherwise
        HttpStatusError carrying the response
    """
    status = response.status
    if 200 <= status < 300:
        return None
    if status == 0:
        return NetworkError(f"Network error {response.url}", response.url, response.method)
    return HttpStatusError(f"HTTP {status}", response.url, response.method, status=status, response=response)


def classify_exception(
    exc: BaseException,
    url: str,
    method: str,
    effective: Optional[EffectiveSignal] = None,
) -> RequestError:
    """
    Classify an exception raised by the transport.

    Cancellations are attributed with the effective signal first. Everything
    else goes through a heuristic inspection of the exception type, error
    codes, message and traceback. The heuristic is approximate: an
    unrelated error whose text mentions "timeout" is reported as a timeout.

    Args:
        exc: The raised exception
        url: Request URL
        method: Request method
        effective: The effective signal of the attempt, if any

    Returns:
        Exactly one classified error
    """
    if isinstance(exc, RequestError):
        return exc

    timeout_ms = effective.timeout_ms if effective is not None else None

    if effective is not None and effective.aborted:
        if effective.timed_out:
            return timeout_error(url, method, timeout_ms, exc)
        return aborted_error(url, method, exc)

    if is_timeout_exception(exc):
        return timeout_error(url, method, timeout_ms, exc)

    codes = _error_codes(exc)
    text = _searchable_text(exc)

    if codes & DNS_CODES or isinstance(exc, socket.gaierror) or any(m in text for m in DNS_MARKERS):
        return DnsError(f"DNS error {url}: {_message(exc)}", url, method, cause=exc)

    if codes & CONNECTION_CODES or isinstance(exc, ConnectionError) or any(m in text for m in CONNECTION_MARKERS):
        return ConnectionFailedError(f"{_connection_failure(exc, codes, text)} {url}: {_message(exc)}", url, method, cause=exc)

    return NetworkError(_message(exc) or f"Network error {url}", url, method, cause=exc)


def is_timeout_exception(exc: BaseException) -> bool:
    """
    Heuristically decide whether an exception is a timeout.

    Checks, in order: a timeout exception type or name, timeout error
    codes, timeout wording in the message, then the names of the functions
    in the traceback.
    """
    for item in _exception_chain(exc):
        if isinstance(item, TimeoutError) or "Timeout" in type(item).__name__:
            return True
    if _error_codes(exc) & TIMEOUT_CODES:
        return True
    message = _message(exc).lower()
    if any(marker in message for marker in TIMEOUT_MARKERS):
        return True
    return any("timeout" in name.lower() for name in _stack_function_names(exc))


def _connection_failure(exc: BaseException, codes: set, text: str) -> str:
    chain = _exception_chain(exc)
    if codes & REFUSED_CODES or any(isinstance(item, ConnectionRefusedError) for item in chain) or "refused" in text:
        return "Connection refused"
    if (
        codes & RESET_CODES
        or any(isinstance(item, (ConnectionResetError, ConnectionAbortedError)) for item in chain)
        or "reset" in text
    ):
        return "Connection reset"
    return "Connection failed"


def _exception_chain(exc: BaseException) -> list[BaseException]:
    chain: list[BaseException] = []
    current: Optional[BaseException] = exc
    while current is not None and current not in chain:
        chain.append(current)
        current = current.__cause__ or current.__context__
    return chain


def _error_codes(exc: BaseException) -> set:
    codes: set = set()
    for item in _exception_chain(exc):
        for attr in ("errno", "code"):
            value = getattr(item, attr, None)
            if isinstance(value, (int, str)) and not isinstance(value, bool):
                codes.add(value)
        # aiohttp.ClientConnectorError keeps the underlying OSError here
        os_error = getattr(item, "os_error", None)
        if isinstance(os_error, OSError) and os_error.errno is not None:
            codes.add(os_error.errno)
    return codes


def _message(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


def _searchable_text(exc: BaseException) -> str:
    return " ".join(_message(item) for item in _exception_chain(exc)).lower()


def _stack_function_names(exc: BaseException) -> list[str]:
    names: list[str] = []
    for item in _exception_chain(exc):
        names.extend(frame.name for frame in traceback.extract_tb(item.__traceback__))
    return names


def _format_ms(value: Optional[float]) -> str:
    if value is not None and float(value).is_integer():
        return str(int(value))
    return str(value)
