"""
create_request - Fluent async HTTP requests with interceptors, retries and classified errors.

Usage:
    from create_request import AiohttpTransport, RequestExecutor, get

    async with AiohttpTransport() as transport:
        executor = RequestExecutor(transport)
        users = await get("https://api.example.com/users", executor).with_timeout(5000).get_json()
"""

__version__ = "1.0.0"

from .core import (
    AbortController,
    AbortSignal,
    ClientConfig,
    InterceptorRegistry,
    RequestExecutor,
    exponential_backoff,
)
from .errors import (
    AbortedError,
    BodyConsumedError,
    ConfigurationError,
    ConnectionFailedError,
    DnsError,
    GraphQLError,
    HttpStatusError,
    InterceptorError,
    NetworkError,
    ParseError,
    RequestError,
    RequestTimeoutError,
    RetryConfigError,
)
from .http import AiohttpTransport, RawResponse, StaticResponse, Transport, TransportRequest
from .logging_config import setup_logging
from .models import (
    CsrfSettings,
    GraphQLOptions,
    HttpMethod,
    RequestConfig,
    RequestDescriptor,
    RetryContext,
    RetryPolicy,
    TransportSettings,
)
from .requests import Request, delete, get, head, options, patch, post, put
from .response import Blob, ResponseWrapper

__all__ = [
    "__version__",
    # Core
    "RequestExecutor",
    "ClientConfig",
    "InterceptorRegistry",
    "AbortController",
    "AbortSignal",
    "exponential_backoff",
    # Fluent API
    "Request",
    "get",
    "post",
    "put",
    "delete",
    "patch",
    "head",
    "options",
    # Models
    "CsrfSettings",
    "GraphQLOptions",
    "HttpMethod",
    "RequestConfig",
    "RequestDescriptor",
    "RetryContext",
    "RetryPolicy",
    "TransportSettings",
    # Transport
    "AiohttpTransport",
    "RawResponse",
    "StaticResponse",
    "Transport",
    "TransportRequest",
    # Response
    "Blob",
    "ResponseWrapper",
    # Errors
    "RequestError",
    "NetworkError",
    "DnsError",
    "ConnectionFailedError",
    "RequestTimeoutError",
    "AbortedError",
    "HttpStatusError",
    "ParseError",
    "BodyConsumedError",
    "GraphQLError",
    "InterceptorError",
    "ConfigurationError",
    "RetryConfigError",
    # Logging
    "setup_logging",
]
