"""create_request configuration and request models."""

from .config import CsrfSettings, GraphQLOptions, RetryPolicy, TransportSettings
from .request import (
    BodyKind,
    ErrorInterceptor,
    HttpMethod,
    RequestConfig,
    RequestDescriptor,
    RequestInterceptor,
    ResponseInterceptor,
    RetryCallback,
    RetryContext,
    classify_body,
    encode_body,
)

__all__ = [
    # Settings
    "CsrfSettings",
    "GraphQLOptions",
    "RetryPolicy",
    "TransportSettings",
    # Request
    "BodyKind",
    "HttpMethod",
    "RequestConfig",
    "RequestDescriptor",
    "RetryContext",
    "classify_body",
    "encode_body",
    # Callables
    "ErrorInterceptor",
    "RequestInterceptor",
    "ResponseInterceptor",
    "RetryCallback",
]
