"""Transport layer for create_request."""

from .client import AiohttpResponse, AiohttpTransport
from .protocols import RawResponse, Transport, TransportRequest
from .static import StaticResponse

__all__ = [
    "AiohttpResponse",
    "AiohttpTransport",
    "RawResponse",
    "StaticResponse",
    "Transport",
    "TransportRequest",
]
