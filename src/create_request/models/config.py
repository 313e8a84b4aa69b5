"""Pydantic settings models for create_request."""

from typing import Any, Callable, Optional, Union

from pydantic import BaseModel, Field


class CsrfSettings(BaseModel):
    """CSRF and anti-CSRF header settings shared by every request."""

    csrf_header_name: str = Field("X-CSRF-Token", description="Header used to send the global CSRF token")
    xsrf_cookie_name: str = Field("XSRF-TOKEN", description="Cookie name an XSRF token provider should read")
    xsrf_header_name: str = Field("X-XSRF-TOKEN", description="Header used to send the XSRF token")
    csrf_token: Optional[str] = Field(None, description="Global CSRF token (None = not sent)")
    enable_auto_xsrf: bool = Field(True, description="Send the XSRF token from the configured provider")
    enable_anti_csrf: bool = Field(True, description="Send X-Requested-With: XMLHttpRequest")

    model_config = {"extra": "forbid", "validate_assignment": True}


class TransportSettings(BaseModel):
    """Configuration for the aiohttp transport."""

    user_agent: Optional[str] = Field(None, description="Custom User-Agent header")
    proxy: Optional[str] = Field(None, description="HTTP/HTTPS proxy URL")
    max_content_size: int = Field(50 * 1024 * 1024, ge=1, description="Maximum response body size in bytes")
    connection_limit: int = Field(100, ge=1, description="Total connection limit")
    per_host_limit: int = Field(10, ge=0, description="Per-host connection limit (0 = unlimited)")
    dns_cache_ttl: int = Field(300, ge=0, description="DNS cache TTL in seconds")
    default_headers: dict[str, str] = Field(default_factory=dict, description="Headers sent with every request")

    model_config = {"extra": "forbid"}


class RetryPolicy(BaseModel):
    """
    Retry behavior for a request.

    ``attempts`` counts retries, not the initial try: ``attempts=3`` allows up
    to four transport calls. ``delay`` is either a fixed number of
    milliseconds or a function receiving a RetryContext and returning one.

    Example:
        RetryPolicy(attempts=3, delay=500)
        RetryPolicy(attempts=5, delay=exponential_backoff(base_ms=200))
    """

    attempts: int = Field(0, ge=0, description="Number of retries after the first attempt")
    delay: Optional[Union[float, Callable[..., Any]]] = Field(
        None,
        description="Delay between retries in ms, or a function computing it",
    )

    model_config = {"extra": "forbid", "arbitrary_types_allowed": True}


class GraphQLOptions(BaseModel):
    """Options for GraphQL-aware response handling."""

    throw_on_error: bool = Field(False, description="Raise GraphQLError when the body has errors")

    model_config = {"extra": "forbid"}
