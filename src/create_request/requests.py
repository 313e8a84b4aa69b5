"""
Fluent request objects on top of RequestExecutor.

Usage:
    async with AiohttpTransport() as transport:
        executor = RequestExecutor(transport)

        users = await (
            get("https://api.example.com/users", executor)
            .with_query_params({"limit": 10})
            .with_timeout(5000)
            .with_retries(2)
            .get_json()
        )
"""

from __future__ import annotations

import base64
import math
from collections.abc import Iterable, Mapping
from typing import Any, Callable, Optional, Union

from .core.executor import RequestExecutor
from .core.signals import AbortController
from .errors import ConfigurationError
from .models.config import GraphQLOptions, RetryPolicy
from .models.request import (
    ErrorInterceptor,
    HttpMethod,
    RequestDescriptor,
    RequestInterceptor,
    ResponseInterceptor,
    RetryCallback,
)
from .response import Blob, ResponseWrapper

QueryValue = Union[str, int, float, bool, None, Iterable[Union[str, int, float, bool]]]

BODY_METHODS = frozenset({HttpMethod.POST, HttpMethod.PUT, HttpMethod.PATCH})


class Request:
    """
    Chainable builder for one HTTP call.

    Every ``with_*`` method mutates the request and returns it. Sending
    goes through the executor given at construction; each ``get_*`` call
    sends a new request.
    """

    def __init__(self, method: Union[HttpMethod, str], url: str, executor: RequestExecutor) -> None:
        self.descriptor = RequestDescriptor(method=method, url=url)
        self.executor = executor

    @property
    def method(self) -> str:
        return self.descriptor.method.value

    @property
    def url(self) -> str:
        return self.descriptor.url

    def __repr__(self) -> str:
        return f"<Request {self.method} {self.url}>"

    def _config_error(self, message: str) -> ConfigurationError:
        return ConfigurationError(message, self.url, self.method)

    # Headers

    def with_headers(self, headers: Mapping[str, Optional[str]]) -> Request:
        self.descriptor.merge_headers(dict(headers))
        return self

    def with_header(self, name: str, value: str) -> Request:
        return self.with_headers({name: value})

    def with_content_type(self, content_type: str) -> Request:
        return self.with_header("Content-Type", content_type)

    def with_authorization(self, value: str) -> Request:
        return self.with_header("Authorization", value)

    def with_basic_auth(self, username: str, password: str) -> Request:
        credentials = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
        return self.with_authorization(f"Basic {credentials}")

    def with_bearer_token(self, token: str) -> Request:
        return self.with_authorization(f"Bearer {token}")

    def with_csrf_token(self, token: str, header_name: str = "X-CSRF-Token") -> Request:
        return self.with_header(header_name, token)

    def with_anti_csrf_headers(self) -> Request:
        return self.with_header("X-Requested-With", "XMLHttpRequest")

    def without_csrf_protection(self) -> Request:
        """Skip the client's CSRF headers for this request."""
        self.descriptor.csrf_protection = False
        return self

    # Query

    def with_query_param(self, key: str, value: QueryValue) -> Request:
        """
        Append a query parameter.

        None values are skipped; lists and tuples add one entry per item.
        """
        if value is None:
            return self
        if isinstance(value, (list, tuple, set)):
            for item in value:
                self.descriptor.query.add(key, item)
        else:
            self.descriptor.query.add(key, value)
        return self

    def with_query_params(self, params: Mapping[str, QueryValue]) -> Request:
        for key, value in params.items():
            self.with_query_param(key, value)
        return self

    # Execution settings

    def with_timeout(self, timeout_ms: float) -> Request:
        """
        Set the per-attempt timeout in milliseconds.

        Raises:
            ConfigurationError: If the value is not a positive finite number
        """
        if (
            isinstance(timeout_ms, bool)
            or not isinstance(timeout_ms, (int, float))
            or not math.isfinite(timeout_ms)
            or timeout_ms <= 0
        ):
            raise self._config_error("Timeout must be a positive number")
        self.descriptor.timeout_ms = timeout_ms
        return self

    def with_retries(self, retries: Union[int, RetryPolicy]) -> Request:
        """
        Set the retry count or a full RetryPolicy.

        Raises:
            ConfigurationError: If a count is not a non-negative integer
        """
        if not isinstance(retries, RetryPolicy):
            if isinstance(retries, bool) or not isinstance(retries, int) or retries < 0:
                raise self._config_error("Retry count must be a non-negative integer")
        self.descriptor.retries = retries
        return self

    def on_retry(self, callback: RetryCallback) -> Request:
        self.descriptor.on_retry = callback
        return self

    def with_abort_controller(self, controller: AbortController) -> Request:
        self.descriptor.abort_controller = controller
        return self

    def with_option(self, name: str, value: Any) -> Request:
        """Set a transport-level option such as ``allow_redirects`` or ``ssl``."""
        self.descriptor.options[name] = value
        return self

    # Body

    def with_body(self, body: Any) -> Request:
        """
        Set the request body.

        Raises:
            ConfigurationError: For methods that do not carry a body
        """
        if self.descriptor.method not in BODY_METHODS:
            raise self._config_error(f"{self.method} requests cannot have a body")
        self.descriptor.body = body
        return self

    def with_graphql(
        self,
        query: str,
        variables: Optional[Mapping[str, Any]] = None,
        throw_on_error: bool = False,
    ) -> Request:
        """Send a GraphQL query as the JSON body."""
        body: dict[str, Any] = {"query": query}
        if variables is not None:
            body["variables"] = dict(variables)
        self.with_body(body)
        self.descriptor.graphql = GraphQLOptions(throw_on_error=throw_on_error)
        return self

    # Interceptors

    def with_request_interceptor(self, interceptor: RequestInterceptor) -> Request:
        self.descriptor.request_interceptors.append(interceptor)
        return self

    def with_response_interceptor(self, interceptor: ResponseInterceptor) -> Request:
        self.descriptor.response_interceptors.append(interceptor)
        return self

    def with_error_interceptor(self, interceptor: ErrorInterceptor) -> Request:
        self.descriptor.error_interceptors.append(interceptor)
        return self

    # Sending

    async def get_response(self) -> ResponseWrapper:
        """Send the request and return the wrapped response."""
        return await self.executor.execute(self.descriptor)

    async def get_json(self) -> Any:
        response = await self.get_response()
        return await response.get_json()

    async def get_text(self) -> str:
        response = await self.get_response()
        return await response.get_text()

    async def get_bytes(self) -> bytes:
        response = await self.get_response()
        return await response.get_bytes()

    async def get_blob(self) -> Blob:
        response = await self.get_response()
        return await response.get_blob()

    async def get_data(self, selector: Optional[Callable[[Any], Any]] = None) -> Any:
        response = await self.get_response()
        return await response.get_data(selector)


def get(url: str, executor: RequestExecutor) -> Request:
    return Request(HttpMethod.GET, url, executor)


def post(url: str, executor: RequestExecutor) -> Request:
    return Request(HttpMethod.POST, url, executor)


def put(url: str, executor: RequestExecutor) -> Request:
    return Request(HttpMethod.PUT, url, executor)


def delete(url: str, executor: RequestExecutor) -> Request:
    return Request(HttpMethod.DELETE, url, executor)


def patch(url: str, executor: RequestExecutor) -> Request:
    return Request(HttpMethod.PATCH, url, executor)


def head(url: str, executor: RequestExecutor) -> Request:
    return Request(HttpMethod.HEAD, url, executor)


def options(url: str, executor: RequestExecutor) -> Request:
    return Request(HttpMethod.OPTIONS, url, executor)


__all__ = ["Request", "delete", "get", "head", "options", "patch", "post", "put"]
