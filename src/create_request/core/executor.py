"""Request executor: runs one descriptor through interceptors, transport and retries."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Union

from multidict import CIMultiDict, MultiDict
from yarl import URL

from ..errors import ConfigurationError
from ..http.protocols import RawResponse, Transport, TransportRequest
from ..models.request import RequestConfig, RequestDescriptor, encode_body
from ..response import ResponseWrapper
from .classifier import classify_exception, classify_response
from .context import ClientConfig
from .interceptors import InterceptorPipeline
from .retry import RetryController
from .signals import EffectiveSignal, compose_signal

logger = logging.getLogger(__name__)

CONTROL_CHARS = ("\0", "\r", "\n")


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def build_url(url: str, query: MultiDict) -> str:
    """
    Append query parameters to a URL, keeping any query already present.

    Repeated keys are preserved in order.

    Raises:
        ValueError, TypeError: If the URL cannot be parsed
    """
    if not query:
        return url
    pairs = [(key, _query_value(value)) for key, value in query.items() if value is not None]
    return str(URL(url).extend_query(pairs))


def validate_url(url: str, method: str) -> None:
    """
    Reject URLs that cannot be sent.

    Raises:
        ConfigurationError: For empty URLs, control characters, or
            unparseable absolute http(s) URLs
    """
    if not url or not url.strip():
        raise ConfigurationError("URL cannot be empty", url, method)
    if any(char in url for char in CONTROL_CHARS):
        raise ConfigurationError("Invalid URL (control chars)", url, method)

    trimmed = url.strip()
    if trimmed.startswith(("http://", "https://")):
        try:
            host = URL(trimmed).host
        except ValueError as e:
            raise ConfigurationError(f"Invalid URL: {trimmed}", trimmed, method, cause=e) from e
        if not host:
            raise ConfigurationError(f"Invalid URL: {trimmed}", trimmed, method)


class RequestExecutor:
    """
    Executes request descriptors.

    Each execution yields exactly one outcome: a ResponseWrapper or a
    raised RequestError subclass. Per attempt the executor:

    1. Composes the timeout and abort controller into one signal
    2. Runs request interceptors (which may short-circuit)
    3. Calls the transport under the signal
    4. Classifies failures and non-2xx statuses
    5. Runs response interceptors on success, error interceptors on failure

    Attempts are repeated by a RetryController according to the
    descriptor's retry settings.

    Example:
        async with AiohttpTransport() as transport:
            executor = RequestExecutor(transport)
            descriptor = RequestDescriptor(HttpMethod.GET, "https://api.example.com/users", timeout_ms=5000)
            response = await executor.execute(descriptor)
            users = await response.get_json()
    """

    def __init__(
        self,
        transport: Transport,
        config: Optional[ClientConfig] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        """
        Initialize the executor.

        Args:
            transport: Fetch-like transport callable
            config: Client configuration (a fresh one if None)
            sleep: Coroutine used for retry delays (seconds)
        """
        self.transport = transport
        self.config = config or ClientConfig()
        self._sleep = sleep

    async def execute(self, descriptor: RequestDescriptor) -> ResponseWrapper:
        """
        Execute a request descriptor.

        Args:
            descriptor: The request to run

        Returns:
            ResponseWrapper for the successful (or recovered) attempt

        Raises:
            RequestError: Classified error from the final attempt, or a
                ConfigurationError for invalid settings
        """
        method = descriptor.method.value

        try:
            _, body, content_type = encode_body(descriptor.body)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Failed to encode request body: {e}", descriptor.url, method, cause=e) from e

        try:
            url = build_url(descriptor.url, descriptor.query)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid URL: {descriptor.url}", descriptor.url, method, cause=e) from e

        headers = CIMultiDict(descriptor.headers)
        if content_type and not descriptor.has_header("Content-Type"):
            headers["Content-Type"] = content_type
        if descriptor.csrf_protection:
            self._apply_csrf(headers)

        controller = RetryController(descriptor.retries, descriptor.on_retry, sleep=self._sleep)

        async def attempt() -> ResponseWrapper:
            return await self._attempt(descriptor, url, headers, body)

        return await controller.run(attempt, url, method)

    def _apply_csrf(self, headers: CIMultiDict) -> None:
        csrf = self.config.csrf

        if csrf.enable_anti_csrf:
            headers.setdefault("X-Requested-With", "XMLHttpRequest")

        if csrf.csrf_token and "X-CSRF-Token" not in headers and csrf.csrf_header_name not in headers:
            headers[csrf.csrf_header_name] = csrf.csrf_token

        xsrf_token = self.config.xsrf_token()
        if xsrf_token and "X-XSRF-TOKEN" not in headers and csrf.xsrf_header_name not in headers:
            headers[csrf.xsrf_header_name] = xsrf_token

    async def _attempt(
        self,
        descriptor: RequestDescriptor,
        url: str,
        headers: CIMultiDict,
        body: Any,
    ) -> ResponseWrapper:
        method = descriptor.method.value
        pipeline = InterceptorPipeline(
            self.config.interceptors,
            descriptor.request_interceptors,
            descriptor.response_interceptors,
            descriptor.error_interceptors,
            descriptor.graphql,
        )
        logger.debug(f"Sending {method} {url}")

        try:
            with compose_signal(descriptor.timeout_ms, descriptor.abort_controller) as effective:
                config = RequestConfig(
                    url=url,
                    method=method,
                    headers=CIMultiDict(headers),
                    body=body,
                    signal=effective.signal,
                    options=dict(descriptor.options),
                )
                return await self._exchange(pipeline, config, effective, descriptor)
        except Exception as e:
            error = classify_exception(e, url, method)
            result = await pipeline.run_error(error)
            kept = result if isinstance(result, ResponseWrapper) else result.response
            if error.response is not None and error.response is not kept:
                error.response.release()
            if isinstance(result, ResponseWrapper):
                return result
            raise result from result.cause

    async def _exchange(
        self,
        pipeline: InterceptorPipeline,
        config: RequestConfig,
        effective: EffectiveSignal,
        descriptor: RequestDescriptor,
    ) -> ResponseWrapper:
        result = await pipeline.run_request(config)
        if isinstance(result, ResponseWrapper):
            return await pipeline.run_response(result, config.url, config.method)

        config = result
        validate_url(config.url, config.method)

        request = TransportRequest(
            url=config.url,
            method=config.method,
            headers=config.headers,
            body=config.body,
            signal=effective.signal,
            options=config.options,
        )
        try:
            raw = await self._send(request, effective)
        except Exception as e:
            raise classify_exception(e, request.url, request.method, effective) from e

        response = ResponseWrapper(raw, request.url, request.method, descriptor.graphql)
        error = classify_response(response)
        if error is not None:
            if error.response is None:
                response.release()
            raise error

        try:
            return await pipeline.run_response(response, request.url, request.method)
        except Exception:
            response.release()
            raise

    async def _send(self, request: TransportRequest, effective: EffectiveSignal) -> Union[RawResponse, Any]:
        if effective.signal is None:
            return await self.transport(request)
        return await effective.signal.guard(self.transport(request))


__all__ = ["RequestExecutor", "build_url", "validate_url"]
