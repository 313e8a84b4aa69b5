"""Request, response and error interceptor chains."""

from __future__ import annotations

import inspect
import logging
from typing import Any, Callable, Optional, Union

from ..errors import InterceptorError, RequestError
from ..http.protocols import RawResponse
from ..models.config import GraphQLOptions
from ..models.request import ErrorInterceptor, RequestConfig, RequestInterceptor, ResponseInterceptor
from ..response import ResponseWrapper

logger = logging.getLogger(__name__)


async def _call(interceptor: Callable[[Any], Any], value: Any) -> Any:
    result = interceptor(value)
    if inspect.isawaitable(result):
        result = await result
    return result


def _describe(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


class InterceptorRegistry:
    """
    Global interceptor registry shared by every request of a client.

    Readers take a snapshot per attempt, so registering or removing an
    interceptor while requests are in flight only affects later attempts.

    Example:
        registry = InterceptorRegistry()
        registry.add_request_interceptor(add_auth_header)
        registry.add_error_interceptor(log_failure)
    """

    def __init__(self) -> None:
        self._request: list[RequestInterceptor] = []
        self._response: list[ResponseInterceptor] = []
        self._error: list[ErrorInterceptor] = []

    def add_request_interceptor(self, interceptor: RequestInterceptor) -> RequestInterceptor:
        self._request.append(interceptor)
        return interceptor

    def add_response_interceptor(self, interceptor: ResponseInterceptor) -> ResponseInterceptor:
        self._response.append(interceptor)
        return interceptor

    def add_error_interceptor(self, interceptor: ErrorInterceptor) -> ErrorInterceptor:
        self._error.append(interceptor)
        return interceptor

    def remove_request_interceptor(self, interceptor: RequestInterceptor) -> bool:
        return self._remove(self._request, interceptor)

    def remove_response_interceptor(self, interceptor: ResponseInterceptor) -> bool:
        return self._remove(self._response, interceptor)

    def remove_error_interceptor(self, interceptor: ErrorInterceptor) -> bool:
        return self._remove(self._error, interceptor)

    def request_interceptors(self) -> tuple[RequestInterceptor, ...]:
        return tuple(self._request)

    def response_interceptors(self) -> tuple[ResponseInterceptor, ...]:
        return tuple(self._response)

    def error_interceptors(self) -> tuple[ErrorInterceptor, ...]:
        return tuple(self._error)

    def clear(self) -> None:
        """Remove every global interceptor."""
        self._request.clear()
        self._response.clear()
        self._error.clear()

    @staticmethod
    def _remove(interceptors: list, interceptor: Callable) -> bool:
        try:
            interceptors.remove(interceptor)
        except ValueError:
            return False
        return True


class InterceptorPipeline:
    """
    Runs the three interceptor chains for one attempt.

    Ordering:
    - request: global in registration order, then local in order
    - response: local in order, then global in reverse order
    - error: local in order, then global in reverse order

    Interceptors run strictly one after another; async interceptors are
    awaited before the next one starts.
    """

    def __init__(
        self,
        registry: InterceptorRegistry,
        request_interceptors: list[RequestInterceptor],
        response_interceptors: list[ResponseInterceptor],
        error_interceptors: list[ErrorInterceptor],
        graphql: Optional[GraphQLOptions] = None,
    ) -> None:
        """
        Snapshot the global and local chains.

        Args:
            registry: Global interceptor registry
            request_interceptors: Local request interceptors
            response_interceptors: Local response interceptors
            error_interceptors: Local error interceptors
            graphql: GraphQL options used when wrapping short-circuit
                and recovery responses
        """
        self.request_chain = [*registry.request_interceptors(), *request_interceptors]
        self.response_chain = [*response_interceptors, *reversed(registry.response_interceptors())]
        self.error_chain = [*error_interceptors, *reversed(registry.error_interceptors())]
        self._graphql = graphql

    def wrap(self, response: Union[RawResponse, ResponseWrapper], url: str, method: str) -> ResponseWrapper:
        """Wrap a raw response, leaving existing wrappers untouched."""
        if isinstance(response, ResponseWrapper):
            return response
        return ResponseWrapper(response, url, method, self._graphql)

    async def run_request(self, config: RequestConfig) -> Union[RequestConfig, ResponseWrapper]:
        """
        Run the request chain.

        Returns:
            The final RequestConfig, or a ResponseWrapper if an interceptor
            short-circuited the request

        Raises:
            InterceptorError: If an interceptor raised
        """
        current = config
        for interceptor in self.request_chain:
            try:
                result = await _call(interceptor, current)
            except Exception as e:
                raise InterceptorError(
                    f"Request interceptor failed: {_describe(e)}",
                    current.url,
                    current.method,
                    phase="request",
                    cause=e,
                ) from e

            if isinstance(result, (ResponseWrapper, RawResponse)):
                logger.debug(f"Request to {current.url} short-circuited by interceptor")
                return self.wrap(result, current.url, current.method)
            if result is not None:
                current = result
        return current

    async def run_response(self, response: ResponseWrapper, url: str = "", method: str = "") -> ResponseWrapper:
        """
        Run the response chain.

        Args:
            response: The wrapped response
            url: Originating request URL, used when the response has none
            method: Originating request method

        Raises:
            InterceptorError: If an interceptor raised
        """
        current = response
        for interceptor in self.response_chain:
            try:
                result = await _call(interceptor, current)
            except Exception as e:
                raise InterceptorError(
                    f"Response interceptor failed: {_describe(e)}",
                    current.url or url,
                    current.method or method,
                    phase="response",
                    cause=e,
                ) from e
            if isinstance(result, (ResponseWrapper, RawResponse)):
                current = self.wrap(result, current.url or url, current.method or method)
        return current

    async def run_error(self, error: RequestError) -> Union[RequestError, ResponseWrapper]:
        """
        Run the error chain.

        An interceptor returning a response recovers the attempt and stops
        the chain. Raised RequestErrors replace the current error; anything
        else raised is wrapped in InterceptorError.

        Returns:
            The final error, or the recovered ResponseWrapper
        """
        current = error
        for index, interceptor in enumerate(self.error_chain, start=1):
            try:
                result = await _call(interceptor, current)
            except RequestError as e:
                current = e
                continue
            except Exception as e:
                current = InterceptorError(
                    f"Error interceptor {index} failed: {_describe(e)}",
                    current.url,
                    current.method,
                    status=current.status,
                    response=current.response,
                    phase="error",
                    cause=e,
                )
                continue

            if isinstance(result, (ResponseWrapper, RawResponse)):
                logger.debug(f"Error for {current.url} recovered by interceptor {index}")
                return self.wrap(result, current.url, current.method)
            if isinstance(result, RequestError):
                current = result
        return current
