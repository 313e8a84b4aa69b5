"""Retry loop and inter-attempt delay computation."""

from __future__ import annotations

import asyncio
import inspect
import logging
import math
import random
from typing import Any, Awaitable, Callable, Optional, TypeVar, Union

from ..errors import ConfigurationError, RequestError, RetryConfigError
from ..models.config import RetryPolicy
from ..models.request import RetryCallback, RetryContext

logger = logging.getLogger(__name__)

T = TypeVar("T")

DelayFunction = Callable[[RetryContext], float]


def exponential_backoff(
    base_ms: float = 1000,
    max_ms: float = 30000,
    jitter_ms: float = 0,
) -> DelayFunction:
    """
    Build a delay function for exponential backoff with optional jitter.

    Delay for retry n is ``base_ms * 2 ** (n - 1)`` capped at ``max_ms``,
    plus a uniform random jitter in ``[0, jitter_ms]``.

    Args:
        base_ms: Delay before the first retry
        max_ms: Upper bound before jitter
        jitter_ms: Maximum random jitter added to each delay

    Returns:
        Delay function usable as RetryPolicy.delay

    Example:
        RetryPolicy(attempts=4, delay=exponential_backoff(base_ms=200, jitter_ms=100))
    """

    def delay(ctx: RetryContext) -> float:
        value: float = min(base_ms * (2 ** (ctx.attempt - 1)), max_ms)
        if jitter_ms:
            value += random.uniform(0, jitter_ms)
        return value

    return delay


def normalize_attempts(retries: Any) -> int:
    """
    Resolve the retry count from a descriptor value.

    Anything that is not a non-negative integer (or a RetryPolicy holding
    one) yields 0 so a malformed configuration never loops.
    """
    if retries is None:
        return 0
    attempts = retries.attempts if isinstance(retries, RetryPolicy) else retries
    if isinstance(attempts, bool) or not isinstance(attempts, int) or attempts < 0:
        logger.warning(f"Ignoring invalid retry count {attempts!r}, no retries will be made")
        return 0
    return attempts


def validate_delay(value: Any, url: str = "", method: str = "") -> float:
    """
    Check that a delay is a finite, non-negative number of milliseconds.

    Raises:
        RetryConfigError: If the value is unusable
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)) or math.isnan(value) or math.isinf(value) or value < 0:
        raise RetryConfigError(f"Invalid retry delay: {value}", url, method)
    return float(value)


class RetryController:
    """
    Drives up to ``1 + attempts`` calls of an attempt function.

    On failure the controller calls the on_retry hook, computes the delay,
    releases the failed response, sleeps, and tries again.
    ConfigurationErrors are never retried. A hook or delay function that
    raises ends the loop with a ConfigurationError.

    Example:
        controller = RetryController(RetryPolicy(attempts=2, delay=100), on_retry=log_retry)
        response = await controller.run(send_once, url, "GET")
    """

    def __init__(
        self,
        retries: Union[int, RetryPolicy, None] = None,
        on_retry: Optional[RetryCallback] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        """
        Initialize the controller.

        Args:
            retries: Retry count or RetryPolicy (None = no retries)
            on_retry: Hook invoked before each retry
            sleep: Coroutine used to wait between attempts (seconds)
        """
        self.max_retries = normalize_attempts(retries)
        self._delay = retries.delay if isinstance(retries, RetryPolicy) else None
        self._on_retry = on_retry
        self._sleep = sleep

    async def compute_delay(self, ctx: RetryContext, url: str = "", method: str = "") -> float:
        """
        Compute the delay in milliseconds before the next attempt.

        Raises:
            RetryConfigError: If the configured delay or its result is invalid
        """
        if self._delay is None:
            return 0.0
        if callable(self._delay):
            try:
                value = self._delay(ctx)
                if inspect.isawaitable(value):
                    value = await value
            except Exception as e:
                raise RetryConfigError(f"Retry delay function failed: {e}", url, method, cause=e) from e
        else:
            value = self._delay
        return validate_delay(value, url, method)

    async def run(self, attempt: Callable[[], Awaitable[T]], url: str = "", method: str = "") -> T:
        """
        Run attempts until one succeeds or retries are exhausted.

        Args:
            attempt: Coroutine function performing one full attempt
            url: Request URL for error context
            method: Request method for error context

        Returns:
            The first successful attempt's result

        Raises:
            RequestError: The last attempt's error
            ConfigurationError: If the on_retry hook raises
            RetryConfigError: If the delay is invalid or the delay function raises
        """
        total = self.max_retries + 1
        for number in range(1, total + 1):
            try:
                return await attempt()
            except ConfigurationError:
                raise
            except RequestError as e:
                if number >= total:
                    if self.max_retries:
                        logger.error(f"{method} {url} failed after {total} attempts: {e}")
                    raise

                ctx = RetryContext(attempt=number, error=e, status=e.status)
                try:
                    if self._on_retry is not None:
                        try:
                            result = self._on_retry(ctx)
                            if inspect.isawaitable(result):
                                await result
                        except Exception as hook_error:
                            raise ConfigurationError(
                                f"Retry hook failed: {hook_error}", url, method, cause=hook_error
                            ) from hook_error

                    delay_ms = await self.compute_delay(ctx, url, method)
                finally:
                    # The failed attempt's response is not handed back to anyone
                    if e.response is not None:
                        e.response.release()

                logger.warning(f"{method} {url} failed: {e}, retrying in {delay_ms:.0f}ms (attempt {number}/{total})")
                if delay_ms > 0:
                    await self._sleep(delay_ms / 1000)

        # range() always runs at least once and every iteration returns or raises
        raise RuntimeError(f"Unexpected end of retry loop for {url}")
