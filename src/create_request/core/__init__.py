"""Request execution core: signals, interceptors, retries and classification."""

from .classifier import classify_exception, classify_response, is_timeout_exception
from .context import ClientConfig
from .executor import RequestExecutor, build_url, validate_url
from .interceptors import InterceptorPipeline, InterceptorRegistry
from .retry import RetryController, exponential_backoff, validate_delay
from .signals import (
    AbortController,
    AbortError,
    AbortSignal,
    CompositionMode,
    EffectiveSignal,
    SignalCause,
    compose_signal,
)

__all__ = [
    # Executor
    "ClientConfig",
    "RequestExecutor",
    "build_url",
    "validate_url",
    # Signals
    "AbortController",
    "AbortError",
    "AbortSignal",
    "CompositionMode",
    "EffectiveSignal",
    "SignalCause",
    "compose_signal",
    # Interceptors
    "InterceptorPipeline",
    "InterceptorRegistry",
    # Retry
    "RetryController",
    "exponential_backoff",
    "validate_delay",
    # Classification
    "classify_exception",
    "classify_response",
    "is_timeout_exception",
]
