"""Cancellation signals and timeout/external signal composition."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

AbortListener = Callable[[Any], None]


class AbortError(Exception):
    """Raised when work guarded by an AbortSignal is cancelled by it."""

    def __init__(self, reason: Any = None) -> None:
        super().__init__("The operation was aborted" if reason is None else str(reason))
        self.reason = reason


class AbortSignal:
    """
    One-shot cancellation signal.

    Listeners run synchronously, once, when the signal fires. Use an
    AbortController to fire it.
    """

    def __init__(self) -> None:
        self._aborted = False
        self._reason: Any = None
        self._listeners: list[AbortListener] = []

    @property
    def aborted(self) -> bool:
        return self._aborted

    @property
    def reason(self) -> Any:
        return self._reason

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def add_listener(self, listener: AbortListener) -> None:
        """Register a listener. It runs immediately if the signal already fired."""
        if self._aborted:
            listener(self._reason)
            return
        self._listeners.append(listener)

    def remove_listener(self, listener: AbortListener) -> None:
        """Deregister a listener. Unknown listeners are ignored."""
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def throw_if_aborted(self) -> None:
        if self._aborted:
            raise AbortError(self._reason)

    def _fire(self, reason: Any) -> None:
        if self._aborted:
            return
        self._aborted = True
        self._reason = reason
        listeners, self._listeners = self._listeners, []
        for listener in listeners:
            listener(reason)

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """
        Await work that this signal may cancel.

        The work runs in its own task. If the signal fires first, the task is
        cancelled and AbortError is raised. The listener is removed on every
        exit path.

        Args:
            awaitable: The work to run

        Returns:
            The work's result

        Raises:
            AbortError: If the signal fired before the work finished
        """
        if self._aborted:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise AbortError(self._reason)

        task = asyncio.ensure_future(awaitable)

        def cancel_task(_reason: Any) -> None:
            task.cancel()

        self.add_listener(cancel_task)
        try:
            return await task
        except asyncio.CancelledError:
            if self._aborted and task.cancelled():
                raise AbortError(self._reason) from None
            raise
        finally:
            self.remove_listener(cancel_task)
            if not task.done():
                task.cancel()


class AbortController:
    """
    Owner of an AbortSignal.

    One controller may be shared by several concurrent requests; aborting it
    cancels all of them.

    Example:
        controller = AbortController()
        descriptor.abort_controller = controller
        ...
        controller.abort()
    """

    def __init__(self) -> None:
        self.signal = AbortSignal()

    def abort(self, reason: Any = None) -> None:
        """Fire the signal. Later calls have no effect."""
        self.signal._fire(reason)


class SignalCause(str, Enum):
    """Which source fired an effective signal."""

    TIMEOUT = "timeout"
    EXTERNAL = "external"


class CompositionMode(str, Enum):
    """How an effective signal was composed."""

    NONE = "none"
    TIMEOUT_ONLY = "timeout_only"
    EXTERNAL_ONLY = "external_only"
    COMBINED = "combined"


class EffectiveSignal:
    """
    Result of composing a timeout and an external cancellation handle.

    Attributes:
        mode: Which composition was used
        signal: The signal to pass to the transport (None in NONE mode)
        timeout_ms: The configured timeout, if any
    """

    def __init__(
        self,
        mode: CompositionMode,
        signal: Optional[AbortSignal],
        timeout_ms: Optional[float] = None,
    ) -> None:
        self.mode = mode
        self.signal = signal
        self.timeout_ms = timeout_ms
        self._cause: Optional[SignalCause] = None

    @property
    def aborted(self) -> bool:
        return self.signal is not None and self.signal.aborted

    @property
    def cause(self) -> Optional[SignalCause]:
        """The source that fired first, or None if nothing fired."""
        if self._cause is not None:
            return self._cause
        if self.mode is CompositionMode.EXTERNAL_ONLY and self.aborted:
            return SignalCause.EXTERNAL
        return None

    @property
    def timed_out(self) -> bool:
        return self.cause is SignalCause.TIMEOUT

    def _record(self, cause: SignalCause) -> None:
        if self._cause is None:
            self._cause = cause


@contextmanager
def compose_signal(
    timeout_ms: Optional[float],
    controller: Optional[Any] = None,
) -> Iterator[EffectiveSignal]:
    """
    Compose a timeout and an external handle into one effective signal.

    The timer and any listener attached to the external signal are released
    when the block exits, whether it succeeds or raises. Must be entered
    from a running event loop when a timeout is given.

    Args:
        timeout_ms: Timeout in milliseconds, or None
        controller: External AbortController (or anything with a .signal
            AbortSignal), or None

    Yields:
        EffectiveSignal describing the composed signal

    Example:
        with compose_signal(5000, controller) as effective:
            response = await effective.signal.guard(send())
    """
    external = getattr(controller, "signal", None) if controller is not None else None

    if not timeout_ms and external is None:
        yield EffectiveSignal(CompositionMode.NONE, None)
        return

    if not timeout_ms:
        yield EffectiveSignal(CompositionMode.EXTERNAL_ONLY, external)
        return

    combined = AbortController()
    mode = CompositionMode.COMBINED if external is not None else CompositionMode.TIMEOUT_ONLY
    effective = EffectiveSignal(mode, combined.signal, timeout_ms)

    def on_timeout() -> None:
        effective._record(SignalCause.TIMEOUT)
        logger.debug(f"Timeout of {timeout_ms}ms reached")
        combined.abort(f"Timeout {timeout_ms}ms")

    def on_external(reason: Any) -> None:
        effective._record(SignalCause.EXTERNAL)
        combined.abort(reason)

    handle: Optional[asyncio.TimerHandle] = None
    try:
        if external is not None:
            external.add_listener(on_external)
        if not combined.signal.aborted:
            loop = asyncio.get_running_loop()
            handle = loop.call_later(timeout_ms / 1000, on_timeout)
        yield effective
    finally:
        if handle is not None:
            handle.cancel()
        if external is not None:
            external.remove_listener(on_external)
