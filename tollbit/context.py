"""
Request cancellation context.

A RequestContext is created by the caller and handed to every network call.
It can be cancelled from any thread and optionally carries a deadline.
Transports register abort callbacks on it (e.g. closing the in-flight
response) so a blocked read returns as soon as the caller cancels.
"""

import logging
import threading
import time
from typing import Callable, List, Optional

from .errors import RequestCancelledError, RequestTimeoutError

logger = logging.getLogger(__name__)


class RequestContext:
    """
    Cancellation handle with an optional deadline.

    Usage:
        ctx = RequestContext(timeout=5.0)
        # from another thread: ctx.cancel()
        result = client.get_rate("https://example.com/page", ctx)
    """

    def __init__(self, timeout: Optional[float] = None):
        self._lock = threading.Lock()
        self._cancelled = threading.Event()
        self._callbacks: List[Callable[[], None]] = []
        self.deadline = time.monotonic() + timeout if timeout is not None else None

    @classmethod
    def with_timeout(cls, seconds: float) -> "RequestContext":
        return cls(timeout=seconds)

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def expired(self) -> bool:
        return self.deadline is not None and time.monotonic() >= self.deadline

    def remaining(self) -> Optional[float]:
        """Seconds until the deadline (never negative), None without one."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def cancel(self):
        """Cancel the context and run registered abort callbacks once."""
        with self._lock:
            if self._cancelled.is_set():
                return
            self._cancelled.set()
            callbacks, self._callbacks = self._callbacks, []

        for callback in callbacks:
            try:
                callback()
            except Exception as e:
                logger.debug(f"Cancel callback failed: {e}")

    def on_cancel(self, callback: Callable[[], None]) -> Callable[[], None]:
        """
        Register an abort callback.

        Runs immediately if the context is already cancelled.

        Returns:
            Function that unregisters the callback
        """
        with self._lock:
            if not self._cancelled.is_set():
                self._callbacks.append(callback)
                registered = True
            else:
                registered = False

        if not registered:
            callback()
            return lambda: None

        def unregister():
            with self._lock:
                if callback in self._callbacks:
                    self._callbacks.remove(callback)

        return unregister

    def raise_if_cancelled(self):
        """
        Raises:
            RequestCancelledError: context was cancelled
            RequestTimeoutError: deadline passed
        """
        if self.cancelled:
            raise RequestCancelledError("Request cancelled")
        if self.expired:
            raise RequestTimeoutError("Request deadline exceeded")
