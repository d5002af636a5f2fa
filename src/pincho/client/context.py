"""Per-call cancellation and deadline handle.

A :class:`CallContext` bounds a whole logical call, retries and backoff
sleeps included.  Cancel it from another thread (e.g. a SIGINT handler)
or let its deadline expire; the executor checks it before every attempt,
the transport aborts an in-flight round trip, and backoff sleeps wake up
as soon as it fires.
"""

from __future__ import annotations

import threading
import time
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable


class CallContext:
    """Cancellation signal plus an optional deadline.

    Parameters
    ----------
    timeout:
        Seconds until the deadline, or ``None`` for no deadline.
    clock:
        Monotonic clock returning seconds; injectable for tests.

    """

    def __init__(
        self,
        timeout: float | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._clock = clock
        self._event = threading.Event()
        self._deadline = clock() + timeout if timeout is not None else None
        self._cancelled = False
        # Re-entrant: cancel() may run in a signal handler on the thread
        # that holds the lock.
        self._lock = threading.RLock()
        self._callbacks: list[Callable[[], None]] = []

    def cancel(self) -> None:
        """Cancel the call.  Safe to call from any thread, more than once."""
        with self._lock:
            first = not self._cancelled
            self._cancelled = True
            callbacks = list(self._callbacks) if first else []
        self._event.set()
        for callback in callbacks:
            callback()

    def on_cancel(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Run *callback* once when the call is cancelled.

        Runs it immediately if the call is already cancelled.  Returns a
        function that unregisters the callback.
        """
        with self._lock:
            if not self._cancelled:
                self._callbacks.append(callback)
                return lambda: self._discard(callback)
        callback()
        return lambda: None

    def _discard(self, callback: Callable[[], None]) -> None:
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

    def remaining(self) -> float | None:
        """Seconds left before the deadline (never negative), or ``None``."""
        if self._deadline is None:
            return None
        return max(self._deadline - self._clock(), 0.0)

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    @property
    def done(self) -> bool:
        return self._cancelled or self.expired

    @property
    def reason(self) -> str:
        if self._cancelled:
            return "request cancelled"
        if self.expired:
            return "deadline exceeded"
        return ""

    def wait(self, seconds: float) -> bool:
        """Sleep up to *seconds*; return ``True`` if interrupted.

        Wakes early when the context is cancelled or the deadline
        passes.  The deadline is never waited out past its expiry.
        """
        if self.done:
            return True
        remaining = self.remaining()
        budget = seconds if remaining is None else min(seconds, remaining)
        self._event.wait(max(budget, 0.0))
        return self.done
