"""Cooperative cancellation for bounded waits.

A CancellationSignal is set either explicitly (cancel()) or implicitly once its
optional deadline passes. Child signals created with linked() observe their
parent, so cancelling the outer envelope stops every nested wait within one
tick.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable

# Upper bound for a single Event.wait() slice while a parent is linked.
_PARENT_POLL_S = 0.05


class CancellationSignal:
    def __init__(
        self,
        *,
        timeout: float | None = None,
        parent: CancellationSignal | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._event = threading.Event()
        self._parent = parent
        self._clock = clock
        self._deadline = clock() + max(0.0, float(timeout)) if timeout is not None else None
        self.reason: str | None = None

    def cancel(self, reason: str = "cancelled") -> None:
        if self.reason is None:
            self.reason = reason
        self._event.set()

    @property
    def timed_out(self) -> bool:
        """True when this signal (or an ancestor) fired because its deadline passed."""
        if self._deadline is not None and self._clock() >= self._deadline and not self._event.is_set():
            self.cancel("timeout")
        if self._event.is_set():
            return self.reason == "timeout"
        return self._parent.timed_out if self._parent is not None else False

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline is not None and self._clock() >= self._deadline:
            self.cancel("timeout")
            return True
        return self._parent.cancelled if self._parent is not None else False

    def remaining(self) -> float | None:
        """Seconds until the nearest deadline in the chain (None when unbounded)."""
        own = None if self._deadline is None else max(0.0, self._deadline - self._clock())
        inherited = self._parent.remaining() if self._parent is not None else None
        if own is None:
            return inherited
        if inherited is None:
            return own
        return min(own, inherited)

    def wait(self, seconds: float) -> bool:
        """Sleep up to `seconds`, returning early (True) if cancelled."""
        end = self._clock() + max(0.0, float(seconds))
        while True:
            if self.cancelled:
                return True
            left = end - self._clock()
            if left <= 0:
                return self.cancelled
            limit = self.remaining()
            if limit is not None:
                left = min(left, limit)
            if self._parent is not None:
                left = min(left, _PARENT_POLL_S)
            if self._event.wait(max(0.0, left)):
                return True

    def linked(self, timeout: float | None = None) -> CancellationSignal:
        return CancellationSignal(timeout=timeout, parent=self, clock=self._clock)


__all__ = ["CancellationSignal"]
