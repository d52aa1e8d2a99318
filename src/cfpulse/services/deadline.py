"""Cancellation scope shared by every step of one clone invocation."""

import threading
import time
from typing import Callable, Optional

from cfpulse.errors import CloneCancelledError, CloneTimeoutError


class Deadline:
    """End-to-end time budget that can also be cancelled explicitly."""

    def __init__(
        self,
        timeout_seconds: Optional[float],
        clock: Callable[[], float] = time.monotonic,
    ):
        self.timeout_seconds = timeout_seconds
        self.clock = clock
        self.expires_at = None if timeout_seconds is None else clock() + timeout_seconds
        self._cancelled = threading.Event()

    def remaining(self) -> Optional[float]:
        if self.expires_at is None:
            return None
        return max(0.0, self.expires_at - self.clock())

    @property
    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self):
        self._cancelled.set()

    def check(self):
        if self.cancelled:
            raise CloneCancelledError("Operation cancelled.")
        if self.expired:
            raise CloneTimeoutError(
                f"Operation exceeded its {self.timeout_seconds:.0f}s time budget."
            )

    def bound(self, timeout: Optional[float]) -> Optional[float]:
        """Returns the step timeout clipped to what is left of the budget."""
        self.check()
        remaining = self.remaining()
        if remaining is None:
            return timeout
        if timeout is None:
            return remaining
        return min(timeout, remaining)

    def wait(self, seconds: float):
        """Sleeps up to `seconds`, raising as soon as the scope is cancelled or expires."""
        self.check()
        remaining = self.remaining()
        pause = seconds if remaining is None else min(seconds, remaining)
        if pause > 0:
            self._cancelled.wait(pause)
        self.check()
