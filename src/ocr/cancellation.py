from __future__ import annotations

import threading
import time
from typing import Callable

from contracts.errors import DeadlineExceeded, OperationCancelled


class CancelToken:
    """
    Caller-owned cancellation signal with an optional absolute deadline.

    One token is shared by every network call and wait of a single conversion.
    `cancel()` may be called from any thread; waiters wake immediately.
    """

    def __init__(self, *, deadline_s: float | None = None, clock: Callable[[], float] = time.monotonic) -> None:
        if deadline_s is not None and deadline_s < 0:
            raise ValueError("deadline_s must be >= 0")
        self._event = threading.Event()
        self._clock = clock
        self._deadline = None if deadline_s is None else clock() + deadline_s

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def expired(self) -> bool:
        return self._deadline is not None and self._clock() >= self._deadline

    @property
    def done(self) -> bool:
        return self.cancelled or self.expired

    def remaining(self) -> float | None:
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - self._clock())

    def raise_if_done(self) -> None:
        if self.cancelled:
            raise OperationCancelled("Operation cancelled by caller")
        if self.expired:
            raise DeadlineExceeded("Caller deadline expired")

    def request_timeout(self, default_s: float) -> float:
        """
        Bound a single network call by the caller's remaining time.
        """

        self.raise_if_done()
        remaining = self.remaining()
        return default_s if remaining is None else min(default_s, remaining)

    def wait(self, seconds: float) -> bool:
        """
        Suspend for up to `seconds` (never past the deadline).

        Returns True when the token is done, i.e. the caller should stop.
        """

        remaining = self.remaining()
        if remaining is not None:
            seconds = min(seconds, remaining)
        if seconds > 0:
            self._event.wait(seconds)
        return self.done
