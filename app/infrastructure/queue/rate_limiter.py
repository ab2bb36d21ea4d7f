"""Sliding-window rate limiter shared by the worker threads."""

import threading
import time
from collections import deque
from typing import Callable, Deque, Optional

from infrastructure.logging import get_module_logger

logger = get_module_logger()


class RateLimiter:
    """Allow at most `max_calls` acquisitions within any `period_seconds` window.

    Args:
        max_calls: Calls allowed per window
        period_seconds: Window length
        clock: Monotonic time source (injectable for tests)
    """

    def __init__(
        self,
        max_calls: int,
        period_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_calls < 1:
            raise ValueError("max_calls must be at least 1")
        if period_seconds <= 0:
            raise ValueError("period_seconds must be positive")
        self.max_calls = max_calls
        self.period_seconds = period_seconds
        self._clock = clock
        self._calls: Deque[float] = deque()
        self._lock = threading.Lock()

    def _evict(self, now: float) -> None:
        while self._calls and now - self._calls[0] >= self.period_seconds:
            self._calls.popleft()

    def try_acquire(self) -> bool:
        """Take a slot if one is free right now."""
        with self._lock:
            now = self._clock()
            self._evict(now)
            if len(self._calls) < self.max_calls:
                self._calls.append(now)
                return True
            return False

    def wait_time(self) -> float:
        """Seconds until the next slot frees up (0 when one is free)."""
        with self._lock:
            now = self._clock()
            self._evict(now)
            if len(self._calls) < self.max_calls:
                return 0.0
            return max(0.0, self.period_seconds - (now - self._calls[0]))

    def acquire(
        self,
        stop_event: Optional[threading.Event] = None,
        timeout: Optional[float] = None,
    ) -> bool:
        """Block until a slot is taken.

        Returns:
            False when `stop_event` is set or `timeout` elapses first.
        """
        deadline = None if timeout is None else self._clock() + timeout
        while True:
            if self.try_acquire():
                return True

            wait = self.wait_time()
            if deadline is not None:
                remaining = deadline - self._clock()
                if remaining <= 0:
                    return False
                wait = min(wait, remaining)

            logger.debug("rate_limit_waiting", wait_seconds=round(wait, 3))
            if stop_event is not None:
                if stop_event.wait(wait):
                    return False
            else:
                time.sleep(wait)

    @property
    def in_window(self) -> int:
        with self._lock:
            self._evict(self._clock())
            return len(self._calls)
