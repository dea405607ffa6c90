"""
Sliding-window call-rate limiter.

Each identity keeps the timestamps of its recent calls in a ring buffer no
larger than max_requests, so one busy caller cannot grow memory without bound.
Used to keep the external e-mail model from being called too often.
"""

import asyncio
import functools
import inspect
import threading
import time
from collections import deque
from typing import Callable, Optional

from loguru import logger

from catalog_engine.shared.config import (
    DEFAULT_IDENTITY,
    RATE_LIMIT_MAX_REQUESTS,
    RATE_LIMIT_MAX_SLEEP_SECONDS,
    RATE_LIMIT_WINDOW_SECONDS,
)
from catalog_engine.shared.errors import RateLimitExceeded


class SlidingWindowRateLimiter:
    """At most max_requests calls per identity in any trailing window of window seconds."""

    def __init__(
        self,
        max_requests: int = RATE_LIMIT_MAX_REQUESTS,
        window: float = RATE_LIMIT_WINDOW_SECONDS,
        max_sleep: float = RATE_LIMIT_MAX_SLEEP_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if window <= 0:
            raise ValueError("window must be positive")

        self.max_requests = max_requests
        self.window = window
        self.max_sleep = max_sleep
        self._clock = clock
        self._sleep = sleep
        self._history: dict[str, deque[float]] = {}
        self._lock = threading.Lock()

    # ---------------- Checks ----------------

    def check_limit(self, identity: str = DEFAULT_IDENTITY) -> bool:
        """Allow-and-record: True (and the call is counted) if a slot is free."""
        with self._lock:
            now = self._clock()
            history = self._history.get(identity)
            if history is None:
                history = deque(maxlen=self.max_requests)
                self._history[identity] = history

            self._prune(history, now)
            if len(history) >= self.max_requests:
                return False

            history.append(now)
            return True

    def wait_for_slot(
        self,
        identity: str = DEFAULT_IDENTITY,
        timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> bool:
        """Block until a slot is taken. False if cancelled or timed out first."""
        deadline = None if timeout is None else self._clock() + timeout

        while not self.check_limit(identity):
            if cancel_event is not None and cancel_event.is_set():
                logger.debug("[SlidingWindowRateLimiter.wait_for_slot] Cancelled for '{}'", identity)
                return False

            delay = self._next_delay(identity)
            if deadline is not None:
                left = deadline - self._clock()
                if left <= 0:
                    logger.debug("[SlidingWindowRateLimiter.wait_for_slot] Timed out for '{}'", identity)
                    return False
                delay = min(delay, left)

            if cancel_event is not None:
                # wakes early when the event is set
                cancel_event.wait(delay)
            else:
                self._sleep(delay)

        return True

    async def wait_for_slot_async(self, identity: str = DEFAULT_IDENTITY) -> None:
        """Suspend until a slot is taken. Task cancellation is honoured between sleeps."""
        while not self.check_limit(identity):
            await asyncio.sleep(self._next_delay(identity))

    # ---------------- Introspection (read-only) ----------------

    def remaining(self, identity: str = DEFAULT_IDENTITY) -> int:
        with self._lock:
            used = self._count_in_window(identity, self._clock())
        return max(0, self.max_requests - used)

    def reset_time(self, identity: str = DEFAULT_IDENTITY) -> float:
        """Clock time at which the oldest in-window call leaves the window, 0 if none."""
        with self._lock:
            oldest = self._oldest_in_window(identity, self._clock())
        return 0.0 if oldest is None else oldest + self.window

    def reset_in(self, identity: str = DEFAULT_IDENTITY) -> float:
        """Seconds until reset_time(), 0 if nothing is in the window."""
        with self._lock:
            now = self._clock()
            oldest = self._oldest_in_window(identity, now)
        return 0.0 if oldest is None else max(0.0, oldest + self.window - now)

    def cleanup(self) -> int:
        """Drop identities with no calls left in the window. Returns how many were dropped."""
        with self._lock:
            now = self._clock()
            idle = []
            for identity, history in self._history.items():
                self._prune(history, now)
                if not history:
                    idle.append(identity)
            for identity in idle:
                del self._history[identity]
        return len(idle)

    # ---------------- Internals ----------------

    def _prune(self, history: deque, now: float) -> None:
        window_start = now - self.window
        while history and history[0] <= window_start:
            history.popleft()

    def _count_in_window(self, identity: str, now: float) -> int:
        window_start = now - self.window
        return sum(1 for ts in self._history.get(identity, ()) if ts > window_start)

    def _oldest_in_window(self, identity: str, now: float) -> Optional[float]:
        window_start = now - self.window
        for ts in self._history.get(identity, ()):
            if ts > window_start:
                return ts
        return None

    def _next_delay(self, identity: str) -> float:
        # time until the oldest call expires, capped so waiters stay responsive
        return min(self.reset_in(identity), self.max_sleep)


def rate_limited(
    limiter: SlidingWindowRateLimiter,
    identity: str = DEFAULT_IDENTITY,
    timeout: Optional[float] = None,
):
    """
    Decorator that waits for a limiter slot before each call.
    Works on plain and async functions. A sync wait that times out raises
    RateLimitExceeded; async callers bound the wait with asyncio.wait_for.
    """
    def decorator(func):
        if inspect.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                await limiter.wait_for_slot_async(identity)
                return await func(*args, **kwargs)
            return async_wrapper

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            if not limiter.wait_for_slot(identity, timeout=timeout):
                raise RateLimitExceeded(identity, retry_after=limiter.reset_in(identity))
            return func(*args, **kwargs)
        return wrapper
    return decorator
