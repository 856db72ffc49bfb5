"""Rolling-window rate limiter for scraping engines."""

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol

from corptrends.fetch.constants import RATE_LIMIT_WINDOW_SECONDS


class RateLimiterProtocol(Protocol):
    """Protocol for engine rate limiters.

    Allows injecting a deterministic limiter in tests, or one backed by a
    shared medium when several processes scrape the same platform.
    """

    def acquire(self) -> float:
        """Count one request, blocking while the window is saturated.

        Returns:
            Seconds spent waiting.
        """
        ...

    def set_limit(self, requests_per_minute: int) -> None:
        """Change the per-window request budget."""
        ...

    @property
    def was_rate_limited(self) -> bool:
        """Check if any request had to wait."""
        ...


@dataclass
class WindowRateLimiter:
    """Request counter over a rolling 60-second window.

    The window opens with the first request. Once ``requests_per_minute``
    requests were counted, the next ``acquire`` sleeps until the window
    closes, forgets the counter and starts a new window.

    Attributes:
        requests_per_minute: Request budget per window.
        window_seconds: Window length.
        clock: Monotonic clock in seconds.
        sleep: Blocking sleep function.
    """

    requests_per_minute: int
    window_seconds: float = RATE_LIMIT_WINDOW_SECONDS
    clock: Callable[[], float] = time.monotonic
    sleep: Callable[[float], None] = time.sleep

    _count: int = field(init=False, default=0)
    _window_start: float | None = field(init=False, default=None)
    _rate_limited_count: int = field(init=False, default=0)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def __post_init__(self) -> None:
        """Validate the request budget."""
        if self.requests_per_minute < 1:
            msg = f"requests_per_minute must be >= 1, got {self.requests_per_minute}"
            raise ValueError(msg)

    def _forget(self) -> None:
        """Drop the counter and close the current window.

        Must be called while holding the lock.
        """
        self._count = 0
        self._window_start = None

    def acquire(self) -> float:
        """Count one request, blocking while the window is saturated.

        Returns:
            Seconds spent waiting.
        """
        with self._lock:
            now = self.clock()
            if (
                self._window_start is not None
                and now - self._window_start >= self.window_seconds
            ):
                self._forget()

            waited = 0.0
            if (
                self._count >= self.requests_per_minute
                and self._window_start is not None
            ):
                waited = max(0.0, self._window_start + self.window_seconds - now)
                self._rate_limited_count += 1
                # Concurrent callers queue behind this wait
                self.sleep(waited)
                self._forget()

            if self._window_start is None:
                self._window_start = self.clock()
            self._count += 1
            return waited

    def set_limit(self, requests_per_minute: int) -> None:
        """Change the per-window request budget.

        Args:
            requests_per_minute: New budget (>= 1).
        """
        if requests_per_minute < 1:
            msg = f"requests_per_minute must be >= 1, got {requests_per_minute}"
            raise ValueError(msg)
        with self._lock:
            self.requests_per_minute = requests_per_minute

    @property
    def current_count(self) -> int:
        """Requests counted in the open window."""
        with self._lock:
            return self._count

    @property
    def was_rate_limited(self) -> bool:
        """Check if any request had to wait since creation."""
        with self._lock:
            return self._rate_limited_count > 0

    @property
    def rate_limited_count(self) -> int:
        """Get the number of waits."""
        with self._lock:
            return self._rate_limited_count
