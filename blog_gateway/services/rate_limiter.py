"""
SlidingWindowRateLimiter - per-client sliding-log admission control.

Each client keeps the timestamps of its recent admissions. A check prunes
timestamps that fell out of the window, then admits (and records) the call
if fewer than ``max_requests`` remain. Excess calls are denied immediately,
never queued.
"""

import time
from collections import deque
from typing import Any, Callable

from loguru import logger

DEFAULT_CLIENT_ID = "default"


class SlidingWindowRateLimiter:
    """
    Exact sliding-window limiter keyed by caller identity.

    Usage:
        limiter = SlidingWindowRateLimiter(window=60.0, max_requests=30)

        if not limiter.is_allowed(client_id):
            raise RateLimitExceededError(client_id, limiter.retry_after(client_id))
    """

    def __init__(
        self,
        window: float = 60.0,
        max_requests: int = 30,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.window = window
        self.max_requests = max_requests
        self._clock = clock
        self._windows: dict[str, deque[float]] = {}

        self._total_allowed = 0
        self._total_denied = 0

    def is_allowed(self, client_id: str = DEFAULT_CLIENT_ID) -> bool:
        """Check and, when admitted, record one request for ``client_id``."""
        now = self._clock()
        timestamps = self._prune(client_id, now)

        if len(timestamps) >= self.max_requests:
            self._total_denied += 1
            logger.warning(
                f"Rate limit exceeded for client '{client_id}' "
                f"({len(timestamps)}/{self.max_requests} in {self.window}s)"
            )
            return False

        timestamps.append(now)
        self._windows[client_id] = timestamps
        self._total_allowed += 1
        return True

    def retry_after(self, client_id: str = DEFAULT_CLIENT_ID) -> float:
        """Seconds until the oldest recorded admission leaves the window."""
        timestamps = self._windows.get(client_id)
        if not timestamps or len(timestamps) < self.max_requests:
            return 0.0
        return max(0.0, timestamps[0] + self.window - self._clock())

    def remaining(self, client_id: str = DEFAULT_CLIENT_ID) -> int:
        """Admissions left for ``client_id`` in the current window."""
        timestamps = self._prune(client_id, self._clock())
        return max(0, self.max_requests - len(timestamps))

    def cleanup(self) -> int:
        """Prune every client; drops clients with nothing left. Returns count dropped."""
        now = self._clock()
        before = len(self._windows)
        for client_id in list(self._windows):
            self._prune(client_id, now)
        return before - len(self._windows)

    def reset(self) -> None:
        self._windows.clear()

    def _prune(self, client_id: str, now: float) -> deque[float]:
        timestamps = self._windows.get(client_id)
        if timestamps is None:
            return deque()

        window_start = now - self.window
        while timestamps and timestamps[0] <= window_start:
            timestamps.popleft()

        if not timestamps:
            del self._windows[client_id]
        return timestamps

    def get_stats(self) -> dict[str, Any]:
        """Get rate limiter statistics."""
        return {
            "windowSeconds": self.window,
            "maxRequests": self.max_requests,
            "trackedClients": len(self._windows),
            "totalAllowed": self._total_allowed,
            "totalDenied": self._total_denied,
        }
