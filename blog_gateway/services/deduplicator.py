"""
RequestDeduplicator - single-flight for concurrent cache misses.

While an upstream fetch for a key is outstanding, later callers for the same
key await that fetch instead of issuing their own. The in-flight entry is
removed as soon as the fetch settles, so a failure is shared only with the
callers that were already waiting on it.
"""

import asyncio
from typing import Any, Awaitable, Callable, TypeVar

from loguru import logger

T = TypeVar("T")


class RequestDeduplicator:
    """
    Per-key in-flight future map.

    Usage:
        dedup = RequestDeduplicator()
        data = await dedup.dedupe(cache_key, lambda: fetch(endpoint))
    """

    def __init__(self, debug: bool = False):
        self._in_flight: dict[str, asyncio.Task[Any]] = {}
        self._debug = debug
        self.leaders = 0
        self.followers = 0

    async def dedupe(self, key: str, request_fn: Callable[[], Awaitable[T]]) -> T:
        """Join the outstanding fetch for ``key`` or start a new one."""
        task = self._in_flight.get(key)
        if task is not None:
            self.followers += 1
            self._log(f"JOIN: {key[:50]}")
        else:
            self.leaders += 1
            self._log(f"LEAD: {key[:50]}")
            task = asyncio.ensure_future(request_fn())
            self._in_flight[key] = task
            task.add_done_callback(lambda t, k=key: self._release(k, t))

        # Shield so one cancelled waiter does not cancel the fetch for the rest
        return await asyncio.shield(task)

    def _release(self, key: str, task: asyncio.Task[Any]) -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]
        if not task.cancelled() and task.exception() is not None:
            self._log(f"FAILED: {key[:50]}")

    def cancel_all(self) -> int:
        """Cancel all in-flight requests."""
        count = len(self._in_flight)
        for task in self._in_flight.values():
            task.cancel()
        self._in_flight.clear()
        if count:
            logger.debug(f"[Deduplicator] cancelled {count} in-flight requests")
        return count

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    def get_stats(self) -> dict[str, Any]:
        total = self.leaders + self.followers
        return {
            "upstreamCalls": self.leaders,
            "deduplicated": self.followers,
            "inFlight": len(self._in_flight),
            "dedupRate": f"{(self.followers / total if total else 0.0):.2%}",
        }

    def _log(self, message: str) -> None:
        if self._debug:
            logger.debug(f"[Deduplicator] {message}")
