"""
Timeout guard and retry engine for upstream attempts.

Each attempt runs under ``with_timeout``; an attempt that overruns is
cancelled (the awaited httpx request is aborted with it) and reported as a
RequestTimeoutError. ``RetryEngine`` re-runs retryable failures with capped
exponential backoff and surfaces UpstreamUnavailableError once the attempt
budget is spent. Terminal failures propagate on the first occurrence.
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from loguru import logger

from blog_gateway.services.errors import (
    GatewayError,
    RequestTimeoutError,
    UpstreamUnavailableError,
)

T = TypeVar("T")


@dataclass
class RetryPolicy:
    """Attempt budget and backoff bounds (seconds)."""

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 5.0

    def delay_for(self, attempt: int, retry_after: float | None = None) -> float:
        """
        Backoff before the attempt following ``attempt`` (1-based).

        An upstream ``Retry-After`` hint lengthens the wait but never past
        ``max_delay``.
        """
        delay = self.base_delay * 2 ** (attempt - 1)
        if retry_after:
            delay = max(delay, retry_after)
        return min(delay, self.max_delay)


def is_retryable(error: BaseException) -> bool:
    """Default classifier: timeouts, 429 and 5xx are retryable."""
    return isinstance(error, GatewayError) and error.retryable


async def with_timeout(
    attempt_fn: Callable[[], Awaitable[T]],
    timeout: float | None,
    service_id: str = "upstream",
) -> T:
    """Run one attempt, failing with RequestTimeoutError when it overruns."""
    if timeout is None:
        return await attempt_fn()
    try:
        return await asyncio.wait_for(attempt_fn(), timeout=timeout)
    except asyncio.TimeoutError as e:
        raise RequestTimeoutError(service_id, timeout) from e


class RetryEngine:
    """
    Iterative retry loop around a single attempt function.

    Usage:
        engine = RetryEngine(RetryPolicy(max_attempts=3), timeout=10.0)
        data = await engine.run(lambda: client.get(url), description="GET pages/x")

    ``sleep`` is injectable so backoff timing can be observed in tests.
    """

    def __init__(
        self,
        policy: RetryPolicy | None = None,
        timeout: float | None = None,
        classifier: Callable[[BaseException], bool] = is_retryable,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        service_id: str = "upstream",
    ):
        self.policy = policy or RetryPolicy()
        self.timeout = timeout
        self._classifier = classifier
        self._sleep = sleep
        self._service_id = service_id

    async def run(
        self,
        attempt_fn: Callable[[], Awaitable[T]],
        description: str = "",
    ) -> T:
        """Execute ``attempt_fn`` until success, a terminal error, or exhaustion."""
        max_attempts = self.policy.max_attempts
        attempt = 1

        while True:
            try:
                return await with_timeout(attempt_fn, self.timeout, self._service_id)
            except GatewayError as e:
                e.attempts = attempt
                if not self._classifier(e):
                    raise

                if attempt >= max_attempts:
                    logger.error(
                        f"{description or 'Request'} failed after {attempt} attempts: {e}"
                    )
                    raise UpstreamUnavailableError(e, attempt) from e

                delay = self.policy.delay_for(attempt, getattr(e, "retry_after", None))
                logger.warning(
                    f"Retrying {description or 'request'} "
                    f"({attempt}/{max_attempts}) after {delay:.2f}s: {e}"
                )
                await self._sleep(delay)
                attempt += 1
