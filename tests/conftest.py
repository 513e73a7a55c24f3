"""
Shared fixtures: a controllable clock, a recording sleep, and a gateway
wired to an httpx.MockTransport instead of the network.
"""

from typing import Any, Callable

import httpx
import pytest

from blog_gateway.monitoring.metrics import MetricsCollector
from blog_gateway.services.cache import CacheStore
from blog_gateway.services.deduplicator import RequestDeduplicator
from blog_gateway.services.gateway import ContentGateway
from blog_gateway.services.rate_limiter import SlidingWindowRateLimiter
from blog_gateway.services.retry import RetryEngine, RetryPolicy

BASE_URL = "https://api.notion.test/v1/"
DATABASE_ID = "1a932af826e680df8bf7f320b51930b9"
PAGE_ID = "0f1e2d3c-4b5a-6978-8796-a5b4c3d2e1f0"


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Stands in for asyncio.sleep: records each delay and advances the clock."""

    def __init__(self, clock: FakeClock | None = None):
        self.delays: list[float] = []
        self._clock = clock

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        if self._clock is not None:
            self._clock.advance(delay)


class UpstreamMock:
    """Scripted upstream: replays responses in order and records requests."""

    def __init__(self, responses: list[Any] | Callable[[httpx.Request], Any]):
        self._responses = responses
        self.requests: list[httpx.Request] = []

    @property
    def calls(self) -> int:
        return len(self.requests)

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if callable(self._responses):
            result = self._responses(request)
            if hasattr(result, "__await__"):
                result = await result
        else:
            index = min(len(self.requests), len(self._responses)) - 1
            result = self._responses[index]

        if isinstance(result, Exception):
            raise result
        if isinstance(result, httpx.Response):
            return result
        status, body = result
        return httpx.Response(status, json=body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


def build_gateway(
    upstream: UpstreamMock,
    clock: FakeClock,
    sleep: RecordingSleep,
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 5.0,
    timeout: float | None = 10.0,
    window: float = 60.0,
    max_requests: int = 30,
    cache_ttl: float = 300.0,
    single_flight: bool = True,
    metrics: MetricsCollector | None = None,
) -> ContentGateway:
    return ContentGateway(
        base_url=BASE_URL,
        headers={
            "Authorization": "Bearer secret-token",
            "Notion-Version": "2022-06-28",
            "Content-Type": "application/json",
        },
        cache=CacheStore(default_ttl=cache_ttl, clock=clock),
        rate_limiter=SlidingWindowRateLimiter(window=window, max_requests=max_requests, clock=clock),
        retry_engine=RetryEngine(
            RetryPolicy(max_attempts=max_attempts, base_delay=base_delay, max_delay=max_delay),
            timeout=timeout,
            sleep=sleep,
        ),
        metrics=metrics or MetricsCollector(),
        cache_ttl=cache_ttl,
        deduplicator=RequestDeduplicator() if single_flight else None,
        transport=upstream.transport,
        clock=clock,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleep(clock: FakeClock) -> RecordingSleep:
    return RecordingSleep(clock)
