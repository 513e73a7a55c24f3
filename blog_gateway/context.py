"""
GatewayContext - every piece of process-wide state, built once at startup.

Components receive their collaborators from here instead of reaching for
module-level singletons, so tests can build isolated instances.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Awaitable, Callable

import httpx
from loguru import logger

from blog_gateway.monitoring.alerts import AlertManager
from blog_gateway.monitoring.health import HealthMonitor
from blog_gateway.monitoring.metrics import MetricsCollector
from blog_gateway.monitoring.scheduler import MonitoringScheduler
from blog_gateway.services.cache import CacheStore
from blog_gateway.services.content import ContentService
from blog_gateway.services.deduplicator import RequestDeduplicator
from blog_gateway.services.gateway import ContentGateway
from blog_gateway.services.rate_limiter import SlidingWindowRateLimiter
from blog_gateway.services.retry import RetryEngine, RetryPolicy
from blog_gateway.settings import Settings

MIN_SWEEP_INTERVAL = 60.0


def _seconds(ms: float) -> float:
    return ms / 1000


@dataclass
class GatewayContext:
    settings: Settings
    cache: CacheStore
    rate_limiter: SlidingWindowRateLimiter
    metrics: MetricsCollector
    gateway: ContentGateway
    content: ContentService
    health: HealthMonitor
    alerts: AlertManager
    scheduler: MonitoringScheduler

    @classmethod
    def create(
        cls,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> "GatewayContext":
        """Wire every component from validated settings."""
        cache = CacheStore(
            default_ttl=_seconds(settings.cache_time),
            max_size=settings.cache_max_entries,
            clock=clock,
        )
        rate_limiter = SlidingWindowRateLimiter(
            window=_seconds(settings.rate_limit.window_ms),
            max_requests=settings.rate_limit.max_requests,
            clock=clock,
        )
        metrics = MetricsCollector(
            slow_request_threshold=settings.monitoring.slow_request_threshold,
            max_history=settings.monitoring.max_metrics_history,
        )
        retry_engine = RetryEngine(
            RetryPolicy(
                max_attempts=settings.retry.max_attempts,
                base_delay=_seconds(settings.retry.delay),
                max_delay=_seconds(settings.retry.max_delay),
            ),
            timeout=_seconds(settings.timeout),
            sleep=sleep,
        )
        gateway = ContentGateway(
            base_url=settings.base_url,
            headers=settings.headers,
            cache=cache,
            rate_limiter=rate_limiter,
            retry_engine=retry_engine,
            metrics=metrics,
            cache_ttl=_seconds(settings.cache_time),
            deduplicator=RequestDeduplicator() if settings.single_flight else None,
            transport=transport,
            clock=clock,
        )
        health = HealthMonitor(
            probe=gateway.probe,
            timeout=_seconds(settings.health_check.timeout),
            clock=clock,
        )
        thresholds = settings.alerts.thresholds
        alerts = AlertManager(
            metrics,
            error_rate=thresholds.error_rate,
            slow_request_rate=thresholds.slow_request_rate,
            avg_response_time=thresholds.avg_response_time,
            success_rate=thresholds.success_rate,
            cooldown=_seconds(settings.alerts.cooldown),
            enabled=settings.alerts.enabled,
            webhook_url=settings.alerts.webhook_url,
            clock=clock,
        )
        scheduler = MonitoringScheduler(
            health,
            alerts,
            cache,
            rate_limiter,
            health_interval=_seconds(settings.health_check.interval),
            alert_interval=_seconds(settings.alerts.interval),
            sweep_interval=max(_seconds(settings.cache_time), MIN_SWEEP_INTERVAL),
        )

        return cls(
            settings=settings,
            cache=cache,
            rate_limiter=rate_limiter,
            metrics=metrics,
            gateway=gateway,
            content=ContentService(gateway, settings.default_database_id),
            health=health,
            alerts=alerts,
            scheduler=scheduler,
        )

    async def start(self) -> None:
        """Start background monitoring and take an initial health reading."""
        self.scheduler.start()
        await self.scheduler.health_check_job()

    async def close(self) -> None:
        if self.scheduler.is_running():
            self.scheduler.stop()
        await self.gateway.close()
        logger.info("Gateway context closed")
