"""
Monitoring scheduler.
Runs the health probe, alert evaluation and cache sweep on APScheduler
interval jobs, independent of the request path.
"""

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from loguru import logger

from blog_gateway.monitoring.alerts import AlertManager
from blog_gateway.monitoring.health import HealthMonitor
from blog_gateway.services.cache import CacheStore
from blog_gateway.services.rate_limiter import SlidingWindowRateLimiter


class MonitoringScheduler:
    """Background jobs for health, alerting and housekeeping."""

    def __init__(
        self,
        health: HealthMonitor,
        alerts: AlertManager,
        cache: CacheStore,
        rate_limiter: SlidingWindowRateLimiter,
        health_interval: float = 60.0,
        alert_interval: float = 60.0,
        sweep_interval: float = 300.0,
    ):
        self.scheduler = AsyncIOScheduler()
        self.health = health
        self.alerts = alerts
        self.cache = cache
        self.rate_limiter = rate_limiter
        self.health_interval = health_interval
        self.alert_interval = alert_interval
        self.sweep_interval = sweep_interval
        self._is_running = False

    async def health_check_job(self) -> None:
        try:
            await self.health.check()
        except Exception as e:
            logger.error(f"Error in scheduled health check: {e}")
            self.health.record_error(f"health check job: {e}")

    async def alert_check_job(self) -> None:
        try:
            emitted = await self.alerts.check_metrics()
            if emitted:
                logger.info(f"Alert evaluation emitted: {[a.value for a in emitted]}")
        except Exception as e:
            logger.error(f"Error in scheduled alert evaluation: {e}")
            self.health.record_error(f"alert evaluation job: {e}")

    async def sweep_job(self) -> None:
        try:
            expired = self.cache.cleanup_expired()
            dropped = self.rate_limiter.cleanup()
            if expired or dropped:
                logger.debug(f"Sweep: {expired} cache entries, {dropped} idle rate-limit clients")
        except Exception as e:
            logger.error(f"Error in scheduled sweep: {e}")

    def start(self) -> None:
        """Start the scheduler. Must be called with a running event loop."""
        if self._is_running:
            logger.warning("Monitoring scheduler is already running")
            return

        self.scheduler.add_job(
            self.health_check_job,
            trigger="interval",
            seconds=self.health_interval,
            id="health_check_job",
            name="Content service health probe",
            replace_existing=True,
        )
        self.scheduler.add_job(
            self.alert_check_job,
            trigger="interval",
            seconds=self.alert_interval,
            id="alert_check_job",
            name="Metrics alert evaluation",
            replace_existing=True,
        )
        self.scheduler.add_job(
            self.sweep_job,
            trigger="interval",
            seconds=self.sweep_interval,
            id="sweep_job",
            name="Cache and rate-limit sweep",
            replace_existing=True,
        )

        self.scheduler.start()
        self._is_running = True

        logger.info(
            f"Monitoring scheduler started: health every {self.health_interval}s, "
            f"alerts every {self.alert_interval}s"
        )

    def stop(self) -> None:
        if not self._is_running:
            logger.warning("Monitoring scheduler is not running")
            return

        self.scheduler.shutdown(wait=False)
        self._is_running = False
        logger.info("Monitoring scheduler stopped")

    def is_running(self) -> bool:
        return self._is_running
