"""
AlertManager - threshold checks over metrics snapshots with per-type cooldown.

``check_metrics`` runs on the monitoring scheduler. Each breached threshold
goes through ``send_alert``, which suppresses an alert type that already
fired within the cooldown. Emitted alerts are logged, appended to the
metrics alert log and, when configured, POSTed to a webhook.
"""

import time
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable

import httpx
from loguru import logger

from blog_gateway.monitoring.metrics import MetricsCollector


class AlertType(str, Enum):
    HIGH_ERROR_RATE = "high_error_rate"
    HIGH_SLOW_RATE = "high_slow_rate"
    HIGH_RESPONSE_TIME = "high_response_time"
    LOW_SUCCESS_RATE = "low_success_rate"


class AlertManager:
    """
    Usage:
        alerts = AlertManager(metrics, error_rate=0.1, cooldown=300.0)
        await alerts.check_metrics()
    """

    def __init__(
        self,
        metrics: MetricsCollector,
        error_rate: float = 0.1,
        slow_request_rate: float = 0.2,
        avg_response_time: float = 2000,
        success_rate: float = 0.95,
        cooldown: float = 300.0,
        enabled: bool = True,
        webhook_url: str | None = None,
        clock: Callable[[], float] = time.monotonic,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.metrics = metrics
        self.error_rate = error_rate
        self.slow_request_rate = slow_request_rate
        self.avg_response_time = avg_response_time
        self.success_rate = success_rate
        self.cooldown = cooldown
        self.enabled = enabled
        self.webhook_url = webhook_url
        self._clock = clock
        self._transport = transport
        self.last_alert_time: dict[AlertType, float] = {}

    def should_alert(self, alert_type: AlertType) -> bool:
        """True when ``alert_type`` has not fired within the cooldown."""
        last = self.last_alert_time.get(alert_type)
        return last is None or self._clock() - last >= self.cooldown

    async def send_alert(self, alert_type: AlertType, message: str) -> bool:
        """Record and deliver an alert unless disabled or cooling down."""
        if not self.enabled or not self.should_alert(alert_type):
            logger.debug(f"Alert {alert_type.value} suppressed")
            return False

        self.last_alert_time[alert_type] = self._clock()
        alert = {
            "type": alert_type.value,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        logger.error(f"[ALERT] {alert_type.value}: {message}")
        self.metrics.record_alert(alert)

        if self.webhook_url:
            await self._deliver(alert)
        return True

    async def _deliver(self, alert: dict[str, Any]) -> None:
        try:
            async with httpx.AsyncClient(timeout=5.0, transport=self._transport) as client:
                response = await client.post(self.webhook_url, json=alert)
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Alert webhook delivery failed: {e}")

    async def check_metrics(self) -> list[AlertType]:
        """Evaluate the latest metrics snapshot. Returns the alert types emitted."""
        report = self.metrics.get_report()
        requests = report["requests"]
        total = requests["total"]
        if total == 0:
            return []

        breaches: list[tuple[AlertType, str]] = []

        error_rate = requests["failed"] / total
        if error_rate > self.error_rate:
            breaches.append(
                (
                    AlertType.HIGH_ERROR_RATE,
                    f"Error rate {error_rate:.2%} exceeds threshold {self.error_rate:.0%}",
                )
            )

        slow_rate = requests["slow"] / total
        if slow_rate > self.slow_request_rate:
            breaches.append(
                (
                    AlertType.HIGH_SLOW_RATE,
                    f"Slow request rate {slow_rate:.2%} exceeds threshold "
                    f"{self.slow_request_rate:.0%}",
                )
            )

        avg = report["responseTime"]["avg"]
        if avg > self.avg_response_time:
            breaches.append(
                (
                    AlertType.HIGH_RESPONSE_TIME,
                    f"Average response time {avg}ms exceeds threshold "
                    f"{self.avg_response_time}ms",
                )
            )

        success_rate = requests["success"] / total
        if success_rate < self.success_rate:
            breaches.append(
                (
                    AlertType.LOW_SUCCESS_RATE,
                    f"Success rate {success_rate:.2%} below threshold {self.success_rate:.0%}",
                )
            )

        emitted = []
        for alert_type, message in breaches:
            if await self.send_alert(alert_type, message):
                emitted.append(alert_type)
        return emitted

    def reset(self) -> None:
        self.last_alert_time.clear()
