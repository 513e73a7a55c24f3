"""
HealthMonitor - periodic reachability probe of the content service.

A probe is a single request under its own short timeout; it never goes
through the retry engine. Failures are kept in a small FIFO that also
collects process-level errors reported from elsewhere.
"""

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable

from loguru import logger

from blog_gateway.monitoring.buffers import RingBuffer
from blog_gateway.services.errors import GatewayError, RequestTimeoutError

RECENT_ERRORS_CAPACITY = 10


class UpstreamStatus(str, Enum):
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"  # reachable, but answered with an error status
    ERROR = "error"  # timeout or transport failure
    UNKNOWN = "unknown"


@dataclass
class HealthState:
    is_healthy: bool = True
    upstream_status: UpstreamStatus = UpstreamStatus.UNKNOWN
    last_check_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    process_start_at: float = field(default_factory=time.monotonic)
    uptime: float = 0.0
    recent_errors: RingBuffer[dict[str, str]] = field(
        default_factory=lambda: RingBuffer(RECENT_ERRORS_CAPACITY)
    )


class HealthMonitor:
    """
    Usage:
        monitor = HealthMonitor(probe=gateway.probe, timeout=5.0)
        await monitor.check()
        monitor.get_status()
    """

    def __init__(
        self,
        probe: Callable[[], Awaitable[Any]],
        timeout: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._probe = probe
        self.timeout = timeout
        self._clock = clock
        self.state = HealthState(process_start_at=clock())

    async def check(self) -> bool:
        """Run one probe and update the health state. Returns reachability."""
        try:
            await asyncio.wait_for(self._probe(), timeout=self.timeout)
        except asyncio.TimeoutError:
            self._mark_failed(UpstreamStatus.ERROR, str(RequestTimeoutError("notion", self.timeout)))
        except GatewayError as e:
            status = UpstreamStatus.UNHEALTHY if e.status_code < 500 else UpstreamStatus.ERROR
            self._mark_failed(status, e.message)
        except Exception as e:
            self._mark_failed(UpstreamStatus.ERROR, f"{type(e).__name__}: {e}")
        else:
            if not self.state.is_healthy:
                logger.info("Content service is reachable again")
            self.state.is_healthy = True
            self.state.upstream_status = UpstreamStatus.HEALTHY
        finally:
            self._touch()

        return self.state.is_healthy

    def _mark_failed(self, status: UpstreamStatus, message: str) -> None:
        logger.warning(f"Health check failed ({status.value}): {message}")
        self.state.is_healthy = False
        self.state.upstream_status = status
        self.record_error(message)

    def _touch(self) -> None:
        self.state.last_check_at = datetime.now(timezone.utc)
        self.state.uptime = self._clock() - self.state.process_start_at

    def record_error(self, message: str) -> None:
        """Append to the recent error FIFO (also used for process-level errors)."""
        self.state.recent_errors.append(
            {"time": datetime.now(timezone.utc).isoformat(), "error": message}
        )

    def get_status(self) -> dict[str, Any]:
        """Health surface for external monitors."""
        self.state.uptime = self._clock() - self.state.process_start_at
        return {
            "status": "healthy" if self.state.is_healthy else "unhealthy",
            "notionApiStatus": self.state.upstream_status.value,
            "uptimeMs": round(self.state.uptime * 1000),
            "lastCheckAt": self.state.last_check_at.isoformat(),
            "recentErrors": [dict(e) for e in self.state.recent_errors],
        }
