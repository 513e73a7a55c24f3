"""
MetricsCollector - rolling statistics over gateway call outcomes.

The gateway reports every completed call here. Counters are cumulative for
the life of the process; response-time statistics, error, slow-request and
alert logs are bounded FIFO histories.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from blog_gateway.monitoring.buffers import RingBuffer

REPORT_TAIL = 10


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class RequestOutcome:
    """One completed gateway call."""

    duration_ms: float
    success: bool
    status_code: int | None = None
    is_slow: bool = False
    timestamp: str = field(default_factory=_utcnow_iso)


@dataclass
class RequestCounters:
    total: int = 0
    success: int = 0
    failed: int = 0
    slow: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "total": self.total,
            "success": self.success,
            "failed": self.failed,
            "slow": self.slow,
        }


class MetricsCollector:
    """
    Passive observer of gateway outcomes.

    Usage:
        metrics = MetricsCollector(slow_request_threshold=1000, max_history=1000)
        metrics.record_request(duration_ms=42.0, success=True, status_code=200)
        metrics.get_report()
    """

    def __init__(self, slow_request_threshold: float = 1000.0, max_history: int = 1000):
        self.slow_request_threshold = slow_request_threshold
        self.max_history = max_history

        self.requests = RequestCounters()
        self.outcomes: RingBuffer[RequestOutcome] = RingBuffer(max_history)
        self.response_times: RingBuffer[float] = RingBuffer(max_history)
        self.errors: RingBuffer[dict[str, Any]] = RingBuffer(max_history)
        self.slow_requests: RingBuffer[dict[str, Any]] = RingBuffer(max_history)
        self.alerts: RingBuffer[dict[str, Any]] = RingBuffer(max_history)

        self._response_time_sum = 0.0
        self.avg_response_time = 0.0
        self.max_response_time = 0.0
        self.min_response_time = 0.0

    def record_request(
        self,
        duration_ms: float,
        success: bool,
        status_code: int | None = None,
        error: BaseException | str | None = None,
        context: dict[str, Any] | None = None,
    ) -> RequestOutcome:
        """Record one completed call and update every derived statistic."""
        is_slow = duration_ms > self.slow_request_threshold
        outcome = RequestOutcome(
            duration_ms=duration_ms,
            success=success,
            status_code=status_code,
            is_slow=is_slow,
        )
        self.outcomes.append(outcome)

        self.requests.total += 1
        if success:
            self.requests.success += 1
        else:
            self.record_error(error or "request failed", context)

        self.update_response_time(duration_ms, context)
        return outcome

    def update_response_time(
        self, duration_ms: float, context: dict[str, Any] | None = None
    ) -> None:
        """Insert a duration sample and recompute avg/max/min over the window."""
        evicted = self.response_times.append(duration_ms)
        self._response_time_sum += duration_ms
        if evicted is not None:
            self._response_time_sum -= evicted

        self.avg_response_time = self._response_time_sum / len(self.response_times)
        self.max_response_time = max(self.response_times)
        self.min_response_time = min(self.response_times)

        if duration_ms > self.slow_request_threshold:
            self.requests.slow += 1
            entry: dict[str, Any] = {"timestamp": _utcnow_iso(), "duration": duration_ms}
            if context:
                entry.update(context)
            self.slow_requests.append(entry)

    def record_error(
        self,
        error: BaseException | str,
        context: dict[str, Any] | None = None,
        count_failure: bool = True,
    ) -> None:
        """Append to the error log and, by default, count a failed request."""
        record: dict[str, Any] = {
            "timestamp": _utcnow_iso(),
            "error": str(error),
            "context": context or {},
        }
        if isinstance(error, BaseException):
            record["type"] = type(error).__name__
            classification = getattr(error, "classification", None)
            if classification is not None:
                record["classification"] = classification.value
        self.errors.append(record)
        if count_failure:
            self.requests.failed += 1

    def record_alert(self, alert: dict[str, Any]) -> None:
        self.alerts.append(alert)

    def get_report(self) -> dict[str, Any]:
        """Read-only snapshot of counters, timings and recent histories."""
        return {
            "requests": self.requests.to_dict(),
            "responseTime": {
                "avg": round(self.avg_response_time),
                "max": self.max_response_time,
                "min": self.min_response_time,
            },
            "recentErrors": [dict(e) for e in self.errors.recent(REPORT_TAIL)],
            "recentSlowRequests": [dict(s) for s in self.slow_requests.recent(REPORT_TAIL)],
            "recentAlerts": [dict(a) for a in self.alerts.recent(REPORT_TAIL)],
        }
