"""
Monitoring - observes the gateway without sitting on the request path.

Provides:
- RingBuffer: Fixed-capacity FIFO for bounded histories
- MetricsCollector: Rolling request statistics
- AlertManager: Threshold alerts with per-type cooldown
- HealthMonitor: Periodic upstream reachability probe
- MonitoringScheduler: Interval jobs driving the above
"""

from blog_gateway.monitoring.alerts import AlertManager, AlertType
from blog_gateway.monitoring.buffers import RingBuffer
from blog_gateway.monitoring.health import HealthMonitor, HealthState, UpstreamStatus
from blog_gateway.monitoring.metrics import MetricsCollector, RequestOutcome
from blog_gateway.monitoring.scheduler import MonitoringScheduler

__all__ = [
    "AlertManager",
    "AlertType",
    "RingBuffer",
    "HealthMonitor",
    "HealthState",
    "UpstreamStatus",
    "MetricsCollector",
    "RequestOutcome",
    "MonitoringScheduler",
]
