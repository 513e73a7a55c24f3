"""
Unit tests for MetricsCollector and RingBuffer.
"""

import pytest

from blog_gateway.monitoring.buffers import RingBuffer
from blog_gateway.monitoring.metrics import MetricsCollector


class TestRingBuffer:
    def test_evicts_oldest_first(self):
        buffer = RingBuffer[int](3)

        evicted = [buffer.append(n) for n in range(5)]

        assert list(buffer) == [2, 3, 4]
        assert evicted == [None, None, None, 0, 1]

    def test_recent(self):
        buffer = RingBuffer[int](10)
        for n in range(4):
            buffer.append(n)

        assert buffer.recent(2) == [2, 3]
        assert buffer.recent(10) == [0, 1, 2, 3]
        assert buffer.recent(0) == []

    def test_capacity_must_be_positive(self):
        with pytest.raises(ValueError):
            RingBuffer(0)


class TestMetricsCollector:
    @pytest.fixture
    def metrics(self):
        return MetricsCollector(slow_request_threshold=1000, max_history=100)

    def test_bounded_history_is_fifo(self, metrics):
        for n in range(metrics.max_history + 50):
            metrics.update_response_time(float(n))

        assert len(metrics.response_times) == metrics.max_history
        assert metrics.response_times[0] == 50.0
        assert metrics.min_response_time == 50.0

    def test_stats_follow_the_window(self):
        metrics = MetricsCollector(max_history=3)
        for duration in (900.0, 10.0, 20.0, 30.0):
            metrics.update_response_time(duration)

        assert metrics.max_response_time == 30.0
        assert metrics.min_response_time == 10.0
        assert metrics.avg_response_time == pytest.approx(20.0)

    def test_counters(self, metrics):
        metrics.record_request(50, success=True, status_code=200)
        metrics.record_request(1500, success=True, status_code=200)
        metrics.record_request(20, success=False, status_code=404, error="not found")

        assert metrics.get_report()["requests"] == {
            "total": 3,
            "success": 2,
            "failed": 1,
            "slow": 1,
        }

    def test_slow_requests_logged_with_context(self, metrics):
        metrics.record_request(2500, success=True, context={"endpoint": "pages/a"})

        slow = metrics.get_report()["recentSlowRequests"]
        assert len(slow) == 1
        assert slow[0]["duration"] == 2500
        assert slow[0]["endpoint"] == "pages/a"
        assert metrics.outcomes[0].is_slow is True

    def test_threshold_is_exclusive(self, metrics):
        metrics.record_request(1000, success=True)
        assert metrics.requests.slow == 0

    def test_error_log_captures_context(self, metrics):
        metrics.record_request(
            10, success=False, error=RuntimeError("boom"), context={"clientId": "reader"}
        )

        error = metrics.get_report()["recentErrors"][0]
        assert error["error"] == "boom"
        assert error["type"] == "RuntimeError"
        assert error["context"] == {"clientId": "reader"}

    def test_report_tails_are_limited_to_ten(self, metrics):
        for n in range(25):
            metrics.record_request(2000 + n, success=False, error=f"e{n}")
            metrics.record_alert({"type": "t", "message": str(n)})

        report = metrics.get_report()
        assert len(report["recentErrors"]) == 10
        assert report["recentErrors"][-1]["error"] == "e24"
        assert len(report["recentSlowRequests"]) == 10
        assert len(report["recentAlerts"]) == 10

    def test_report_is_a_snapshot(self, metrics):
        metrics.record_request(10, success=False, error="boom")

        report = metrics.get_report()
        report["recentErrors"][0]["error"] = "changed"
        report["requests"]["total"] = 99

        assert metrics.get_report()["recentErrors"][0]["error"] == "boom"
        assert metrics.requests.total == 1

    def test_empty_report(self, metrics):
        report = metrics.get_report()

        assert report["responseTime"] == {"avg": 0, "max": 0.0, "min": 0.0}
        assert report["recentErrors"] == []
