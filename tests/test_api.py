"""
Tests for the FastAPI operational surfaces.
"""

import pytest
from conftest import UpstreamMock
from fastapi.testclient import TestClient

from blog_gateway.api import create_app
from blog_gateway.context import GatewayContext
from blog_gateway.services.errors import ClientError, RateLimitExceededError
from blog_gateway.settings import Settings


@pytest.fixture
def upstream():
    return UpstreamMock([(200, {"object": "user"})])


@pytest.fixture
def context(upstream):
    settings = Settings(NOTION_API_KEY="secret", NOTION_BASE_URL="https://api.notion.test/v1/")
    return GatewayContext.create(settings, transport=upstream.transport)


@pytest.fixture
def app(context):
    return create_app(context, start_monitoring=False)


@pytest.fixture
def client(app):
    with TestClient(app, raise_server_exceptions=False) as client:
        yield client


class TestHealthEndpoint:
    def test_reports_status(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["notionApiStatus"] == "unknown"
        assert set(body) == {"status", "notionApiStatus", "uptimeMs", "lastCheckAt", "recentErrors"}

    def test_reflects_recorded_errors(self, client, context):
        context.health.record_error("socket hang up")

        body = client.get("/health").json()
        assert body["recentErrors"][0]["error"] == "socket hang up"


class TestMetricsEndpoint:
    def test_report_shape(self, client, context):
        context.metrics.record_request(25, success=True, status_code=200)

        body = client.get("/metrics").json()

        assert body["requests"]["total"] == 1
        assert body["responseTime"]["avg"] == 25
        assert body["cache"]["size"] == 0
        assert "recentAlerts" in body


class TestClearCacheEndpoint:
    def test_clears_entries(self, client, context):
        context.cache.set("a", {"x": 1})
        context.cache.set("b", {"x": 2})

        response = client.post("/clear-cache")

        assert response.status_code == 200
        assert response.json() == {"message": "Cache cleared successfully", "removed": 2}
        assert len(context.cache) == 0


class TestRequestTracking:
    def test_every_response_carries_a_request_id(self, client):
        first = client.get("/health").headers["X-Request-ID"]
        second = client.get("/health").headers["X-Request-ID"]

        assert first
        assert first != second

    def test_caller_request_id_is_echoed(self, client):
        response = client.get("/metrics", headers={"X-Request-ID": "req-42"})

        assert response.headers["X-Request-ID"] == "req-42"

    def test_gateway_error_body_names_the_request(self, app, client):
        @app.get("/_test/forbidden")
        async def forbidden():
            raise ClientError(403)

        response = client.get("/_test/forbidden")

        assert response.status_code == 403
        assert response.json()["requestId"] == response.headers["X-Request-ID"]

    def test_unexpected_error_body_names_the_request(self, app, client, context):
        @app.get("/_test/crash")
        async def crash():
            raise RuntimeError("kaboom")

        response = client.get("/_test/crash", headers={"X-Request-ID": "req-500"})

        assert response.status_code == 500
        assert response.json()["requestId"] == "req-500"
        assert context.metrics.get_report()["recentErrors"][0]["context"]["requestId"] == "req-500"


class TestErrorHandlers:
    def test_gateway_error_maps_to_its_status(self, app, client):
        @app.get("/_test/missing")
        async def missing():
            raise ClientError(404)

        response = client.get("/_test/missing")

        assert response.status_code == 404
        body = response.json()
        assert body["classification"] == "terminal"
        assert body["httpStatusEquivalent"] == 404
        assert "not found" in body["message"]

    def test_rate_limit_error_carries_retry_after(self, app, client):
        @app.get("/_test/limited")
        async def limited():
            raise RateLimitExceededError("reader", retry_after=1.5)

        response = client.get("/_test/limited")

        assert response.status_code == 429
        assert response.json()["retryAfter"] == 1.5

    def test_unexpected_error_is_captured(self, app, client, context):
        @app.get("/_test/boom")
        async def boom():
            raise RuntimeError("kaboom")

        response = client.get("/_test/boom")

        assert response.status_code == 500
        assert response.json()["message"] == "Internal server error"
        assert "RuntimeError: kaboom" in context.health.get_status()["recentErrors"][0]["error"]
        assert context.metrics.requests.failed == 0
        assert context.metrics.get_report()["recentErrors"][0]["type"] == "RuntimeError"
