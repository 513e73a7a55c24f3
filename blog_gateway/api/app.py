"""FastAPI app exposing the gateway's operational surfaces."""

import time
import uuid
from contextlib import asynccontextmanager
from typing import Any, Awaitable, Callable

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from loguru import logger

from blog_gateway.context import GatewayContext
from blog_gateway.services.errors import GatewayError
from blog_gateway.utils import install_exception_handler

REQUEST_ID_HEADER = "X-Request-ID"


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None) or request.headers.get(REQUEST_ID_HEADER)


class GatewayServer:
    """HTTP server for health, metrics and cache administration."""

    def __init__(self, context: GatewayContext, start_monitoring: bool = True):
        self.context = context
        self.start_monitoring = start_monitoring
        self.app = FastAPI(title="Blog Content Gateway", lifespan=self.lifespan)

        self.app.middleware("http")(self.track_request)

        # Register routes
        self.app.get("/health")(self.health)
        self.app.get("/metrics")(self.metrics)
        self.app.post("/clear-cache")(self.clear_cache)

        self.app.add_exception_handler(GatewayError, self.handle_gateway_error)
        self.app.add_exception_handler(Exception, self.handle_unexpected_error)

    @asynccontextmanager
    async def lifespan(self, app: FastAPI):
        install_exception_handler(self.context.health)
        if self.start_monitoring:
            await self.context.start()
        try:
            yield
        finally:
            await self.context.close()

    async def track_request(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        """Tag each request with an ID (the caller's, if sent) and log its duration."""
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]
        request.state.request_id = request_id
        started = time.monotonic()
        logger.debug(f"Request started: {request.method} {request.url.path} [{request_id}]")

        response = await call_next(request)

        duration_ms = (time.monotonic() - started) * 1000
        response.headers[REQUEST_ID_HEADER] = request_id
        logger.debug(
            f"Request completed: {request.method} {request.url.path} "
            f"{response.status_code} in {duration_ms:.1f}ms [{request_id}]"
        )
        return response

    async def health(self) -> dict[str, Any]:
        return self.context.health.get_status()

    async def metrics(self) -> dict[str, Any]:
        report = self.context.metrics.get_report()
        report["cache"] = self.context.cache.get_stats().to_dict()
        return report

    async def clear_cache(self) -> dict[str, Any]:
        removed = self.context.gateway.clear_cache()
        return {"message": "Cache cleared successfully", "removed": removed}

    async def handle_gateway_error(self, request: Request, exc: GatewayError) -> JSONResponse:
        request_id = _request_id(request)
        logger.warning(f"{request.method} {request.url.path} failed [{request_id}]: {exc}")
        content = exc.to_dict()
        content["requestId"] = request_id
        return JSONResponse(status_code=exc.status_code, content=content)

    async def handle_unexpected_error(self, request: Request, exc: Exception) -> JSONResponse:
        request_id = _request_id(request)
        message = f"{type(exc).__name__}: {exc}"
        logger.opt(exception=exc).error(
            f"Unhandled error in {request.method} {request.url.path} [{request_id}]"
        )
        self.context.metrics.record_error(
            exc,
            {"url": str(request.url.path), "method": request.method, "requestId": request_id},
            count_failure=False,
        )
        self.context.health.record_error(message)
        headers = {REQUEST_ID_HEADER: request_id} if request_id else None
        return JSONResponse(
            status_code=500,
            content={
                "classification": "terminal",
                "httpStatusEquivalent": 500,
                "message": "Internal server error",
                "requestId": request_id,
            },
            headers=headers,
        )


def create_app(context: GatewayContext, start_monitoring: bool = True) -> FastAPI:
    """Create the FastAPI app bound to ``context``."""
    return GatewayServer(context, start_monitoring).app
