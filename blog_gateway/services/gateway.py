"""
ContentGateway - resilient entry point to the content service's REST API.

Per call:
    CacheCheck -> Hit: return
               -> Miss: RateLimitCheck -> Denied: RateLimitExceededError
                                       -> Admitted: Attempt(1..max_attempts)
                                          -> Success: cache + return
                                          -> Exhausted: UpstreamUnavailableError

Every outcome, hits and failures included, is reported to the
MetricsCollector. Payloads are opaque JSON and returned as received.
"""

import time
from typing import Any, Callable, Literal

import httpx
from loguru import logger
from pydantic import BaseModel, ConfigDict, JsonValue
from pydantic import ValidationError as PydanticValidationError

from blog_gateway.monitoring.metrics import MetricsCollector
from blog_gateway.services.cache import CacheStore
from blog_gateway.services.deduplicator import RequestDeduplicator
from blog_gateway.services.errors import (
    ClientError,
    GatewayError,
    MalformedResponseError,
    RateLimitExceededError,
    RequestTimeoutError,
    TransientUpstreamError,
    ValidationError,
)
from blog_gateway.services.rate_limiter import DEFAULT_CLIENT_ID, SlidingWindowRateLimiter
from blog_gateway.services.retry import RetryEngine

SERVICE_ID = "notion"
PROBE_ENDPOINT = "users/me"


class RequestOptions(BaseModel):
    """Caller-supplied request options."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    method: Literal["GET", "POST", "PATCH", "DELETE"] = "GET"
    body: JsonValue = None


def is_cache_eligible(endpoint: str, options: RequestOptions) -> bool:
    """Retrievals and queries are read-like even when sent as POST."""
    return options.method == "GET" or "query" in endpoint


def classify_response(response: httpx.Response) -> GatewayError | None:
    """Map an upstream status to the error it stands for, None on success."""
    status = response.status_code
    if 200 <= status < 300:
        return None
    if status == 429 or status >= 500:
        error = TransientUpstreamError.from_status(status, SERVICE_ID)
        retry_after = response.headers.get("Retry-After")
        if retry_after and retry_after.isdigit():
            error.retry_after = float(retry_after)
        return error
    return ClientError(status, detail=response.text[:200], service_id=SERVICE_ID)


class ContentGateway:
    """
    Cache, rate limiter and retry engine composed around one upstream call.

    Usage:
        gateway = ContentGateway(
            base_url="https://api.notion.com/v1/",
            headers={"Authorization": "Bearer ...", "Notion-Version": "2022-06-28"},
            cache=CacheStore(), rate_limiter=SlidingWindowRateLimiter(),
            retry_engine=RetryEngine(timeout=10.0), metrics=MetricsCollector(),
        )
        data = await gateway.fetch_resource("databases/abc/query", {"method": "POST"})
    """

    def __init__(
        self,
        base_url: str,
        headers: dict[str, str],
        cache: CacheStore,
        rate_limiter: SlidingWindowRateLimiter,
        retry_engine: RetryEngine,
        metrics: MetricsCollector,
        cache_ttl: float | None = None,
        deduplicator: RequestDeduplicator | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._base_url = base_url if base_url.endswith("/") else f"{base_url}/"
        self._headers = dict(headers)
        self.cache = cache
        self.rate_limiter = rate_limiter
        self.retry_engine = retry_engine
        self.metrics = metrics
        self.cache_ttl = cache_ttl
        self.deduplicator = deduplicator
        self._transport = transport
        self._clock = clock

        # HTTP client (lazy initialization)
        self._http_client: httpx.AsyncClient | None = None

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                base_url=self._base_url,
                headers=self._headers,
                timeout=httpx.Timeout(self.retry_engine.timeout),
                transport=self._transport,
            )
        return self._http_client

    async def fetch_resource(
        self,
        endpoint: str,
        options: RequestOptions | dict[str, Any] | None = None,
        client_id: str | None = None,
    ) -> Any:
        """
        Fetch an upstream resource through cache, rate limiter and retries.

        Args:
            endpoint: Path relative to the API base, e.g. ``pages/<id>``
            options: ``{"method": ..., "body": ...}``; GET with no body by default
            client_id: Caller identity for rate limiting

        Returns:
            The parsed JSON body exactly as returned upstream

        Raises:
            ValidationError: Malformed endpoint or options
            RateLimitExceededError: The caller is over its admission budget
            ClientError: Upstream rejected the request (not retried)
            UpstreamUnavailableError: Retryable failures exhausted every attempt
        """
        started = self._clock()
        client_id = client_id or DEFAULT_CLIENT_ID
        context: dict[str, Any] = {"endpoint": endpoint, "clientId": client_id}

        try:
            endpoint, opts = self._validate(endpoint, options)
            context["method"] = opts.method
            data = await self._fetch(endpoint, opts, client_id)
        except GatewayError as e:
            self.metrics.record_request(
                duration_ms=self._elapsed_ms(started),
                success=False,
                status_code=e.status_code,
                error=e,
                context=context,
            )
            raise

        self.metrics.record_request(
            duration_ms=self._elapsed_ms(started),
            success=True,
            status_code=200,
            context=context,
        )
        return data

    async def _fetch(self, endpoint: str, options: RequestOptions, client_id: str) -> Any:
        cacheable = is_cache_eligible(endpoint, options)
        cache_key = self.cache.generate_key(endpoint, options.model_dump())

        if cacheable:
            cached = self.cache.get(cache_key)
            if cached is not None:
                logger.debug(f"Using cached data for {endpoint}")
                return cached.data

        if not self.rate_limiter.is_allowed(client_id):
            raise RateLimitExceededError(client_id, self.rate_limiter.retry_after(client_id))

        async def do_request() -> Any:
            data = await self.retry_engine.run(
                lambda: self._execute_request(endpoint, options),
                description=f"{options.method} {endpoint}",
            )
            if cacheable:
                self.cache.set(cache_key, data, self.cache_ttl)
            return data

        if cacheable and self.deduplicator is not None:
            return await self.deduplicator.dedupe(cache_key, do_request)
        return await do_request()

    async def _execute_request(self, endpoint: str, options: RequestOptions) -> Any:
        """Execute one upstream attempt."""
        client = await self._get_http_client()

        try:
            response = await client.request(
                options.method,
                endpoint,
                json=options.body,
            )
        except httpx.TimeoutException as e:
            raise RequestTimeoutError(SERVICE_ID, self.retry_engine.timeout or 0) from e
        except httpx.RequestError as e:
            raise TransientUpstreamError(
                f"Transport error talking to the content service: {e}",
                status_code=502,
                service_id=SERVICE_ID,
            ) from e

        logger.debug(f"Notion API {options.method} {endpoint}: {response.status_code}")

        error = classify_response(response)
        if error is not None:
            logger.warning(
                f"Notion API error {response.status_code} for {endpoint}: {response.text[:200]}"
            )
            raise error

        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponseError(str(e), SERVICE_ID) from e

    async def probe(self) -> Any:
        """One bare request to the probe endpoint: no cache, limiter, retry or metrics."""
        return await self._execute_request(PROBE_ENDPOINT, RequestOptions())

    def invalidate(self, endpoint: str, options: RequestOptions | dict[str, Any] | None = None) -> bool:
        """Drop the cached response for one endpoint/options pair."""
        endpoint, opts = self._validate(endpoint, options)
        return self.cache.delete(self.cache.generate_key(endpoint, opts.model_dump()))

    def clear_cache(self) -> int:
        return self.cache.clear()

    @staticmethod
    def _validate(
        endpoint: Any, options: RequestOptions | dict[str, Any] | None
    ) -> tuple[str, RequestOptions]:
        if not isinstance(endpoint, str) or not endpoint.strip("/ "):
            raise ValidationError("endpoint must be a non-empty string")
        if "://" in endpoint:
            raise ValidationError("endpoint must be relative to the API base URL")

        if options is None:
            opts = RequestOptions()
        elif isinstance(options, RequestOptions):
            opts = options
        elif isinstance(options, dict):
            try:
                opts = RequestOptions.model_validate(options)
            except PydanticValidationError as e:
                raise ValidationError(f"invalid request options: {e.errors()[0]['msg']}") from e
        else:
            raise ValidationError("options must be a mapping")

        return endpoint.strip().lstrip("/"), opts

    def _elapsed_ms(self, started: float) -> float:
        return (self._clock() - started) * 1000

    async def close(self) -> None:
        """Close the HTTP client and cancel outstanding shared fetches."""
        if self.deduplicator is not None:
            self.deduplicator.cancel_all()
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None
        logger.debug("ContentGateway closed")

    async def __aenter__(self) -> "ContentGateway":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
