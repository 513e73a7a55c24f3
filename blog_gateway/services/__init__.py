"""
Service layer - resilience patterns for content service calls.

Provides:
- CacheStore: TTL cache with LRU bound
- SlidingWindowRateLimiter: Per-client admission control
- RetryEngine: Timeout-bounded attempts with exponential backoff
- RequestDeduplicator: Single-flight for concurrent cache misses
- ContentGateway: The orchestrating entry point
- ContentService: Blog-level content operations
"""

from blog_gateway.services.errors import (
    ClientError,
    ErrorClassification,
    GatewayError,
    MalformedResponseError,
    RateLimitExceededError,
    RequestTimeoutError,
    ServiceError,
    TransientUpstreamError,
    UpstreamUnavailableError,
    ValidationError,
)
from blog_gateway.services.cache import CacheEntry, CacheResult, CacheStore
from blog_gateway.services.rate_limiter import SlidingWindowRateLimiter
from blog_gateway.services.retry import RetryEngine, RetryPolicy, with_timeout
from blog_gateway.services.deduplicator import RequestDeduplicator
from blog_gateway.services.gateway import ContentGateway, RequestOptions
from blog_gateway.services.content import ContentService

__all__ = [
    # Errors
    "ServiceError",
    "GatewayError",
    "ErrorClassification",
    "ValidationError",
    "ClientError",
    "MalformedResponseError",
    "TransientUpstreamError",
    "RequestTimeoutError",
    "UpstreamUnavailableError",
    "RateLimitExceededError",
    # Cache
    "CacheStore",
    "CacheEntry",
    "CacheResult",
    # Admission and retries
    "SlidingWindowRateLimiter",
    "RetryEngine",
    "RetryPolicy",
    "with_timeout",
    "RequestDeduplicator",
    # Gateway
    "ContentGateway",
    "RequestOptions",
    "ContentService",
]
