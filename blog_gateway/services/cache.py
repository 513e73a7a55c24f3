"""
CacheStore - In-process TTL cache for upstream responses.

Features:
- Expiry checked at read time; an expired entry is dropped on lookup
- Bounded size with least-recently-used eviction
- Optional sweep of expired entries (driven by the monitoring scheduler)

All access happens on the event loop thread, so no locking is needed.
"""

import hashlib
import json
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable

from loguru import logger


@dataclass(frozen=True)
class CacheEntry:
    """A single cached upstream response."""

    key: str
    value: Any
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


@dataclass
class CacheResult:
    """Result from cache lookup. Wraps the value so a cached JSON null is a hit."""

    data: Any
    expires_in: float


class CacheStore:
    """
    Keyed, time-bound memoization of upstream responses.

    Usage:
        cache = CacheStore(default_ttl=300.0)

        result = cache.get(key)
        if result:
            return result.data

        data = await fetch_data()
        cache.set(key, data, ttl=60.0)
    """

    def __init__(
        self,
        default_ttl: float = 300.0,
        max_size: int = 500,
        clock: Callable[[], float] = time.monotonic,
        debug: bool = False,
    ):
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._default_ttl = default_ttl
        self._max_size = max_size
        self._clock = clock
        self._debug = debug
        self._stats = CacheStats()

    @staticmethod
    def generate_key(endpoint: str, options: dict[str, Any] | None = None) -> str:
        """Build a cache key from an endpoint and its request options."""
        full_key = f"{endpoint}:{json.dumps(options or {}, sort_keys=True, default=str)}"

        # Hash long keys
        if len(full_key) > 200:
            digest = hashlib.sha256(full_key.encode()).hexdigest()[:32]
            return f"{endpoint[:64]}#{digest}"

        return full_key

    def get(self, key: str) -> CacheResult | None:
        """Return the cached value, or None when absent or expired."""
        entry = self._entries.get(key)
        if entry is None:
            self._stats.misses += 1
            self._log(f"MISS: {key[:50]}")
            return None

        now = self._clock()
        if entry.is_expired(now):
            del self._entries[key]
            self._stats.misses += 1
            self._stats.expirations += 1
            self._log(f"EXPIRED: {key[:50]}")
            return None

        self._entries.move_to_end(key)
        self._stats.hits += 1
        self._log(f"HIT: {key[:50]}")
        return CacheResult(data=entry.value, expires_in=entry.expires_at - now)

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """Store a value, replacing any existing entry and resetting its TTL."""
        ttl = self._default_ttl if ttl is None else ttl
        entry = CacheEntry(key=key, value=value, expires_at=self._clock() + ttl)

        if key in self._entries:
            del self._entries[key]
        elif len(self._entries) >= self._max_size:
            evicted, _ = self._entries.popitem(last=False)
            self._stats.evictions += 1
            self._log(f"EVICT: {evicted[:50]}")

        self._entries[key] = entry
        self._log(f"SET: {key[:50]} (TTL: {ttl}s)")

    def delete(self, key: str) -> bool:
        """Delete a specific key from cache."""
        if self._entries.pop(key, None) is not None:
            self._log(f"DELETE: {key[:50]}")
            return True
        return False

    def clear(self) -> int:
        """Clear all cache entries. Returns count of removed entries."""
        count = len(self._entries)
        self._entries.clear()
        logger.info(f"Cache cleared: {count} entries removed")
        return count

    def cleanup_expired(self) -> int:
        """Remove all expired entries. Returns count of removed entries."""
        now = self._clock()
        expired_keys = [k for k, v in self._entries.items() if v.is_expired(now)]
        for key in expired_keys:
            del self._entries[key]

        if expired_keys:
            self._stats.expirations += len(expired_keys)
            self._log(f"CLEANUP: {len(expired_keys)} expired entries removed")

        return len(expired_keys)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def get_stats(self) -> "CacheStats":
        """Get cache statistics."""
        self._stats.size = len(self._entries)
        self._stats.max_size = self._max_size
        return self._stats

    def _log(self, message: str) -> None:
        """Log debug message if debug mode is enabled."""
        if self._debug:
            logger.debug(f"[CacheStore] {message}")


@dataclass
class CacheStats:
    """Cache statistics."""

    hits: int = 0
    misses: int = 0
    expirations: int = 0
    evictions: int = 0
    size: int = 0
    max_size: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "hits": self.hits,
            "misses": self.misses,
            "expirations": self.expirations,
            "evictions": self.evictions,
            "size": self.size,
            "maxSize": self.max_size,
            "hitRate": f"{self.hit_rate:.2%}",
        }
