"""
In-memory result cache with per-entry expiry.

- Default TTL: CACHE_TTL seconds (3600)
- Expired entries are misses on read (lazy expiry) and are removed by a
  background sweep every CACHE_CHECK_PERIOD seconds (active expiry)
- A second background task logs key/hit/miss counts every
  CACHE_STATS_INTERVAL seconds while the cache holds entries

The cache lives for the lifetime of the process. get/set never await, so
concurrent requests on the event loop need no locking.
"""
import asyncio
import hashlib
import time
from typing import Any, Callable, Dict, List, NamedTuple, Optional

from podsearch.core.logging import get_logger
from podsearch.core.metrics import record_cache_hit, record_cache_miss, update_cache_size

logger = get_logger(__name__)

DEFAULT_TTL_SECONDS = 3600
DEFAULT_CHECK_PERIOD_SECONDS = 600
DEFAULT_STATS_INTERVAL_SECONDS = 300


class CacheEntry(NamedTuple):
    value: Any
    expires_at: float


class ResultCache:
    """
    Time-expiring key/value store for search responses.

    Implements cache-aside for the orchestrator:
    1. Check cache
    2. If miss, query the search provider
    3. Store in cache
    4. Return result
    """

    def __init__(
        self,
        default_ttl: int = DEFAULT_TTL_SECONDS,
        check_period: int = DEFAULT_CHECK_PERIOD_SECONDS,
        stats_interval: int = DEFAULT_STATS_INTERVAL_SECONDS,
        cache_type: str = "search",
        clock: Callable[[], float] = time.monotonic,
    ):
        self.default_ttl = default_ttl
        self.check_period = check_period
        self.stats_interval = stats_interval
        self.cache_type = cache_type
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._hits = 0
        self._misses = 0
        self._tasks: List[asyncio.Task] = []

    def get(self, key: str) -> Optional[Any]:
        """
        Get value from cache.

        Returns:
            Cached value if present and not expired, None otherwise
        """
        entry = self._entries.get(key)
        if entry is not None and entry.expires_at <= self._clock():
            del self._entries[key]
            update_cache_size(len(self._entries))
            entry = None

        if entry is None:
            self._misses += 1
            record_cache_miss(self.cache_type)
            logger.debug("cache_miss", cache_type=self.cache_type, key=key)
            return None

        self._hits += 1
        record_cache_hit(self.cache_type)
        logger.debug("cache_hit", cache_type=self.cache_type, key=key)
        return entry.value

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        """
        Store value with TTL.

        Args:
            key: Cache key
            value: Value to cache (stored as-is, not copied)
            ttl: Time to live in seconds (defaults to the cache TTL)
        """
        ttl_seconds = self.default_ttl if ttl is None else ttl
        self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + ttl_seconds)
        update_cache_size(len(self._entries))
        logger.debug("cache_set", cache_type=self.cache_type, key=key, ttl=ttl_seconds)

    def delete(self, key: str) -> bool:
        """Remove a key. Returns True if it was present."""
        removed = self._entries.pop(key, None) is not None
        update_cache_size(len(self._entries))
        return removed

    def exists(self, key: str) -> bool:
        """Check if a live (non-expired) key exists without touching hit stats."""
        entry = self._entries.get(key)
        return entry is not None and entry.expires_at > self._clock()

    def clear(self) -> None:
        self._entries.clear()
        update_cache_size(0)

    def purge_expired(self) -> int:
        """
        Remove every expired entry.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.expires_at <= now]
        for key in expired:
            del self._entries[key]
        update_cache_size(len(self._entries))
        if expired:
            logger.debug("cache_purged", cache_type=self.cache_type, count=len(expired))
        return len(expired)

    def stats(self) -> Dict[str, int]:
        return {
            "keys": len(self._entries),
            "hits": self._hits,
            "misses": self._misses,
        }

    def __len__(self) -> int:
        return len(self._entries)

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.check_period)
            self.purge_expired()

    async def _stats_loop(self) -> None:
        while True:
            await asyncio.sleep(self.stats_interval)
            stats = self.stats()
            if stats["keys"] > 0:
                logger.info("cache_stats", cache_type=self.cache_type, **stats)

    def start(self) -> None:
        """Start the sweep and stats tasks on the running event loop."""
        if self._tasks:
            return
        self._tasks = [
            asyncio.create_task(self._sweep_loop(), name=f"{self.cache_type}-cache-sweep"),
            asyncio.create_task(self._stats_loop(), name=f"{self.cache_type}-cache-stats"),
        ]
        logger.info(
            "cache_initialized",
            cache_type=self.cache_type,
            ttl=self.default_ttl,
            check_period=self.check_period,
        )

    async def close(self) -> None:
        """Stop background tasks and drop all entries."""
        for task in self._tasks:
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        self.clear()
        logger.info("cache_closed", cache_type=self.cache_type)


def hash_query(query: str) -> str:
    """Generate hash for query string (for cache keys)."""
    return hashlib.md5(query.encode()).hexdigest()
