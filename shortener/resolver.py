"""Short code resolution with an optional Redis read-through cache.

Flow Diagram — Resolver.resolve()
=================================
::
    ┌─────────────┐
    │ resolve(code)│
    └──────┬──────┘
           ▼
    ┌─────────────┐   HIT   ┌─────────────┐
    │ Redis GET   ├────────►│ return URL  │
    │ url:{code}  │         └─────────────┘
    └──────┬──────┘
      MISS │ (or no cache / cache fault)
           ▼
    ┌─────────────┐  None   ┌─────────────┐
    │ registry.   ├────────►│NotFoundError│
    │ lookup()    │         └─────────────┘
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Redis SETEX │
    │ (best-effort)│
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ return URL  │
    └─────────────┘

Key Behaviours
===============
- Records are immutable, so a cached URL never goes stale.
- Absence is only ever decided by the registry, never by the cache.
- Cache faults are logged and the lookup falls through to the registry.
- Registry faults surface as InternalError.
"""

import logging
import time

import redis.asyncio as redis
from prometheus_client import Counter, Histogram
from redis.exceptions import RedisError

from shortener.enums import RequestStatus
from shortener.errors import InternalError, NotFoundError, StoreError
from shortener.registry import ShortUrlRegistry

__all__ = ["DEFAULT_CACHE_TTL_SECONDS", "Resolver"]

DEFAULT_CACHE_TTL_SECONDS = 3600  # 1 hour

LOOKUP_REQUESTS_TOTAL = Counter(
    "shortener_lookup_requests_total",
    "Total short code lookups",
    ["status"],
)
LOOKUP_DURATION = Histogram(
    "shortener_lookup_duration_seconds",
    "Time taken to resolve short codes",
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25],
)
CACHE_HITS_TOTAL = Counter(
    "shortener_cache_hits_total",
    "Lookups answered from the Redis cache",
)
CACHE_MISSES_TOTAL = Counter(
    "shortener_cache_misses_total",
    "Lookups that fell through to the registry",
)


class Resolver:
    """Map short codes back to their original URLs."""

    def __init__(
        self,
        registry: ShortUrlRegistry,
        cache: redis.Redis | None = None,
        cache_ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ):
        self._registry = registry
        self._cache = cache
        self._cache_ttl_seconds = cache_ttl_seconds
        self._logger = logger or logging.getLogger("shortener")

    async def resolve(self, short_code: str) -> str:
        """Return the original URL bound to ``short_code``.

        Raises:
            NotFoundError: No record exists for the code.
            InternalError: The registry failed.
        """
        start_time = time.perf_counter()
        try:
            original_url = await self._resolve(short_code)
        except NotFoundError:
            LOOKUP_REQUESTS_TOTAL.labels(status=RequestStatus.NOT_FOUND).inc()
            raise
        except InternalError as exc:
            LOOKUP_REQUESTS_TOTAL.labels(status=RequestStatus.ERROR).inc()
            self._logger.error(f"Lookup error for {short_code}: {exc}")
            raise
        finally:
            LOOKUP_DURATION.observe(time.perf_counter() - start_time)

        LOOKUP_REQUESTS_TOTAL.labels(status=RequestStatus.SUCCESS).inc()
        return original_url

    async def _resolve(self, short_code: str) -> str:
        cached = await self._lookup_from_cache(short_code)
        if cached is not None:
            CACHE_HITS_TOTAL.inc()
            return cached
        if self._cache is not None:
            CACHE_MISSES_TOTAL.inc()

        try:
            original_url = await self._registry.lookup(short_code)
        except StoreError as exc:
            raise InternalError(str(exc)) from exc

        if original_url is None:
            raise NotFoundError(short_code)

        await self._cache_url(short_code, original_url)
        return original_url

    async def _lookup_from_cache(self, short_code: str) -> str | None:
        if self._cache is None:
            return None
        try:
            return await self._cache.get(_cache_key(short_code))
        except RedisError as exc:
            self._logger.warning(f"Cache read failed for {short_code}: {exc}")
            return None

    async def _cache_url(self, short_code: str, original_url: str) -> None:
        if self._cache is None:
            return
        try:
            await self._cache.setex(_cache_key(short_code), self._cache_ttl_seconds, original_url)
        except RedisError as exc:
            self._logger.warning(f"Cache write failed for {short_code}: {exc}")


def _cache_key(short_code: str) -> str:
    return f"url:{short_code}"
