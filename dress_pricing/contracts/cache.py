"""Short-lived memoization of price calculations.

Performance only: entries may be stale for up to their TTL, and expired
entries are dropped when read, never swept.
"""

from __future__ import annotations

import time
from typing import Callable, Optional, Protocol

import redis.asyncio as redis
import structlog

from dress_pricing.config import settings
from dress_pricing.schemas.calculation import PriceCalculation, PriceCalculationRequest

logger = structlog.get_logger()

CacheKey = tuple[str, str, str, Optional[str]]


def cache_key(request: PriceCalculationRequest) -> CacheKey:
    return (
        request.dress_id,
        request.start_date.isoformat(),
        request.end_date.isoformat(),
        request.pricing_rule_id,
    )


class CalculationCache(Protocol):
    async def get(self, key: CacheKey) -> Optional[PriceCalculation]: ...

    async def set(self, key: CacheKey, value: PriceCalculation) -> None: ...


class NullCalculationCache:
    """Disables caching."""

    async def get(self, key: CacheKey) -> Optional[PriceCalculation]:
        return None

    async def set(self, key: CacheKey, value: PriceCalculation) -> None:
        return None


class InMemoryCalculationCache:
    """Per-process TTL cache with passive eviction."""

    def __init__(
        self,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl = settings.calculation_cache_ttl_seconds if ttl_seconds is None else ttl_seconds
        self._clock = clock
        self._entries: dict[CacheKey, tuple[float, PriceCalculation]] = {}

    async def get(self, key: CacheKey) -> Optional[PriceCalculation]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() > expires_at:
            del self._entries[key]
            return None
        return value

    async def set(self, key: CacheKey, value: PriceCalculation) -> None:
        self._entries[key] = (self._clock() + self.ttl, value)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries


class RedisCalculationCache:
    """Shared cache in Redis; expiry is delegated to SETEX.

    ``namespace`` separates prices computed under different matching
    contexts (customer type, service type) that share dress and dates.
    """

    def __init__(
        self,
        redis_client: redis.Redis,
        ttl_seconds: Optional[int] = None,
        namespace: str = "",
    ):
        self.redis = redis_client
        self.ttl = settings.calculation_cache_ttl_seconds if ttl_seconds is None else ttl_seconds
        self.prefix = f"price:{namespace}:" if namespace else "price:"

    def _key(self, key: CacheKey) -> str:
        dress_id, start, end, rule_id = key
        return f"{self.prefix}{dress_id}:{start}:{end}:{rule_id or '-'}"

    async def get(self, key: CacheKey) -> Optional[PriceCalculation]:
        data = await self.redis.get(self._key(key))
        if data:
            return PriceCalculation.model_validate_json(data)
        return None

    async def set(self, key: CacheKey, value: PriceCalculation) -> None:
        await self.redis.setex(self._key(key), self.ttl, value.model_dump_json())
        logger.debug("price_calculation_cached", key=self._key(key), ttl=self.ttl)


_redis_client: Optional[redis.Redis] = None


def get_redis_client() -> redis.Redis:
    """Get or create the Redis client (lazy init)."""
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(
            settings.redis_url,
            decode_responses=True,
        )
    return _redis_client


def get_redis_cache(namespace: str = "") -> Optional[RedisCalculationCache]:
    """Redis-backed cache if ``redis_url`` is configured, else None."""
    if not settings.redis_url:
        return None
    return RedisCalculationCache(get_redis_client(), namespace=namespace)
