"""Caching of resolved rate cards per organization and effective date."""

from __future__ import annotations

import datetime
import logging
import threading
import time
from functools import lru_cache
from typing import Any, Callable, Protocol
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError
import redis.asyncio as redis  # type: ignore[import-untyped]
from redis.exceptions import RedisError

from quote_pricing.core.config import Settings, get_settings
from quote_pricing.schemas.rate_card import RateCardSnapshot

logger = logging.getLogger(__name__)


def cache_bucket(effective_date: datetime.date) -> str:
    """Cache bucket for an effective date; one bucket per calendar day."""

    return effective_date.isoformat()


class RateCardCache(Protocol):
    async def get(self, organization_id: UUID, bucket: str) -> RateCardSnapshot | None: ...

    async def set(
        self, organization_id: UUID, bucket: str, card: RateCardSnapshot
    ) -> None: ...

    async def invalidate(self, organization_id: UUID) -> None: ...


class NullRateCardCache:
    """Cache that never stores anything."""

    async def get(self, organization_id: UUID, bucket: str) -> RateCardSnapshot | None:
        return None

    async def set(self, organization_id: UUID, bucket: str, card: RateCardSnapshot) -> None:
        return None

    async def invalidate(self, organization_id: UUID) -> None:
        return None


class InMemoryRateCardCache:
    """Process-local TTL cache guarded by a lock."""

    def __init__(
        self,
        ttl_seconds: float = 60,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[tuple[UUID, str], tuple[float, RateCardSnapshot]] = {}

    async def get(self, organization_id: UUID, bucket: str) -> RateCardSnapshot | None:
        key = (organization_id, bucket)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, card = entry
            if expires_at <= self._clock():
                del self._entries[key]
                return None
            return card

    async def set(self, organization_id: UUID, bucket: str, card: RateCardSnapshot) -> None:
        with self._lock:
            now = self._clock()
            self._evict_expired(now)
            self._entries[(organization_id, bucket)] = (now + self._ttl, card)

    async def invalidate(self, organization_id: UUID) -> None:
        with self._lock:
            for key in [key for key in self._entries if key[0] == organization_id]:
                del self._entries[key]

    def size(self) -> int:
        """Number of live entries."""

        with self._lock:
            self._evict_expired(self._clock())
            return len(self._entries)

    def _evict_expired(self, now: float) -> None:
        expired = [key for key, (expires_at, _) in self._entries.items() if expires_at <= now]
        for key in expired:
            del self._entries[key]


class RedisRateCardCache:
    """Shared cache storing JSON rate card snapshots in Redis.

    Redis failures are logged and treated as cache misses; the TTL bounds
    how long a missed invalidation can serve a stale card.
    """

    def __init__(self, client: Any, *, ttl_seconds: int = 60, prefix: str = "pricing") -> None:
        self._client = client
        self._ttl = ttl_seconds
        self._prefix = prefix

    def _key(self, organization_id: UUID, bucket: str) -> str:
        return f"{self._prefix}:{organization_id}:ratecard:{bucket}"

    async def get(self, organization_id: UUID, bucket: str) -> RateCardSnapshot | None:
        try:
            payload = await self._client.get(self._key(organization_id, bucket))
        except RedisError:
            logger.warning("Rate card cache read failed for org %s", organization_id)
            return None
        if payload is None:
            return None
        try:
            return RateCardSnapshot.model_validate_json(payload)
        except PydanticValidationError:
            logger.warning("Discarding unreadable cached rate card for org %s", organization_id)
            return None

    async def set(self, organization_id: UUID, bucket: str, card: RateCardSnapshot) -> None:
        try:
            await self._client.set(
                self._key(organization_id, bucket), card.model_dump_json(), ex=self._ttl
            )
        except RedisError:
            logger.warning("Rate card cache write failed for org %s", organization_id)

    async def invalidate(self, organization_id: UUID) -> None:
        pattern = f"{self._prefix}:{organization_id}:ratecard:*"
        try:
            keys = [key async for key in self._client.scan_iter(match=pattern)]
            if keys:
                await self._client.delete(*keys)
        except RedisError:
            logger.warning("Rate card cache invalidation failed for org %s", organization_id)

    async def close(self) -> None:
        await self._client.aclose()


def _create_cache(backend: str, ttl_seconds: int, prefix: str, redis_url: str | None) -> RateCardCache:
    if backend == "none":
        return NullRateCardCache()
    if backend == "redis":
        if not redis_url:
            raise ValueError("REDIS_URL must be set when RATE_CARD_CACHE_BACKEND=redis")
        client = redis.from_url(redis_url, encoding="utf-8", decode_responses=True)
        return RedisRateCardCache(client, ttl_seconds=ttl_seconds, prefix=prefix)
    return InMemoryRateCardCache(ttl_seconds=ttl_seconds)


def _cache_key(settings: Settings) -> tuple[str, int, str, str | None]:
    backend = settings.rate_card_cache_backend
    redis_url = settings.redis_url if backend == "redis" else None
    return (
        backend,
        settings.rate_card_cache_ttl_seconds,
        settings.rate_card_cache_prefix,
        redis_url,
    )


def build_rate_card_cache(settings: Settings | None = None) -> RateCardCache:
    """Return a new cache of the kind selected by ``RATE_CARD_CACHE_BACKEND``."""

    return _create_cache(*_cache_key(settings or get_settings()))


@lru_cache
def _shared_cache(
    backend: str, ttl_seconds: int, prefix: str, redis_url: str | None
) -> RateCardCache:
    return _create_cache(backend, ttl_seconds, prefix, redis_url)


def get_rate_card_cache(settings: Settings | None = None) -> RateCardCache:
    """Process-wide cache for the configured backend.

    Readers and writers built from the same settings share one instance, so
    catalog mutations invalidate what the resolver reads.
    """

    return _shared_cache(*_cache_key(settings or get_settings()))


def reset_rate_card_cache() -> None:
    _shared_cache.cache_clear()


__all__ = [
    "InMemoryRateCardCache",
    "NullRateCardCache",
    "RateCardCache",
    "RedisRateCardCache",
    "build_rate_card_cache",
    "cache_bucket",
    "get_rate_card_cache",
    "reset_rate_card_cache",
]
