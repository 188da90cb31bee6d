from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Any

from redis.asyncio import Redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from herodex.settings import get_settings

logger = logging.getLogger(__name__)

_DEFAULT_TTL_SECONDS = 600
_SESSION_PREFIX = "sessions"

_LOCAL_CACHE_DEFAULT_TTL = 300
_local_cache: dict[str, tuple[float, Any]] = {}
_local_cache_lock = asyncio.Lock()

_redis_client: Redis | None = None
_client_lock = asyncio.Lock()
_redis_disabled_until: float = 0.0


async def local_cache_get(key: str) -> Any | None:
    """Return a value from the in-process fallback cache when it remains valid."""

    async with _local_cache_lock:
        cached_entry = _local_cache.get(key)
        if cached_entry is None:
            return None

        expires_at, value = cached_entry
        if expires_at < time.time():
            _local_cache.pop(key, None)
            return None
        return value


async def local_cache_set(key: str, value: Any, ttl: int | None = None) -> None:
    """Persist ``value`` in the in-process cache while respecting the supplied TTL."""

    ttl_seconds = ttl if ttl is not None and ttl > 0 else _LOCAL_CACHE_DEFAULT_TTL
    async with _local_cache_lock:
        _local_cache[key] = (time.time() + ttl_seconds, value)


async def local_cache_delete(*keys: str) -> None:
    async with _local_cache_lock:
        for key in keys:
            _local_cache.pop(key, None)


async def local_cache_clear_all() -> None:
    """Remove every entry from the in-process cache.

    Mostly useful for test isolation.
    """

    async with _local_cache_lock:
        _local_cache.clear()


def session_key(session_id: str) -> str:
    return f"{_SESSION_PREFIX}:{session_id}"


def _is_redis_connection_error(exc: BaseException) -> bool:
    return isinstance(exc, (RedisConnectionError, RedisTimeoutError, OSError))


async def get_redis() -> Redis | None:
    """Get the shared Redis client, returning ``None`` while Redis is unavailable.

    A failed connection disables Redis for ``REDIS_RETRY_BACKOFF_SECONDS``
    before the next attempt.
    """
    global _redis_client, _redis_disabled_until

    settings = get_settings()
    if _redis_disabled_until > time.monotonic():
        logger.debug("Redis connection disabled after previous failure; skipping attempt.")
        return None

    async with _client_lock:
        if _redis_client is not None:
            return _redis_client

        client = Redis.from_url(settings.resolved_redis_url, decode_responses=True, encoding="utf-8")
        try:
            await client.ping()
        except Exception as exc:
            if not _is_redis_connection_error(exc):
                raise
            logger.warning(
                "Redis connection failed: %s. Falling back to the in-process store for %.0fs.",
                exc,
                settings.redis_retry_backoff_seconds,
            )
            _redis_disabled_until = time.monotonic() + settings.redis_retry_backoff_seconds
            await client.aclose()
            return None

        _redis_client = client
        logger.info("Redis connection established successfully")
        return _redis_client


class CacheClient:
    """JSON get/set/delete over Redis that degrades to no-ops without Redis.

    ``connected`` turns ``False`` once Redis is missing or a call on this
    client hit a connection error; callers use it to pick a fallback store.
    """

    def __init__(self, redis: Redis | None) -> None:
        self._redis = redis
        self._connection_failed = False

    @property
    def connected(self) -> bool:
        return self._redis is not None and not self._connection_failed

    async def get_json(self, key: str) -> Any:
        if self._redis is None:
            return None
        try:
            payload = await self._redis.get(key)
            if payload is None:
                return None
            try:
                return json.loads(payload)
            except json.JSONDecodeError:
                return None
        except Exception as exc:
            if _is_redis_connection_error(exc):
                self._connection_failed = True
                logger.debug(f"Redis get failed for key {key}: {exc}")
                return None
            raise

    async def set_json(self, key: str, value: Any, ttl: int | None = None) -> None:
        if self._redis is None:
            return
        try:
            encoded = json.dumps(value, default=str)
            if ttl is None:
                ttl = _DEFAULT_TTL_SECONDS
            await self._redis.set(key, encoded, ex=ttl)
        except Exception as exc:
            if _is_redis_connection_error(exc):
                self._connection_failed = True
                logger.debug(f"Redis set failed for key {key}: {exc}")
                return
            raise

    async def delete(self, *keys: str) -> None:
        if self._redis is None or not keys:
            return
        try:
            await self._redis.delete(*keys)
        except Exception as exc:
            if _is_redis_connection_error(exc):
                self._connection_failed = True
                logger.debug(f"Redis delete failed: {exc}")
                return
            raise


async def get_cache_client() -> CacheClient:
    redis = await get_redis()
    return CacheClient(redis)


async def close_redis() -> None:
    """Close the global Redis connection gracefully."""
    global _redis_client, _redis_disabled_until
    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None
    _redis_disabled_until = 0.0


__all__ = [
    "CacheClient",
    "close_redis",
    "get_cache_client",
    "get_redis",
    "local_cache_clear_all",
    "local_cache_delete",
    "local_cache_get",
    "local_cache_set",
    "session_key",
]
