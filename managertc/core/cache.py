"""
Redis-backed read cache and socket rate-limit counters.

Keys are namespaced per tenant as ``<prefix>:<companyId>[:<suffix>]`` so a
mutation can drop everything one company has cached for a resource without
touching other tenants. With ``CACHE_ENABLED`` off every helper is a no-op.
"""

import json
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from redis import ConnectionPool, Redis, RedisError

from managertc.core.config import settings
from managertc.core.logging import get_logger

logger = get_logger(__name__)


class RedisClient:
    """Process-wide Redis connection built lazily from a shared pool."""

    _pool: Optional[ConnectionPool] = None
    _client: Optional[Redis] = None

    @classmethod
    def get_client(cls) -> Redis:
        if cls._client is None:
            cls._pool = ConnectionPool(
                host=settings.REDIS_HOST,
                port=settings.REDIS_PORT,
                db=settings.REDIS_DB,
                password=settings.REDIS_PASSWORD or None,
                decode_responses=True,
            )
            cls._client = Redis(connection_pool=cls._pool)
            logger.info(f"Redis pool ready at {settings.REDIS_HOST}:{settings.REDIS_PORT}")
        return cls._client

    @classmethod
    def close(cls) -> None:
        if cls._client is not None:
            cls._client.close()
        if cls._pool is not None:
            cls._pool.disconnect()
        cls._client = None
        cls._pool = None


def get_cache_key(prefix: str, company_id: str, *parts: str | int) -> str:
    return ":".join([prefix, str(company_id), *(str(part) for part in parts)])


def json_serializer(obj):
    """``json.dumps`` fallback for dates and decimals in cached rows and events."""
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, Decimal):
        return float(obj)
    raise TypeError(f"{type(obj).__name__} is not JSON serializable")


def get_from_cache(key: str) -> Any:
    if not settings.CACHE_ENABLED:
        return None
    try:
        raw = RedisClient.get_client().get(key)
    except RedisError as e:
        logger.warning(f"Cache read failed for {key}: {e}")
        return None
    return json.loads(raw) if raw else None


def set_to_cache(key: str, value: Any, ttl: Optional[int] = None) -> bool:
    if not settings.CACHE_ENABLED:
        return False
    payload = json.dumps(value, default=json_serializer)
    try:
        RedisClient.get_client().set(key, payload, ex=ttl or settings.CACHE_TTL)
    except RedisError as e:
        logger.warning(f"Cache write failed for {key}: {e}")
        return False
    return True


def delete_from_cache(*keys: str) -> int:
    if not settings.CACHE_ENABLED or not keys:
        return 0
    try:
        return RedisClient.get_client().delete(*keys)
    except RedisError as e:
        logger.warning(f"Cache delete failed for {keys}: {e}")
        return 0


def clear_cache_pattern(pattern: str) -> int:
    """Delete keys matching ``pattern``; SCAN is used so Redis is never blocked."""
    if not settings.CACHE_ENABLED:
        return 0
    try:
        client = RedisClient.get_client()
        keys = list(client.scan_iter(match=pattern, count=500))
        return client.delete(*keys) if keys else 0
    except RedisError as e:
        logger.warning(f"Cache clear failed for {pattern}: {e}")
        return 0


def clear_tenant_cache(*prefixes: str, company_id: str) -> None:
    for prefix in prefixes:
        base = get_cache_key(prefix, company_id)
        delete_from_cache(base)
        clear_cache_pattern(f"{base}:*")


def hit_rate_window(key: str, limit: int, window_seconds: int) -> bool:
    """
    Count one hit in a fixed window; True while the caller is within ``limit``.

    An unreachable Redis lets the call through.
    """
    try:
        client = RedisClient.get_client()
        count = client.incr(key)
        if count == 1:
            client.expire(key, window_seconds)
    except RedisError as e:
        logger.warning(f"Rate limit counter unavailable: {e}")
        return True
    return count <= limit
