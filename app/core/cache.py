"""
Optional Redis read-through cache for strategy list queries.

Every Redis failure is logged and treated as a cache miss (reads) or a no-op
(writes and invalidation); the database stays the source of truth.
"""

import hashlib
import json
import logging
from typing import Any

import redis

from app.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

PUBLIC_PREFIX = "strategies:public"
TOP_PREFIX = "strategies:top"


class StrategyCache:
    """Thin best-effort wrapper around a redis-py client; client=None disables caching."""

    def __init__(self, client: "redis.Redis | None", list_ttl: int = 300, top_ttl: int = 600) -> None:
        self.client = client
        self.list_ttl = list_ttl
        self.top_ttl = top_ttl

    @property
    def enabled(self) -> bool:
        return self.client is not None

    # ---- Keys ---------------------------------------------------------------

    @staticmethod
    def _fingerprint(params: dict[str, Any]) -> str:
        encoded = json.dumps(params, sort_keys=True, default=str)
        return hashlib.sha1(encoded.encode("utf-8")).hexdigest()[:16]

    def public_key(self, params: dict[str, Any]) -> str:
        return f"{PUBLIC_PREFIX}:{self._fingerprint(params)}"

    def top_key(self, limit: int) -> str:
        return f"{TOP_PREFIX}:{limit}"

    def user_key(self, user_id: Any, params: dict[str, Any]) -> str:
        return f"user:{user_id}:strategies:{self._fingerprint(params)}"

    # ---- Basic KV API -------------------------------------------------------

    def get_json(self, key: str) -> Any:
        if self.client is None:
            return None
        try:
            raw = self.client.get(key)
        except redis.RedisError as e:
            logger.warning("Redis get failed for %s: %s", key, e)
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("Discarding undecodable cache entry %s", key)
            return None

    def set_json(self, key: str, value: Any, ttl: int) -> bool:
        if self.client is None:
            return False
        try:
            return bool(self.client.set(key, json.dumps(value, default=str), ex=ttl))
        except redis.RedisError as e:
            logger.warning("Redis set failed for %s: %s", key, e)
            return False

    def delete_pattern(self, pattern: str) -> int:
        """Delete every key matching a glob pattern; returns the number removed."""
        if self.client is None:
            return 0
        try:
            keys = list(self.client.scan_iter(match=pattern, count=500))
            if not keys:
                return 0
            return int(self.client.delete(*keys))
        except redis.RedisError as e:
            logger.warning("Redis delete failed for %s: %s", pattern, e)
            return 0

    def ping(self) -> bool:
        if self.client is None:
            return False
        try:
            return bool(self.client.ping())
        except redis.RedisError:
            return False

    # ---- Invalidation -------------------------------------------------------

    def invalidate_public(self) -> None:
        self.delete_pattern(f"{PUBLIC_PREFIX}:*")
        self.delete_pattern(f"{TOP_PREFIX}:*")

    def invalidate_user(self, user_id: Any) -> None:
        self.delete_pattern(f"user:{user_id}:strategies:*")

    def close(self) -> None:
        if self.client is None:
            return
        try:
            self.client.close()
        except redis.RedisError as e:
            logger.warning("Error closing Redis client: %s", e)


def build_cache(settings: Settings) -> StrategyCache:
    """Create the cache from settings; disabled (no client) unless CACHE_ENABLED is set."""
    if not settings.CACHE_ENABLED:
        return StrategyCache(None)
    client = redis.Redis.from_url(
        settings.REDIS_URL,
        decode_responses=True,
        socket_timeout=settings.REDIS_SOCKET_TIMEOUT_SEC,
        socket_connect_timeout=settings.REDIS_SOCKET_TIMEOUT_SEC,
    )
    logger.info("Redis cache enabled at %s", settings.REDIS_URL.split("@")[-1])
    return StrategyCache(
        client,
        list_ttl=settings.CACHE_LIST_TTL_SEC,
        top_ttl=settings.CACHE_TOP_TTL_SEC,
    )


_cache: StrategyCache | None = None


def get_cache() -> StrategyCache:
    """Dependency: process-wide cache instance, created on first use."""
    global _cache
    if _cache is None:
        _cache = build_cache(get_settings())
    return _cache


def close_cache() -> None:
    global _cache
    if _cache is not None:
        _cache.close()
        _cache = None
