"""Redis store used as the DAO key-value cache.

Handles:
- Batched reads (MGET) returning only the keys that were found
- Batched writes (pipelined SET) with an optional uniform TTL
- Single-key eviction

Values are stored as JSON. The cache is an optimization, never a source of
truth: Redis errors are logged and treated as misses / no-ops.
"""

import json
import logging
from collections.abc import Iterable, Mapping
from typing import Any

import redis

from cachedao.settings import get_settings

logger = logging.getLogger(__name__)


def create_redis_client(url: str | None = None) -> redis.Redis:
    """Create a Redis client from settings (or an explicit URL)."""
    settings = get_settings()
    return redis.Redis.from_url(
        url or settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        socket_connect_timeout=settings.redis_socket_timeout,
        socket_timeout=settings.redis_socket_timeout,
    )


def _dumps(value: Any) -> str:
    return json.dumps(value, default=str)


class RedisCache:
    """Key-value cache over a Redis client."""

    def __init__(self, client: redis.Redis, ttl: int = 0):
        """Initialize cache.

        Args:
            client: Redis client (decode_responses=True).
            ttl: Default time-to-live in seconds; 0 stores without expiry.
        """
        self.client = client
        self.ttl = ttl

    @classmethod
    def from_settings(cls) -> "RedisCache":
        return cls(create_redis_client(), ttl=get_settings().cache_ttl)

    # ============================================================
    # Reads
    # ============================================================

    def get(self, key: str) -> Any | None:
        """Get a single value, or None if not cached."""
        return self.get_multi([key]).get(key)

    def get_multi(self, keys: Iterable[str]) -> dict[str, Any]:
        """Get several values at once.

        Args:
            keys: Cache keys.

        Returns:
            Mapping of found key -> decoded value. Missing keys are absent.
        """
        keys = list(keys)
        if not keys:
            return {}

        try:
            values = self.client.mget(keys)
        except redis.RedisError as e:
            logger.warning(f"Redis cache read failed: {e}")
            return {}

        found: dict[str, Any] = {}
        for key, raw in zip(keys, values):
            if raw is None:
                continue
            try:
                found[key] = json.loads(raw)
            except (TypeError, ValueError):
                logger.warning(f"Dropping undecodable cache entry {key}")
        return found

    # ============================================================
    # Writes
    # ============================================================

    def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        self.set_multi({key: value}, ttl=ttl)

    def set_multi(self, items: Mapping[str, Any], ttl: int | None = None) -> None:
        """Store several values in one round-trip.

        Args:
            items: Mapping of key -> JSON-serializable value.
            ttl: Time-to-live in seconds (defaults to the cache TTL).
        """
        if not items:
            return

        ttl = self.ttl if ttl is None else ttl
        try:
            pipe = self.client.pipeline(transaction=False)
            for key, value in items.items():
                pipe.set(key, _dumps(value), ex=ttl or None)
            pipe.execute()
        except redis.RedisError as e:
            logger.warning(f"Redis cache write failed: {e}")

    def delete(self, key: str) -> bool:
        """Evict a key.

        Returns:
            True if the key existed and was removed, False otherwise.
        """
        try:
            return bool(self.client.delete(key))
        except redis.RedisError as e:
            logger.warning(f"Redis cache delete failed for {key}: {e}")
            return False

    def flush(self) -> None:
        """Remove every key in the current database (for testing only)."""
        self.client.flushdb()
