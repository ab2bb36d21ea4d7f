"""Redis-backed idempotency cache.

Shares idempotency entries across every API instance. Every call is bounded
by the pool's socket timeouts; any Redis failure degrades to a cache miss.
"""

from typing import Any, Dict, Optional

from redis import ConnectionPool, Redis, RedisError  # type: ignore

from infrastructure.idempotency.cache import IdempotencyCache
from infrastructure.logging import get_module_logger

logger = get_module_logger()


def create_redis_client(
    url: str,
    socket_timeout: float = 2.0,
    max_connections: int = 10,
) -> Redis:
    """Create a pooled Redis client.

    Args:
        url: Redis URL (redis://host:port/db)
        socket_timeout: Timeout for connect and for each command, in seconds
        max_connections: Connection pool size

    Returns:
        Redis client. No connection is opened until the first command.
    """
    pool = ConnectionPool.from_url(
        url,
        decode_responses=True,
        max_connections=max_connections,
        socket_timeout=socket_timeout,
        socket_connect_timeout=socket_timeout,
        retry_on_timeout=True,
        health_check_interval=30,
    )
    logger.info("redis_connection_pool_created", max_connections=max_connections)
    return Redis(connection_pool=pool)


class RedisIdempotencyCache(IdempotencyCache):
    """Idempotency cache stored in Redis with SETEX expiry."""

    def __init__(self, client: Redis, ttl_seconds: int = 86400):
        self.client = client
        self.ttl_seconds = ttl_seconds

    def get(self, key: str) -> Optional[str]:
        try:
            value = self.client.get(key)
        except RedisError as e:
            logger.warning("idempotency_cache_get_error", key=key, error=str(e))
            return None

        if value is None:
            logger.debug("idempotency_cache_miss", key=key)
            return None

        logger.debug("idempotency_cache_hit", key=key)
        return value

    def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        ttl = ttl_seconds if ttl_seconds is not None else self.ttl_seconds
        try:
            self.client.setex(key, ttl, value)
            logger.debug("idempotency_cache_stored", key=key, ttl_seconds=ttl)
        except RedisError as e:
            logger.warning("idempotency_cache_set_error", key=key, error=str(e))

    def delete(self, key: str) -> None:
        try:
            self.client.delete(key)
        except RedisError as e:
            logger.warning("idempotency_cache_delete_error", key=key, error=str(e))

    def clear(self) -> None:
        """Delete every idempotency entry (SCAN based, for tests and ops)."""
        try:
            keys = list(self.client.scan_iter(match="idempotency:*", count=500))
            if keys:
                self.client.delete(*keys)
            logger.info("idempotency_cache_cleared", deleted=len(keys))
        except RedisError as e:
            logger.warning("idempotency_cache_clear_error", error=str(e))

    def get_stats(self) -> Dict[str, Any]:
        try:
            self.client.ping()
            healthy = True
        except RedisError:
            healthy = False
        return {"backend": "redis", "healthy": healthy, "ttl_seconds": self.ttl_seconds}
