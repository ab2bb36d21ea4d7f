"""Idempotency cache factory."""

from typing import Optional, TYPE_CHECKING

from infrastructure.idempotency.cache import IdempotencyCache
from infrastructure.idempotency.memory import InMemoryIdempotencyCache
from infrastructure.idempotency.redis_cache import RedisIdempotencyCache, create_redis_client
from infrastructure.logging import get_module_logger

if TYPE_CHECKING:
    from infrastructure.configuration import Settings

logger = get_module_logger()


def create_idempotency_cache(
    settings: "Settings", backend: Optional[str] = None
) -> IdempotencyCache:
    """Create the idempotency cache configured in settings.

    Args:
        settings: Application settings.
        backend: Optional backend override ('memory' or 'redis').
            If None, uses settings.idempotency.IDEMPOTENCY_BACKEND.

    Returns:
        IdempotencyCache implementation

    Raises:
        ValueError: If an unknown backend is requested
    """
    config = settings.idempotency
    backend = backend or config.IDEMPOTENCY_BACKEND

    if backend == "memory":
        logger.info("initialized_idempotency_cache", backend="memory")
        return InMemoryIdempotencyCache(ttl_seconds=config.IDEMPOTENCY_TTL_SECONDS)

    if backend == "redis":
        client = create_redis_client(
            config.REDIS_URL,
            socket_timeout=config.REDIS_SOCKET_TIMEOUT_SECONDS,
            max_connections=config.REDIS_MAX_CONNECTIONS,
        )
        logger.info("initialized_idempotency_cache", backend="redis")
        return RedisIdempotencyCache(client, ttl_seconds=config.IDEMPOTENCY_TTL_SECONDS)

    raise ValueError(
        f"Unknown idempotency backend: {backend}. Supported: memory, redis"
    )
