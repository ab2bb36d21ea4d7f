"""Infrastructure idempotency cache.

Provides the fast-path cache used to short-circuit duplicate notification
requests. Two backends are available: an in-process cache for single instance
deployments and tests, and Redis for multi-instance deployments.

Usage:

    from infrastructure.idempotency import IdempotencyKeyBuilder, create_idempotency_cache

    cache = create_idempotency_cache(settings)
    builder = IdempotencyKeyBuilder()

    key = builder.build(user_id, template_id, data)
    notification_id = cache.get(builder.cache_key(key))
"""

from infrastructure.idempotency.cache import IdempotencyCache
from infrastructure.idempotency.factory import create_idempotency_cache
from infrastructure.idempotency.key_builder import (
    CACHE_KEY_PREFIX,
    IdempotencyKeyBuilder,
    canonical_json,
)
from infrastructure.idempotency.memory import InMemoryIdempotencyCache
from infrastructure.idempotency.redis_cache import RedisIdempotencyCache, create_redis_client

__all__ = [
    "CACHE_KEY_PREFIX",
    "IdempotencyCache",
    "IdempotencyKeyBuilder",
    "InMemoryIdempotencyCache",
    "RedisIdempotencyCache",
    "canonical_json",
    "create_idempotency_cache",
    "create_redis_client",
]
