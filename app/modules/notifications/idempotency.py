"""Idempotency guard for notification creation.

The cache is only a fast path. The unique idempotency_key column in the
notification store is what actually prevents duplicates, so any cache failure
is treated as a miss.
"""

from typing import Any, Mapping, Optional

from infrastructure.idempotency import IdempotencyCache, IdempotencyKeyBuilder
from infrastructure.logging import get_module_logger
from modules.notifications.store import NotificationStore

logger = get_module_logger()


class IdempotencyGuard:
    """Maps a logical request to the notification it already created.

    Args:
        cache: Fast-path cache (memory or Redis)
        store: Notification store, the authoritative record
        ttl_seconds: Lifetime of cache entries
        key_builder: Builds the request hash and its cache key
    """

    def __init__(
        self,
        cache: IdempotencyCache,
        store: NotificationStore,
        ttl_seconds: int = 86400,
        key_builder: Optional[IdempotencyKeyBuilder] = None,
    ):
        self.cache = cache
        self.store = store
        self.ttl_seconds = ttl_seconds
        self.key_builder = key_builder or IdempotencyKeyBuilder()

    def key_for(self, user_id: str, template_id: str, data: Mapping[str, Any]) -> str:
        return self.key_builder.build(user_id, template_id, data)

    def resolve(
        self, user_id: str, template_id: str, data: Mapping[str, Any]
    ) -> Optional[str]:
        """Return the id of the notification already created for this request, if any."""
        key = self.key_for(user_id, template_id, data)
        return self.resolve_key(key)

    def resolve_key(self, key: str) -> Optional[str]:
        cached = self._cache_get(key)
        if cached:
            logger.info(
                "duplicate_request_detected", source="cache", notification_id=cached
            )
            return cached

        existing = self.store.find_by_idempotency_key(key)
        if existing is None:
            return None

        logger.info(
            "duplicate_request_detected", source="store", notification_id=existing.id
        )
        self.remember(key, existing.id)
        return existing.id

    def remember(self, key: str, notification_id: str) -> None:
        """Cache the mapping; failures are logged and ignored."""
        try:
            self.cache.set(
                self.key_builder.cache_key(key), notification_id, self.ttl_seconds
            )
        except Exception as e:  # pylint: disable=broad-except
            logger.warning(
                "idempotency_cache_write_failed",
                notification_id=notification_id,
                error=str(e),
            )

    def forget(self, key: str) -> None:
        try:
            self.cache.delete(self.key_builder.cache_key(key))
        except Exception as e:  # pylint: disable=broad-except
            logger.warning("idempotency_cache_delete_failed", error=str(e))

    def _cache_get(self, key: str) -> Optional[str]:
        try:
            return self.cache.get(self.key_builder.cache_key(key))
        except Exception as e:  # pylint: disable=broad-except
            logger.warning("idempotency_cache_read_failed", error=str(e))
            return None
