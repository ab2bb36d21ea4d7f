"""In-memory idempotency cache with TTL."""

import threading
import time
from typing import Any, Dict, Optional, Tuple

from infrastructure.idempotency.cache import IdempotencyCache
from infrastructure.logging import get_module_logger

logger = get_module_logger()


class InMemoryIdempotencyCache(IdempotencyCache):
    """Process-local idempotency cache.

    Suitable for single-instance deployments, development and tests. Entries
    expire lazily on read and in `cleanup_expired`.
    """

    def __init__(self, ttl_seconds: int = 86400):
        self.ttl_seconds = ttl_seconds
        self._entries: Dict[str, Tuple[str, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            cached = self._entries.get(key)
            if cached is None:
                logger.debug("idempotency_cache_miss", key=key)
                return None

            value, expiry = cached
            if time.time() > expiry:
                self._entries.pop(key, None)
                logger.debug("idempotency_cache_expired", key=key)
                return None

            logger.debug("idempotency_cache_hit", key=key)
            return value

    def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        ttl = ttl_seconds if ttl_seconds is not None else self.ttl_seconds
        with self._lock:
            self._entries[key] = (value, time.time() + ttl)
        logger.debug("idempotency_cache_stored", key=key, ttl_seconds=ttl)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
        logger.debug("idempotency_cache_cleared")

    def cleanup_expired(self) -> int:
        """Remove expired entries and return how many were dropped."""
        now = time.time()
        with self._lock:
            expired_keys = [
                key for key, (_, expiry) in self._entries.items() if expiry < now
            ]
            for key in expired_keys:
                self._entries.pop(key, None)
        if expired_keys:
            logger.debug(
                "idempotency_cache_cleanup",
                expired_count=len(expired_keys),
            )
        return len(expired_keys)

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            now = time.time()
            expired_count = sum(
                1 for _, expiry in self._entries.values() if expiry < now
            )
            return {
                "backend": "memory",
                "total_entries": len(self._entries),
                "expired_entries": expired_count,
                "active_entries": len(self._entries) - expired_count,
            }
