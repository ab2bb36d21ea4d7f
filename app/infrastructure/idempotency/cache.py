"""Idempotency cache abstract base class."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


class IdempotencyCache(ABC):
    """Abstract base class for idempotency cache implementations.

    The cache maps an idempotency key to the id of the notification created
    for it. It is a fast path only: implementations report failures by
    returning None from `get` and logging, never by raising, because the
    authoritative duplicate check is the database uniqueness constraint.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Get the cached value for an idempotency key.

        Args:
            key: Full cache key (e.g. "idempotency:<hash>").

        Returns:
            Cached value or None if not found, expired or unreachable.
        """

    @abstractmethod
    def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        """Cache a value for the given key.

        Args:
            key: Full cache key.
            value: Value to cache (a notification id).
            ttl_seconds: Time-to-live in seconds (implementation default if None).
        """

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove a cached entry if present."""

    @abstractmethod
    def clear(self) -> None:
        """Clear all cached entries (for testing)."""

    @abstractmethod
    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics (implementation-specific)."""
