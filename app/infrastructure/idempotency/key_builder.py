"""Idempotency key builder for notification requests."""

import hashlib
import json
from typing import Any, Mapping

CACHE_KEY_PREFIX = "idempotency"


def canonical_json(data: Any) -> str:
    """Serialize a payload deterministically (sorted keys, compact separators)."""
    return json.dumps(
        data,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=str,
    )


class IdempotencyKeyBuilder:
    """Build deterministic idempotency keys for notification requests.

    The key is the SHA-256 hex digest of the canonical JSON array
    ``[user_id, template_id, data]``; JSON string quoting keeps the field
    boundaries unambiguous.
    The same logical request always yields the same key regardless of the key
    order of its data payload.

    Example:
        >>> builder = IdempotencyKeyBuilder()
        >>> key = builder.build("u1", "welcome_email", {"name": "John"})
        >>> builder.cache_key(key)
        'idempotency:3f0c...'
    """

    def __init__(self, prefix: str = CACHE_KEY_PREFIX):
        self.prefix = prefix

    def build(self, user_id: str, template_id: str, data: Mapping[str, Any]) -> str:
        """Return the 64 character idempotency key for a request."""
        material = canonical_json([user_id, template_id, data])
        return hashlib.sha256(material.encode("utf-8")).hexdigest()

    def cache_key(self, key: str) -> str:
        """Return the cache key under which the notification id is stored."""
        return f"{self.prefix}:{key}"
