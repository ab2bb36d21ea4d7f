"""Unit tests for the idempotency guard."""

from unittest.mock import MagicMock

import pytest

from modules.notifications.idempotency import IdempotencyGuard

DATA = {"name": "John", "app_name": "Acme", "link": "https://acme.test"}


@pytest.mark.unit
class TestIdempotencyGuard:
    """Tests for IdempotencyGuard."""

    def test_unknown_request_resolves_to_none(self, guard):
        assert guard.resolve("12345", "welcome_email", DATA) is None

    def test_remembered_request_is_found_in_cache(self, guard, cache):
        key = guard.key_for("12345", "welcome_email", DATA)

        guard.remember(key, "n-1")

        assert guard.resolve("12345", "welcome_email", DATA) == "n-1"
        assert cache.get(f"idempotency:{key}") == "n-1"

    def test_store_is_checked_on_cache_miss(self, guard, cache, pending_notification):
        """A notification the cache never saw is found by key and back-filled."""
        key = guard.key_for("12345", "welcome_email", DATA)
        notification = pending_notification(key=key, data=DATA)

        assert guard.resolve_key(key) == notification.id
        assert cache.get(f"idempotency:{key}") == notification.id

    def test_forget(self, guard):
        guard.remember("k", "n-1")

        guard.forget("k")

        assert guard.resolve_key("k") is None

    def test_cache_failures_are_misses(self, store, pending_notification):
        """A broken cache never fails the request; the store still answers."""
        broken = MagicMock()
        broken.get.side_effect = ConnectionError("cache down")
        broken.set.side_effect = ConnectionError("cache down")
        broken.delete.side_effect = ConnectionError("cache down")
        guard = IdempotencyGuard(broken, store)
        notification = pending_notification(key="k")

        assert guard.resolve_key("k") == notification.id
        guard.remember("k", notification.id)
        guard.forget("k")

    def test_remember_uses_ttl(self, store):
        cache = MagicMock()
        cache.get.return_value = None
        guard = IdempotencyGuard(cache, store, ttl_seconds=300)

        guard.remember("k", "n-1")

        cache.set.assert_called_once_with("idempotency:k", "n-1", 300)
