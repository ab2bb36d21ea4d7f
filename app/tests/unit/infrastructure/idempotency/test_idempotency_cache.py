"""Unit tests for the idempotency caches and key builder."""

from unittest.mock import MagicMock, patch

import pytest
from redis import RedisError

from infrastructure.configuration import Settings
from infrastructure.configuration.infrastructure import IdempotencySettings
from infrastructure.idempotency import (
    IdempotencyKeyBuilder,
    InMemoryIdempotencyCache,
    RedisIdempotencyCache,
    canonical_json,
    create_idempotency_cache,
)


@pytest.mark.unit
class TestIdempotencyKeyBuilder:
    """Tests for IdempotencyKeyBuilder."""

    def test_key_is_sha256_hex(self):
        key = IdempotencyKeyBuilder().build("u1", "welcome_email", {"name": "John"})

        assert len(key) == 64
        assert all(char in "0123456789abcdef" for char in key)

    def test_key_ignores_data_key_order(self):
        """The same logical request maps to the same key."""
        builder = IdempotencyKeyBuilder()

        first = builder.build("u1", "t1", {"a": 1, "b": {"c": 2, "d": 3}})
        second = builder.build("u1", "t1", {"b": {"d": 3, "c": 2}, "a": 1})

        assert first == second

    def test_key_changes_with_any_input(self):
        builder = IdempotencyKeyBuilder()
        base = builder.build("u1", "t1", {"a": 1})

        assert builder.build("u2", "t1", {"a": 1}) != base
        assert builder.build("u1", "t2", {"a": 1}) != base
        assert builder.build("u1", "t1", {"a": 2}) != base

    def test_separator_in_ids_does_not_collide(self):
        """Moving a ':' between user_id and template_id is a different request."""
        builder = IdempotencyKeyBuilder()
        data = {"name": "John"}

        assert builder.build("a:b", "welcome_email", data) != builder.build(
            "a", "b:welcome_email", data
        )

    def test_cache_key_prefix(self):
        assert IdempotencyKeyBuilder().cache_key("abc") == "idempotency:abc"

    def test_canonical_json_is_compact_and_sorted(self):
        assert canonical_json({"b": 1, "a": [1, 2]}) == '{"a":[1,2],"b":1}'


@pytest.mark.unit
class TestInMemoryIdempotencyCache:
    """Tests for InMemoryIdempotencyCache."""

    def test_set_and_get(self):
        cache = InMemoryIdempotencyCache()

        cache.set("idempotency:k", "n-1")

        assert cache.get("idempotency:k") == "n-1"

    def test_get_missing(self):
        assert InMemoryIdempotencyCache().get("idempotency:missing") is None

    def test_entries_expire(self):
        cache = InMemoryIdempotencyCache()

        with patch("infrastructure.idempotency.memory.time.time", return_value=1000.0):
            cache.set("idempotency:k", "n-1", ttl_seconds=10)
        with patch("infrastructure.idempotency.memory.time.time", return_value=1011.0):
            assert cache.get("idempotency:k") is None

    def test_delete_and_clear(self):
        cache = InMemoryIdempotencyCache()
        cache.set("idempotency:a", "1")
        cache.set("idempotency:b", "2")

        cache.delete("idempotency:a")
        assert cache.get("idempotency:a") is None

        cache.clear()
        assert cache.get_stats()["total_entries"] == 0

    def test_cleanup_expired(self):
        cache = InMemoryIdempotencyCache()
        with patch("infrastructure.idempotency.memory.time.time", return_value=1000.0):
            cache.set("idempotency:old", "1", ttl_seconds=1)
            cache.set("idempotency:new", "2", ttl_seconds=100)
        with patch("infrastructure.idempotency.memory.time.time", return_value=1010.0):
            assert cache.cleanup_expired() == 1


@pytest.mark.unit
class TestRedisIdempotencyCache:
    """Tests for RedisIdempotencyCache."""

    def test_set_uses_setex_with_ttl(self):
        client = MagicMock()
        cache = RedisIdempotencyCache(client, ttl_seconds=86400)

        cache.set("idempotency:k", "n-1")

        client.setex.assert_called_once_with("idempotency:k", 86400, "n-1")

    def test_get_returns_value(self):
        client = MagicMock()
        client.get.return_value = "n-1"

        assert RedisIdempotencyCache(client).get("idempotency:k") == "n-1"

    def test_redis_errors_degrade_to_miss(self):
        """An unreachable Redis is a cache miss, never an exception."""
        client = MagicMock()
        client.get.side_effect = RedisError("connection refused")
        client.setex.side_effect = RedisError("connection refused")
        cache = RedisIdempotencyCache(client)

        assert cache.get("idempotency:k") is None
        cache.set("idempotency:k", "n-1")

    def test_stats_report_health(self):
        client = MagicMock()
        client.ping.side_effect = RedisError("down")

        assert RedisIdempotencyCache(client).get_stats()["healthy"] is False


@pytest.mark.unit
class TestCreateIdempotencyCache:
    """Tests for create_idempotency_cache."""

    def test_memory_backend(self):
        settings = Settings(
            idempotency=IdempotencySettings(
                IDEMPOTENCY_BACKEND="memory", IDEMPOTENCY_TTL_SECONDS=120
            )
        )

        cache = create_idempotency_cache(settings)

        assert isinstance(cache, InMemoryIdempotencyCache)
        assert cache.ttl_seconds == 120

    def test_redis_backend(self):
        settings = Settings(
            idempotency=IdempotencySettings(
                IDEMPOTENCY_BACKEND="redis", REDIS_URL="redis://cache:6379/1"
            )
        )

        with patch(
            "infrastructure.idempotency.factory.create_redis_client"
        ) as mock_create:
            cache = create_idempotency_cache(settings)

        assert isinstance(cache, RedisIdempotencyCache)
        assert mock_create.call_args[0][0] == "redis://cache:6379/1"

    def test_unknown_backend(self):
        with pytest.raises(ValueError, match="Unknown idempotency backend"):
            create_idempotency_cache(Settings(), backend="memcached")
