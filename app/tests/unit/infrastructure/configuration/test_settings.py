"""Unit tests for settings."""

import pytest

from infrastructure.configuration import Settings
from infrastructure.configuration.infrastructure import (
    QueueSettings,
    ServerSettings,
    WorkerSettings,
)


@pytest.mark.unit
class TestSettings:
    """Tests for the settings aggregator."""

    def test_defaults(self, monkeypatch):
        for name in ("QUEUE_BACKEND", "QUEUE_MAX_ATTEMPTS", "WORKER_CONCURRENCY"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings(
            queue=QueueSettings(_env_file=None), worker=WorkerSettings(_env_file=None)
        )

        assert settings.queue.backend == "memory"
        assert settings.queue.max_attempts == 3
        assert settings.queue.backoff_base_seconds == 2.0
        assert settings.queue.completed_retention_seconds == 3600
        assert settings.queue.failed_retention_seconds == 86400
        assert settings.worker.concurrency == 10
        assert settings.worker.rate_limit_max == 500
        assert settings.worker.rate_limit_period_seconds == 60.0
        assert settings.idempotency.IDEMPOTENCY_TTL_SECONDS == 86400

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("QUEUE_BACKEND", "database")
        monkeypatch.setenv("QUEUE_MAX_ATTEMPTS", "5")
        monkeypatch.setenv("WORKER_CONCURRENCY", "4")

        settings = Settings()

        assert settings.queue.backend == "database"
        assert settings.queue.max_attempts == 5
        assert settings.worker.concurrency == 4

    def test_is_production(self):
        assert Settings(PREFIX="").is_production
        assert not Settings(PREFIX="dev-").is_production

    def test_cors_origins_are_split(self):
        server = ServerSettings(CORS_ALLOW_ORIGINS="http://a.test, http://b.test,")

        assert server.cors_origins == ["http://a.test", "http://b.test"]
