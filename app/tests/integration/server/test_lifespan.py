"""Application startup and shutdown against a temporary database."""

import pytest
from fastapi.testclient import TestClient

from infrastructure.services import (
    get_dispatch_queue,
    get_notification_service,
    get_settings,
    get_template_repository,
    get_worker_pool,
    reset_providers,
)
from infrastructure.queue import InMemoryDispatchQueue
from server.server import handler


@pytest.fixture
def app_env(tmp_path, monkeypatch):
    """Environment for a self-contained app: SQLite file, memory backends, no worker."""
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'app.db'}")
    monkeypatch.setenv("IDEMPOTENCY_BACKEND", "memory")
    monkeypatch.setenv("QUEUE_BACKEND", "memory")
    monkeypatch.setenv("QUEUE_MAX_ATTEMPTS", "5")
    monkeypatch.setenv("WORKER_ENABLED", "false")
    reset_providers()
    yield
    reset_providers()


@pytest.mark.integration
class TestProviders:
    """Application-scoped providers built from the environment."""

    def test_providers_are_singletons(self, app_env):
        assert get_settings() is get_settings()
        assert get_notification_service() is get_notification_service()

    def test_service_uses_configured_backends(self, app_env):
        service = get_notification_service()

        assert isinstance(get_dispatch_queue(), InMemoryDispatchQueue)
        assert service.queue is get_dispatch_queue()
        assert service.job_options.max_attempts == 5

    def test_worker_pool_uses_queue_retention(self, app_env, monkeypatch):
        monkeypatch.setenv("QUEUE_COMPLETED_RETENTION_SECONDS", "120")
        monkeypatch.setenv("QUEUE_FAILED_RETENTION_SECONDS", "600")
        monkeypatch.setenv("WORKER_CONCURRENCY", "4")

        pool = get_worker_pool()

        assert pool.completed_retention_seconds == 120
        assert pool.failed_retention_seconds == 600
        assert pool.concurrency == 4
        assert pool.processor.max_concurrent_sends > pool.concurrency
        pool.processor.shutdown()

    def test_reset_providers(self, app_env):
        first = get_notification_service()

        reset_providers()

        assert get_notification_service() is not first


@pytest.mark.integration
class TestLifespan:
    """Startup creates tables and seeds templates; shutdown releases the engine."""

    def test_startup_prepares_database(self, app_env):
        with TestClient(handler) as client:
            response = client.post(
                "/notifications",
                json={
                    "user_id": "12345",
                    "channel": "email",
                    "template": "welcome_email",
                    "data": {"name": "John", "app_name": "Acme", "link": "x"},
                },
            )

            assert response.status_code == 202
            assert client.get("/health").status_code == 200
            assert len(get_template_repository().find_all()) == 3
            assert handler.state.worker_pool is None
