"""Fixtures for HTTP-level tests of the notification API."""

import pytest
from fastapi.testclient import TestClient

from infrastructure.services import get_database, get_notification_service
from server.server import handler


@pytest.fixture
def client(service, database):
    """TestClient wired to the test service; the lifespan (worker pool) is not run."""
    handler.dependency_overrides[get_notification_service] = lambda: service
    handler.dependency_overrides[get_database] = lambda: database
    yield TestClient(handler)
    handler.dependency_overrides.clear()


@pytest.fixture
def payload():
    return {
        "user_id": "12345",
        "channel": "email",
        "template": "welcome_email",
        "data": {"name": "John", "app_name": "Acme", "link": "https://acme.test"},
    }
