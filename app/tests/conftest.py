"""Shared fixtures for the notification service test suite.

Level: wiring of real components on a throwaway SQLite database. Provider
HTTP calls are never made; channels are replaced by FakeChannel instances.
"""

import pytest

from infrastructure.configuration import Settings
from infrastructure.configuration.infrastructure import (
    DatabaseSettings,
    IdempotencySettings,
    QueueSettings,
    WorkerSettings,
)
from infrastructure.idempotency import InMemoryIdempotencyCache
from infrastructure.notifications import ChannelRegistry
from infrastructure.persistence import Database
from infrastructure.queue import (
    BackoffPolicy,
    DeliveryWorkerPool,
    InMemoryDispatchQueue,
    JobOptions,
)
from modules.notifications import tables  # noqa: F401
from modules.notifications.delivery_log import DeliveryLogRepository
from modules.notifications.idempotency import IdempotencyGuard
from modules.notifications.recipients import DirectoryRecipientResolver
from modules.notifications.service import NotificationService
from modules.notifications.store import NotificationStore
from modules.notifications.templates import TemplateRepository
from modules.notifications.worker import DeliveryWorker
from tests.factories.notifications import FakeChannel, make_notification_request


@pytest.fixture
def settings(tmp_path):
    """Settings pointing at a temporary SQLite file with in-memory cache and queue."""
    return Settings(
        PREFIX="test-",
        database=DatabaseSettings(
            DATABASE_URL=f"sqlite:///{tmp_path / 'settings.db'}"
        ),
        idempotency=IdempotencySettings(IDEMPOTENCY_BACKEND="memory"),
        queue=QueueSettings(
            QUEUE_BACKEND="memory",
            QUEUE_MAX_ATTEMPTS=3,
            QUEUE_BACKOFF_BASE_SECONDS=0,
            QUEUE_BACKOFF_MAX_SECONDS=0,
        ),
        worker=WorkerSettings(
            WORKER_ENABLED=False,
            WORKER_CONCURRENCY=2,
            WORKER_SEND_TIMEOUT_SECONDS=1,
        ),
    )


@pytest.fixture
def database(tmp_path):
    """File-backed SQLite database with every table created."""
    db = Database(f"sqlite:///{tmp_path / 'notifications.db'}")
    db.create_all()
    yield db
    db.dispose()


@pytest.fixture
def store(database):
    return NotificationStore(database)


@pytest.fixture
def delivery_log(database):
    return DeliveryLogRepository(database)


@pytest.fixture
def templates(database):
    """Template repository seeded with the default templates."""
    repository = TemplateRepository(database)
    repository.seed_defaults()
    return repository


@pytest.fixture
def cache():
    return InMemoryIdempotencyCache(ttl_seconds=60)


@pytest.fixture
def guard(cache, store):
    return IdempotencyGuard(cache, store, ttl_seconds=60)


@pytest.fixture
def queue():
    return InMemoryDispatchQueue()


@pytest.fixture
def job_options():
    """Three attempts with no backoff delay, so retries are due immediately."""
    return JobOptions(
        max_attempts=3,
        backoff=BackoffPolicy(base_delay_seconds=0, max_delay_seconds=0),
    )


@pytest.fixture
def service(store, guard, templates, queue, delivery_log, job_options):
    return NotificationService(
        store=store,
        guard=guard,
        templates=templates,
        queue=queue,
        delivery_log=delivery_log,
        job_options=job_options,
    )


@pytest.fixture
def email_channel():
    return FakeChannel("email")


@pytest.fixture
def sms_channel():
    return FakeChannel("sms")


@pytest.fixture
def push_channel():
    return FakeChannel("push")


@pytest.fixture
def channels(email_channel, sms_channel, push_channel):
    return ChannelRegistry([email_channel, sms_channel, push_channel])


@pytest.fixture
def delivery_worker(store, delivery_log, templates, channels):
    worker = DeliveryWorker(
        store=store,
        delivery_log=delivery_log,
        templates=templates,
        channels=channels,
        recipients=DirectoryRecipientResolver(),
        send_timeout_seconds=1.0,
        max_concurrent_sends=2,
    )
    yield worker
    worker.shutdown(wait=False)


@pytest.fixture
def worker_pool(queue, delivery_worker):
    """Single-threaded pool, driven synchronously through run_once/drain."""
    return DeliveryWorkerPool(
        queue=queue,
        processor=delivery_worker,
        concurrency=1,
        poll_interval_seconds=0.01,
    )


@pytest.fixture
def notification_request_factory():
    return make_notification_request


@pytest.fixture
def pending_notification(store):
    """A PENDING welcome_email notification stored without going through the service."""

    def _create(user_id="12345", key="key-1", template_id="welcome_email", data=None):
        return store.create(
            user_id,
            "email",
            template_id,
            data or {"name": "John", "app_name": "Acme", "link": "https://acme.test"},
            key,
        )

    return _create
