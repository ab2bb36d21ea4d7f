"""
Factory functions for dependency injection.

Provides application-scoped singleton providers for the database, caches,
queue, channels and notification services.
"""

from functools import lru_cache

from infrastructure.configuration import Settings
from infrastructure.idempotency import IdempotencyCache, create_idempotency_cache
from infrastructure.notifications import ChannelRegistry, build_channel_registry
from infrastructure.persistence import Database
from infrastructure.queue import (
    DeliveryWorkerPool,
    DispatchQueue,
    JobOptions,
    RateLimiter,
    create_dispatch_queue,
)
from modules.notifications import tables  # noqa: F401  registers the ORM tables
from modules.notifications.delivery_log import DeliveryLogRepository
from modules.notifications.idempotency import IdempotencyGuard
from modules.notifications.recipients import DirectoryRecipientResolver
from modules.notifications.service import NotificationService
from modules.notifications.store import NotificationStore
from modules.notifications.templates import TemplateRepository
from modules.notifications.worker import DeliveryWorker


@lru_cache
def get_settings() -> Settings:
    """
    Get application-scoped settings singleton.

    This is the single source of truth for settings across the entire application.
    The @lru_cache decorator ensures only ONE instance is created per process.

    Application code should use the DI type alias for testability:
        from infrastructure.services import SettingsDep
        @router.get("/config")
        def get_config(settings: SettingsDep):
            return settings.queue.max_attempts

    Returns:
        Settings: Cached settings instance loaded from environment.
    """
    return Settings()


@lru_cache
def get_database() -> Database:
    """
    Get application-scoped database singleton (engine and session factory).

    Returns:
        Database: Configured from settings.database.
    """
    return Database.from_settings(get_settings())


@lru_cache
def get_idempotency_cache() -> IdempotencyCache:
    return create_idempotency_cache(get_settings())


@lru_cache
def get_dispatch_queue() -> DispatchQueue:
    """
    Get application-scoped dispatch queue singleton.

    The backend follows settings.queue.backend; the database backend shares
    the application database.
    """
    return create_dispatch_queue(get_settings(), database=get_database())


@lru_cache
def get_channel_registry() -> ChannelRegistry:
    return build_channel_registry(get_settings())


@lru_cache
def get_notification_store() -> NotificationStore:
    return NotificationStore(get_database())


@lru_cache
def get_delivery_log() -> DeliveryLogRepository:
    return DeliveryLogRepository(get_database())


@lru_cache
def get_template_repository() -> TemplateRepository:
    return TemplateRepository(get_database())


@lru_cache
def get_idempotency_guard() -> IdempotencyGuard:
    settings = get_settings()
    return IdempotencyGuard(
        cache=get_idempotency_cache(),
        store=get_notification_store(),
        ttl_seconds=settings.idempotency.IDEMPOTENCY_TTL_SECONDS,
    )


@lru_cache
def get_notification_service() -> NotificationService:
    """
    Get application-scoped notification service singleton.

    Returns:
        NotificationService: Wired with the store, guard, templates, queue
        and delivery log, enqueueing with the retry policy from settings.queue.

    Usage:
        @router.post("/notifications")
        def create(request: CreateNotificationRequest, service: NotificationServiceDep):
            notification, created = service.create(request)
    """
    return NotificationService(
        store=get_notification_store(),
        guard=get_idempotency_guard(),
        templates=get_template_repository(),
        queue=get_dispatch_queue(),
        delivery_log=get_delivery_log(),
        job_options=JobOptions.from_settings(get_settings()),
    )


@lru_cache
def get_delivery_worker() -> DeliveryWorker:
    settings = get_settings()
    return DeliveryWorker(
        store=get_notification_store(),
        delivery_log=get_delivery_log(),
        templates=get_template_repository(),
        channels=get_channel_registry(),
        recipients=DirectoryRecipientResolver(),
        send_timeout_seconds=settings.worker.send_timeout_seconds,
        # Headroom for sends still running after their timeout
        max_concurrent_sends=settings.worker.concurrency * 2,
    )


@lru_cache
def get_worker_pool() -> DeliveryWorkerPool:
    """
    Get application-scoped worker pool singleton.

    The pool drains the dispatch queue with settings.worker.concurrency
    threads, sharing one rate limiter across them.
    """
    settings = get_settings()
    return DeliveryWorkerPool(
        queue=get_dispatch_queue(),
        processor=get_delivery_worker(),
        concurrency=settings.worker.concurrency,
        rate_limiter=RateLimiter(
            settings.worker.rate_limit_max, settings.worker.rate_limit_period_seconds
        ),
        lease_seconds=settings.queue.claim_lease_seconds,
        poll_interval_seconds=settings.worker.poll_interval_seconds,
        completed_retention_seconds=settings.queue.completed_retention_seconds,
        failed_retention_seconds=settings.queue.failed_retention_seconds,
        clean_interval_seconds=settings.queue.clean_interval_seconds,
    )


def reset_providers() -> None:
    """Clear every cached provider (tests and worker restarts)."""
    for provider in (
        get_worker_pool,
        get_delivery_worker,
        get_notification_service,
        get_idempotency_guard,
        get_template_repository,
        get_delivery_log,
        get_notification_store,
        get_channel_registry,
        get_dispatch_queue,
        get_idempotency_cache,
        get_database,
        get_settings,
    ):
        provider.cache_clear()
