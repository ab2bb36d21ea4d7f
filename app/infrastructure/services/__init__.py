"""
Dependency injection services.

Provides type aliases and provider functions for FastAPI dependency injection.
"""

from infrastructure.services.dependencies import (
    SettingsDep,
    DatabaseDep,
    DispatchQueueDep,
    NotificationServiceDep,
)
from infrastructure.services.providers import (
    get_settings,
    get_database,
    get_idempotency_cache,
    get_dispatch_queue,
    get_channel_registry,
    get_notification_store,
    get_delivery_log,
    get_template_repository,
    get_idempotency_guard,
    get_notification_service,
    get_delivery_worker,
    get_worker_pool,
    reset_providers,
)

__all__ = [
    "SettingsDep",
    "DatabaseDep",
    "DispatchQueueDep",
    "NotificationServiceDep",
    "get_settings",
    "get_database",
    "get_idempotency_cache",
    "get_dispatch_queue",
    "get_channel_registry",
    "get_notification_store",
    "get_delivery_log",
    "get_template_repository",
    "get_idempotency_guard",
    "get_notification_service",
    "get_delivery_worker",
    "get_worker_pool",
    "reset_providers",
]
