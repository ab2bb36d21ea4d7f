"""
Type aliases for FastAPI dependency injection.

Provides annotated type hints for common infrastructure dependencies.
"""

from typing import Annotated
from fastapi import Depends
from infrastructure.configuration import Settings
from infrastructure.persistence import Database
from infrastructure.queue import DispatchQueue
from infrastructure.services.providers import (
    get_settings,
    get_database,
    get_dispatch_queue,
    get_notification_service,
)
from modules.notifications.service import NotificationService

# Settings dependency
SettingsDep = Annotated[Settings, Depends(get_settings)]

# Database dependency (engine and sessions)
DatabaseDep = Annotated[Database, Depends(get_database)]

# Dispatch queue dependency
DispatchQueueDep = Annotated[DispatchQueue, Depends(get_dispatch_queue)]

# Notification service dependency - create, query and retry notifications
NotificationServiceDep = Annotated[
    NotificationService, Depends(get_notification_service)
]

__all__ = [
    "SettingsDep",
    "DatabaseDep",
    "DispatchQueueDep",
    "NotificationServiceDep",
]
