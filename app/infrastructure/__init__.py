"""Infrastructure modules for the notification service.

Centralized infrastructure components:
- configuration: Settings management (settings, QueueSettings, ...)
- logging: Structured logging (get_module_logger, logger)
- operations: Operation results and error classification
- persistence: SQLAlchemy engine and sessions
- idempotency: Idempotency cache (memory, Redis)
- queue: Dispatch queue, worker pool and rate limiter
- notifications: Delivery channels and channel registry
- services: Dependency injection services (SettingsDep, get_settings, ...)
"""

# Configuration
from infrastructure.configuration import settings

# Observability
from infrastructure.logging.setup import get_module_logger, logger

# Operations
from infrastructure.operations.result import OperationResult
from infrastructure.operations.status import OperationStatus

__all__ = [
    # Configuration
    "settings",
    # Observability
    "get_module_logger",
    "logger",
    # Operations
    "OperationResult",
    "OperationStatus",
]
