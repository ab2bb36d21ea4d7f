"""Infrastructure settings __init__ - exports all infrastructure settings."""

from infrastructure.configuration.infrastructure.database import DatabaseSettings
from infrastructure.configuration.infrastructure.idempotency import IdempotencySettings
from infrastructure.configuration.infrastructure.queue import QueueSettings
from infrastructure.configuration.infrastructure.server import ServerSettings
from infrastructure.configuration.infrastructure.worker import WorkerSettings

__all__ = [
    "DatabaseSettings",
    "IdempotencySettings",
    "QueueSettings",
    "ServerSettings",
    "WorkerSettings",
]
