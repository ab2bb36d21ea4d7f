"""Infrastructure configuration module - public API.

This module provides centralized configuration management for the
notification service using Pydantic BaseSettings with domain-based
organization.

Exports:
    settings: Singleton Settings instance (main configuration object)
    Settings: Main settings class (for testing/overrides)

Example:
    ```python
    from infrastructure.services import get_settings

    settings = get_settings()

    database_url = settings.database.url
    ttl = settings.idempotency.IDEMPOTENCY_TTL_SECONDS
    concurrency = settings.worker.concurrency
    ```
"""

from infrastructure.configuration.settings import Settings, settings

__all__ = ["Settings", "settings"]
