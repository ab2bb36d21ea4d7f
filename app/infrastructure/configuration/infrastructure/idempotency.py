"""Idempotency infrastructure settings."""

from pydantic import Field

from infrastructure.configuration.base import InfrastructureSettings


class IdempotencySettings(InfrastructureSettings):
    """Idempotency cache configuration for preventing duplicate notifications.

    Environment Variables:
        IDEMPOTENCY_BACKEND: Cache backend - 'memory' or 'redis' (default: memory)
        IDEMPOTENCY_TTL_SECONDS: Time-to-live for cache entries (default: 86400s = 24h)
        REDIS_URL: Redis connection URL (redis backend only)
        REDIS_SOCKET_TIMEOUT_SECONDS: Socket timeout for Redis calls (default: 2)
        REDIS_MAX_CONNECTIONS: Connection pool size (default: 10)

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()
        ttl = settings.idempotency.IDEMPOTENCY_TTL_SECONDS
        ```
    """

    IDEMPOTENCY_BACKEND: str = Field(default="memory", alias="IDEMPOTENCY_BACKEND")
    IDEMPOTENCY_TTL_SECONDS: int = Field(default=86400, alias="IDEMPOTENCY_TTL_SECONDS")
    REDIS_URL: str = Field(default="redis://localhost:6379/0", alias="REDIS_URL")
    REDIS_SOCKET_TIMEOUT_SECONDS: float = Field(
        default=2.0, alias="REDIS_SOCKET_TIMEOUT_SECONDS"
    )
    REDIS_MAX_CONNECTIONS: int = Field(default=10, alias="REDIS_MAX_CONNECTIONS")
