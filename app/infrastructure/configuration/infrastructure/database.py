"""Relational database settings."""

from pydantic import Field

from infrastructure.configuration.base import InfrastructureSettings


class DatabaseSettings(InfrastructureSettings):
    """Database connection and bootstrap configuration.

    Environment Variables:
        DATABASE_URL: SQLAlchemy URL (default: sqlite:///./notifications.db)
        DATABASE_POOL_SIZE: Connection pool size for server databases (default: 10)
        DATABASE_POOL_TIMEOUT_SECONDS: Seconds to wait for a pooled connection (default: 5)
        DATABASE_ECHO: Echo SQL statements (default: False)
        DATABASE_AUTO_CREATE: Create tables on startup (default: True)
        DATABASE_SEED_TEMPLATES: Insert the default templates on startup (default: True)

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()
        url = settings.database.url
        ```
    """

    url: str = Field(
        default="sqlite:///./notifications.db",
        alias="DATABASE_URL",
        description="SQLAlchemy database URL",
    )
    pool_size: int = Field(
        default=10,
        alias="DATABASE_POOL_SIZE",
        description="Connection pool size (ignored for sqlite)",
    )
    pool_timeout_seconds: int = Field(
        default=5,
        alias="DATABASE_POOL_TIMEOUT_SECONDS",
        description="Seconds to wait for a free pooled connection",
    )
    echo: bool = Field(default=False, alias="DATABASE_ECHO")
    auto_create: bool = Field(
        default=True,
        alias="DATABASE_AUTO_CREATE",
        description="Create missing tables at startup",
    )
    seed_templates: bool = Field(
        default=True,
        alias="DATABASE_SEED_TEMPLATES",
        description="Insert default templates at startup when missing",
    )
