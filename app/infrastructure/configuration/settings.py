"""Notification service configuration settings - main aggregator."""

from pydantic_settings import BaseSettings, SettingsConfigDict

# Integration settings
from infrastructure.configuration.integrations import (
    FcmSettings,
    SendGridSettings,
    TwilioSettings,
)

# Infrastructure settings
from infrastructure.configuration.infrastructure import (
    DatabaseSettings,
    IdempotencySettings,
    QueueSettings,
    ServerSettings,
    WorkerSettings,
)


class Settings(BaseSettings):
    """Notification service configuration settings - main aggregator.

    Aggregates all domain-specific settings into a single configuration object.
    Settings are organized by concern:

    - **Integrations**: Delivery provider configurations (SendGrid, Twilio, FCM)
    - **Infrastructure**: Core system configurations (database, idempotency,
      queue, worker, server)

    Environment Variables:
        PREFIX: Environment prefix for non-production deployments
        LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
        GIT_SHA: Git commit SHA for deployment tracking

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()

        if settings.queue.backend == "database":
            # Jobs survive restarts...

        max_attempts = settings.queue.max_attempts
        ```
    """

    # Application-level settings
    PREFIX: str = ""
    LOG_LEVEL: str = "INFO"
    GIT_SHA: str = "Unknown"

    # Integration settings
    sendgrid: SendGridSettings
    twilio: TwilioSettings
    fcm: FcmSettings

    # Infrastructure settings
    server: ServerSettings
    database: DatabaseSettings
    idempotency: IdempotencySettings
    queue: QueueSettings
    worker: WorkerSettings

    @property
    def is_production(self) -> bool:
        """Check if the application is running in production.

        Returns:
            True if PREFIX is empty (production), False otherwise.
        """
        return not bool(self.PREFIX)

    def __init__(self, **kwargs):
        """Initialize Settings with automatic subsettings instantiation.

        Args:
            **kwargs: Optional overrides for specific settings sections.
        """
        settings_map = {
            # Integrations
            "sendgrid": SendGridSettings,
            "twilio": TwilioSettings,
            "fcm": FcmSettings,
            # Infrastructure
            "server": ServerSettings,
            "database": DatabaseSettings,
            "idempotency": IdempotencySettings,
            "queue": QueueSettings,
            "worker": WorkerSettings,
        }

        for setting_name, setting_class in settings_map.items():
            if setting_name not in kwargs:
                kwargs[setting_name] = setting_class()

        super().__init__(**kwargs)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )


# Create the singleton settings instance
settings = Settings()
