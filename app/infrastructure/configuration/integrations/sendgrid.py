"""SendGrid email integration settings."""

from pydantic import Field

from infrastructure.configuration.base import IntegrationSettings


class SendGridSettings(IntegrationSettings):
    """SendGrid API configuration used by the email channel.

    Environment Variables:
        SENDGRID_API_KEY: SendGrid API key
        SENDGRID_FROM_EMAIL: Sender address for all outgoing email
        SENDGRID_API_URL: SendGrid API base URL

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()
        sender = settings.sendgrid.SENDGRID_FROM_EMAIL
        ```
    """

    SENDGRID_API_KEY: str | None = Field(default=None, alias="SENDGRID_API_KEY")
    SENDGRID_FROM_EMAIL: str = Field(
        default="noreply@example.com", alias="SENDGRID_FROM_EMAIL"
    )
    SENDGRID_API_URL: str = Field(
        default="https://api.sendgrid.com", alias="SENDGRID_API_URL"
    )
