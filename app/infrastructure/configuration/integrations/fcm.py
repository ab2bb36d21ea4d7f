"""Firebase Cloud Messaging integration settings."""

from pydantic import Field

from infrastructure.configuration.base import IntegrationSettings


class FcmSettings(IntegrationSettings):
    """FCM configuration used by the push channel.

    Environment Variables:
        FCM_SERVER_KEY: FCM server key
        FCM_API_URL: FCM send endpoint
    """

    FCM_SERVER_KEY: str | None = Field(default=None, alias="FCM_SERVER_KEY")
    FCM_API_URL: str = Field(
        default="https://fcm.googleapis.com/fcm/send", alias="FCM_API_URL"
    )
