"""Email channel implementation using the SendGrid v3 API."""

import re
from typing import Any, Dict, TYPE_CHECKING

import requests

from infrastructure.logging import get_module_logger
from infrastructure.notifications.channels.base import NotificationChannel
from infrastructure.notifications.models import ChannelResult, RenderedMessage
from infrastructure.operations import classify_http_response, classify_request_exception

if TYPE_CHECKING:
    from infrastructure.configuration import Settings

logger = get_module_logger()

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class EmailChannel(NotificationChannel):
    """Email notification channel backed by SendGrid.

    Sends plain text mail through `POST /v3/mail/send`. SendGrid answers
    202 Accepted and returns the message id in the X-Message-Id header.
    """

    def __init__(self, settings: "Settings", timeout_seconds: float = 10.0):
        """Initialize the SendGrid email channel.

        Args:
            settings: Settings instance with sendgrid configuration.
            timeout_seconds: HTTP timeout for each provider call.
        """
        super().__init__(timeout_seconds=timeout_seconds)
        self._api_key = settings.sendgrid.SENDGRID_API_KEY
        self._from_email = settings.sendgrid.SENDGRID_FROM_EMAIL
        self._api_url = settings.sendgrid.SENDGRID_API_URL.rstrip("/")
        logger.info(
            "initialized_email_channel",
            backend="sendgrid",
            configured=bool(self._api_key),
        )

    @property
    def name(self) -> str:
        return "email"

    def validate_recipient(self, recipient: str) -> bool:
        return bool(recipient) and EMAIL_PATTERN.match(recipient) is not None

    def _deliver(
        self, recipient: str, message: RenderedMessage, data: Dict[str, Any]
    ) -> ChannelResult:
        if not self._api_key:
            return ChannelResult.failed(
                channel=self.name,
                error="SendGrid API key is not configured",
                error_code="PROVIDER_NOT_CONFIGURED",
            )

        payload = {
            "personalizations": [{"to": [{"email": recipient}]}],
            "from": {"email": self._from_email},
            "subject": message.subject or "",
            "content": [{"type": "text/plain", "value": message.body}],
        }

        try:
            response = requests.post(
                f"{self._api_url}/v3/mail/send",
                json=payload,
                headers={"Authorization": f"Bearer {self._api_key}"},
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as e:
            logger.warning("email_send_request_failed", error=str(e))
            return ChannelResult.from_operation(
                self.name, classify_request_exception(e)
            )

        if response.status_code in (200, 202):
            message_id = response.headers.get("X-Message-Id")
            logger.info("email_sent", provider_message_id=message_id)
            return ChannelResult.delivered(
                channel=self.name,
                provider_message_id=message_id,
                raw_provider_response={
                    "status_code": response.status_code,
                    "message_id": message_id,
                },
            )

        result = classify_http_response(response, provider="sendgrid")
        logger.error(
            "email_failed",
            status_code=response.status_code,
            error_code=result.error_code,
        )
        return ChannelResult.from_operation(self.name, result)
