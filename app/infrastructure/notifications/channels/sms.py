"""SMS channel implementation using the Twilio Messages API."""

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

# E.164: leading +, no leading zero, 10 to 15 digits
PHONE_PATTERN = re.compile(r"^\+[1-9]\d{9,14}$")

SMS_MAX_LENGTH = 1600


class SMSChannel(NotificationChannel):
    """SMS notification channel backed by Twilio.

    Requires phone numbers in E.164 format (+15551234567).
    """

    def __init__(self, settings: "Settings", timeout_seconds: float = 10.0):
        """Initialize the Twilio SMS channel.

        Args:
            settings: Settings instance with twilio configuration.
            timeout_seconds: HTTP timeout for each provider call.
        """
        super().__init__(timeout_seconds=timeout_seconds)
        self._account_sid = settings.twilio.TWILIO_ACCOUNT_SID
        self._auth_token = settings.twilio.TWILIO_AUTH_TOKEN
        self._from_number = settings.twilio.TWILIO_FROM_NUMBER
        self._api_url = settings.twilio.TWILIO_API_URL.rstrip("/")
        logger.info(
            "initialized_sms_channel",
            backend="twilio",
            configured=self._is_configured(),
        )

    @property
    def name(self) -> str:
        return "sms"

    def validate_recipient(self, recipient: str) -> bool:
        return bool(recipient) and PHONE_PATTERN.match(recipient) is not None

    def _is_configured(self) -> bool:
        return bool(self._account_sid and self._auth_token and self._from_number)

    def _deliver(
        self, recipient: str, message: RenderedMessage, data: Dict[str, Any]
    ) -> ChannelResult:
        if not self._is_configured():
            return ChannelResult.failed(
                channel=self.name,
                error="Twilio credentials are not configured",
                error_code="PROVIDER_NOT_CONFIGURED",
            )

        body = message.body
        if len(body) > SMS_MAX_LENGTH:
            logger.warning("sms_message_truncated", original_length=len(body))
            body = body[: SMS_MAX_LENGTH - 3] + "..."

        url = f"{self._api_url}/2010-04-01/Accounts/{self._account_sid}/Messages.json"
        try:
            response = requests.post(
                url,
                data={"To": recipient, "From": self._from_number, "Body": body},
                auth=(self._account_sid, self._auth_token),
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as e:
            logger.warning("sms_send_request_failed", error=str(e))
            return ChannelResult.from_operation(
                self.name, classify_request_exception(e)
            )

        if response.status_code in (200, 201):
            response_data = response.json()
            logger.info("sms_sent", provider_message_id=response_data.get("sid"))
            return ChannelResult.delivered(
                channel=self.name,
                provider_message_id=response_data.get("sid"),
                raw_provider_response={
                    "status_code": response.status_code,
                    "sid": response_data.get("sid"),
                    "status": response_data.get("status"),
                },
            )

        result = classify_http_response(response, provider="twilio")
        logger.error(
            "sms_failed",
            status_code=response.status_code,
            error_code=result.error_code,
        )
        return ChannelResult.from_operation(self.name, result)
