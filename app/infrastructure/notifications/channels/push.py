"""Push channel implementation using Firebase Cloud Messaging."""

import json
from typing import Any, Dict, Optional, Tuple, TYPE_CHECKING

import requests

from infrastructure.logging import get_module_logger
from infrastructure.notifications.channels.base import NotificationChannel
from infrastructure.notifications.models import ChannelResult, RenderedMessage
from infrastructure.operations import classify_http_response, classify_request_exception

if TYPE_CHECKING:
    from infrastructure.configuration import Settings

logger = get_module_logger()

DEFAULT_TITLE = "Notification"

# FCM per-message errors that will not go away on retry
PERMANENT_FCM_ERRORS = frozenset(
    {
        "InvalidRegistration",
        "NotRegistered",
        "MismatchSenderId",
        "MessageTooBig",
        "InvalidDataKey",
        "InvalidPackageName",
    }
)


def split_title_and_body(
    message: RenderedMessage,
) -> Tuple[str, str]:
    """Derive the push title and body from a rendered template.

    A body that parses as a JSON object with `title` and/or `body` keys is used
    directly; otherwise the subject (or a default) becomes the title and the
    whole body is sent as-is.
    """
    try:
        parsed = json.loads(message.body)
    except (TypeError, ValueError):
        parsed = None

    if isinstance(parsed, dict):
        return (
            str(parsed.get("title") or message.subject or DEFAULT_TITLE),
            str(parsed.get("body") or ""),
        )
    return message.subject or DEFAULT_TITLE, message.body


class PushChannel(NotificationChannel):
    """Push notification channel backed by the FCM HTTP API."""

    def __init__(self, settings: "Settings", timeout_seconds: float = 10.0):
        super().__init__(timeout_seconds=timeout_seconds)
        self._server_key = settings.fcm.FCM_SERVER_KEY
        self._api_url = settings.fcm.FCM_API_URL
        logger.info(
            "initialized_push_channel",
            backend="fcm",
            configured=bool(self._server_key),
        )

    @property
    def name(self) -> str:
        return "push"

    def validate_recipient(self, recipient: str) -> bool:
        return bool(recipient) and 20 < len(recipient) < 300

    def _deliver(
        self, recipient: str, message: RenderedMessage, data: Dict[str, Any]
    ) -> ChannelResult:
        if not self._server_key:
            return ChannelResult.failed(
                channel=self.name,
                error="FCM server key is not configured",
                error_code="PROVIDER_NOT_CONFIGURED",
            )

        title, body = split_title_and_body(message)
        payload = {
            "to": recipient,
            "notification": {"title": title, "body": body},
            # FCM data values must be strings
            "data": {key: str(value) for key, value in data.items()},
        }

        try:
            response = requests.post(
                self._api_url,
                json=payload,
                headers={"Authorization": f"key={self._server_key}"},
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as e:
            logger.warning("push_send_request_failed", error=str(e))
            return ChannelResult.from_operation(
                self.name, classify_request_exception(e)
            )

        if response.status_code != 200:
            result = classify_http_response(response, provider="fcm")
            logger.error(
                "push_failed",
                status_code=response.status_code,
                error_code=result.error_code,
            )
            return ChannelResult.from_operation(self.name, result)

        response_data = response.json()
        message_result = self._first_result(response_data)
        if response_data.get("failure") or (message_result or {}).get("error"):
            error = (message_result or {}).get("error", "Unknown")
            logger.error("push_rejected", error_code=error)
            return ChannelResult.failed(
                channel=self.name,
                error=f"FCM rejected message: {error}",
                error_code=f"FCM_{error.upper()}",
                retryable=error not in PERMANENT_FCM_ERRORS,
                raw_provider_response=response_data,
            )

        message_id = (message_result or {}).get("message_id")
        logger.info("push_sent", provider_message_id=message_id)
        return ChannelResult.delivered(
            channel=self.name,
            provider_message_id=message_id,
            raw_provider_response=response_data,
        )

    @staticmethod
    def _first_result(response_data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        results = response_data.get("results") or []
        return results[0] if results else None
