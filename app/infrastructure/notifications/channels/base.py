"""Notification channel abstract base class.

All channel implementations (email, SMS, push) implement this interface. The
capability set is deliberately small: a name, a recipient format check and a
send operation that never raises.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict

from infrastructure.logging import get_module_logger
from infrastructure.notifications.models import ChannelResult, RenderedMessage

logger = get_module_logger()


class NotificationChannel(ABC):
    """Abstract base class for notification channels.

    Subclasses implement `validate_recipient` and `_deliver`. The public
    `send` wraps them so that:

    - an invalid recipient becomes an ordinary failed ChannelResult
      (error_code INVALID_RECIPIENT) and flows through the normal retry and
      delivery log path;
    - any exception escaping `_deliver` is captured into a failed result.

    Example Implementation:
        class EmailChannel(NotificationChannel):

            @property
            def name(self) -> str:
                return "email"

            def validate_recipient(self, recipient: str) -> bool:
                return EMAIL_PATTERN.match(recipient) is not None

            def _deliver(self, recipient, message, data) -> ChannelResult:
                ...
    """

    def __init__(self, timeout_seconds: float = 10.0):
        self.timeout_seconds = timeout_seconds

    @property
    @abstractmethod
    def name(self) -> str:
        """Channel identifier (email, sms, push)."""

    @abstractmethod
    def validate_recipient(self, recipient: str) -> bool:
        """Check the recipient address format before sending.

        Args:
            recipient: Channel-specific address (email, E.164 number, device token)

        Returns:
            True if the address looks deliverable
        """

    @abstractmethod
    def _deliver(
        self, recipient: str, message: RenderedMessage, data: Dict[str, Any]
    ) -> ChannelResult:
        """Call the provider. May raise; `send` converts exceptions."""

    def send(
        self, recipient: str, message: RenderedMessage, data: Dict[str, Any]
    ) -> ChannelResult:
        """Send a rendered message to one recipient.

        Args:
            recipient: Channel-specific address
            message: Rendered subject and body
            data: The notification's data payload

        Returns:
            ChannelResult describing the outcome. Never raises.
        """
        if not self.validate_recipient(recipient):
            logger.warning("channel_invalid_recipient", channel=self.name)
            return ChannelResult.failed(
                channel=self.name,
                error=f"Invalid recipient for {self.name} channel",
                error_code="INVALID_RECIPIENT",
                retryable=False,
            )

        try:
            return self._deliver(recipient, message, data)
        except Exception as e:  # pylint: disable=broad-except
            logger.error(
                "channel_send_error",
                channel=self.name,
                error=str(e),
                exc_info=True,
            )
            return ChannelResult.failed(
                channel=self.name,
                error=f"{self.name} send error: {e}",
                error_code="SEND_ERROR",
                retryable=True,
                raw_provider_response={"exception": type(e).__name__},
            )
