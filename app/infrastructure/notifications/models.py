"""Channel-level notification models.

These models form the contract between the delivery worker and the channel
implementations. A channel receives a RenderedMessage and always answers with
a ChannelResult; provider failures never escape as exceptions.
"""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from infrastructure.operations import OperationResult


class ChannelName(str, Enum):
    """Supported delivery media."""

    EMAIL = "email"
    SMS = "sms"
    PUSH = "push"


class RenderedMessage(BaseModel):
    """Template output handed to a channel.

    Attributes:
        subject: Rendered subject line (email uses it, push uses it as a title fallback)
        body: Rendered message body
    """

    subject: Optional[str] = None
    body: str


class ChannelResult(BaseModel):
    """Structured outcome of a single provider call.

    Attributes:
        channel: Channel name that produced the result
        success: True when the provider accepted the message
        provider_message_id: Identifier assigned by the provider
        error: Human-readable failure reason
        error_code: Machine error code (INVALID_RECIPIENT, TIMEOUT, HTTP_400, ...)
        retryable: Whether the failure was classified as transient
        raw_provider_response: Raw provider payload kept for diagnostics
    """

    channel: str
    success: bool
    provider_message_id: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    retryable: bool = False
    raw_provider_response: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def delivered(
        cls,
        channel: str,
        provider_message_id: Optional[str] = None,
        raw_provider_response: Optional[Dict[str, Any]] = None,
    ) -> "ChannelResult":
        return cls(
            channel=channel,
            success=True,
            provider_message_id=provider_message_id,
            raw_provider_response=raw_provider_response or {},
        )

    @classmethod
    def failed(
        cls,
        channel: str,
        error: str,
        error_code: str,
        retryable: bool = False,
        raw_provider_response: Optional[Dict[str, Any]] = None,
    ) -> "ChannelResult":
        return cls(
            channel=channel,
            success=False,
            error=error,
            error_code=error_code,
            retryable=retryable,
            raw_provider_response=raw_provider_response or {},
        )

    @classmethod
    def from_operation(cls, channel: str, result: OperationResult) -> "ChannelResult":
        """Convert a classified OperationResult failure into a ChannelResult."""
        raw = result.data if isinstance(result.data, dict) else {}
        return cls.failed(
            channel=channel,
            error=result.message,
            error_code=result.error_code or result.status.value.upper(),
            retryable=result.is_retryable,
            raw_provider_response=raw,
        )

    def diagnostics(self) -> Dict[str, Any]:
        """Snapshot stored as the delivery log's provider_response."""
        return self.model_dump()
