"""Notification delivery channels.

Provides the channel contract (NotificationChannel, ChannelResult), the email,
SMS and push implementations, and the ChannelRegistry the delivery worker
uses to look them up.

Usage:
    from infrastructure.notifications import build_channel_registry

    registry = build_channel_registry(settings)
    result = registry.get("email").send(
        "user@example.com",
        RenderedMessage(subject="Hi", body="Hello"),
        data={},
    )
"""

from infrastructure.notifications.channels import (
    EmailChannel,
    NotificationChannel,
    PushChannel,
    SMSChannel,
)
from infrastructure.notifications.models import (
    ChannelName,
    ChannelResult,
    RenderedMessage,
)
from infrastructure.notifications.registry import (
    ChannelRegistry,
    UnknownChannelError,
    build_channel_registry,
)

__all__ = [
    "ChannelName",
    "ChannelRegistry",
    "ChannelResult",
    "EmailChannel",
    "NotificationChannel",
    "PushChannel",
    "RenderedMessage",
    "SMSChannel",
    "UnknownChannelError",
    "build_channel_registry",
]
