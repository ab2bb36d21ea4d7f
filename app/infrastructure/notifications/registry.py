"""Channel registry.

An explicit mapping from channel name to implementation, constructed once at
startup and passed to the delivery worker. New media are added by registering
another NotificationChannel; the worker never changes.
"""

from typing import Dict, Iterable, List, TYPE_CHECKING

from infrastructure.logging import get_module_logger
from infrastructure.notifications.channels import (
    EmailChannel,
    NotificationChannel,
    PushChannel,
    SMSChannel,
)

if TYPE_CHECKING:
    from infrastructure.configuration import Settings

logger = get_module_logger()


class UnknownChannelError(LookupError):
    """Raised when no channel is registered under the requested name."""


class ChannelRegistry:
    """Name to channel mapping used by the delivery worker."""

    def __init__(self, channels: Iterable[NotificationChannel] = ()):
        self._channels: Dict[str, NotificationChannel] = {}
        for channel in channels:
            self.register(channel)

    def register(self, channel: NotificationChannel) -> None:
        """Register (or replace) a channel under its own name."""
        self._channels[channel.name] = channel
        logger.debug("channel_registered", channel=channel.name)

    def get(self, name: str) -> NotificationChannel:
        """Return the channel registered under `name`.

        Raises:
            UnknownChannelError: If nothing is registered under that name.
        """
        try:
            return self._channels[name]
        except KeyError:
            raise UnknownChannelError(f"Channel '{name}' is not registered") from None

    def names(self) -> List[str]:
        return sorted(self._channels)

    def __contains__(self, name: object) -> bool:
        return name in self._channels


def build_channel_registry(settings: "Settings") -> ChannelRegistry:
    """Create the registry with the email, SMS and push channels.

    Args:
        settings: Application settings (provider credentials and send timeout).

    Returns:
        ChannelRegistry with every supported channel registered.
    """
    timeout = settings.worker.send_timeout_seconds
    registry = ChannelRegistry(
        [
            EmailChannel(settings, timeout_seconds=timeout),
            SMSChannel(settings, timeout_seconds=timeout),
            PushChannel(settings, timeout_seconds=timeout),
        ]
    )
    logger.info("channel_registry_built", channels=registry.names())
    return registry
