"""Domain layer - data models, status lifecycle and errors."""

from modules.notifications.domain.errors import (
    ChannelError,
    ConflictError,
    InfrastructureError,
    InvalidTransitionError,
    NotFoundError,
    NotificationError,
    ValidationError,
)
from modules.notifications.domain.models import (
    ALLOWED_TRANSITIONS,
    DeliveryLog,
    DeliveryStatus,
    Notification,
    NotificationStatus,
    Template,
    can_transition,
    sources_for,
)

__all__ = [
    "ALLOWED_TRANSITIONS",
    "ChannelError",
    "ConflictError",
    "DeliveryLog",
    "DeliveryStatus",
    "InfrastructureError",
    "InvalidTransitionError",
    "NotFoundError",
    "Notification",
    "NotificationError",
    "NotificationStatus",
    "Template",
    "ValidationError",
    "can_transition",
    "sources_for",
]
