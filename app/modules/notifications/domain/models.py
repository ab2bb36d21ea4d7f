"""Domain models for notifications.

Lightweight dataclasses used between the stores, the service and the worker.
API contracts live in `modules.notifications.schemas`.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional

from infrastructure.queue import utcnow


class NotificationStatus(str, Enum):
    PENDING = "pending"
    QUEUED = "queued"
    PROCESSING = "processing"
    SENT = "sent"
    FAILED = "failed"
    RETRYING = "retrying"


class DeliveryStatus(str, Enum):
    """Outcome of one delivery attempt."""

    SENT = "sent"
    FAILED = "failed"


# Legal status changes, keyed by source status.
# PENDING -> PROCESSING covers a worker that dequeues before the creator marks
# the notification QUEUED; PROCESSING -> PROCESSING covers redelivery after a
# crashed attempt or an expired lease; FAILED -> RETRYING is the manual retry.
ALLOWED_TRANSITIONS: Dict[NotificationStatus, FrozenSet[NotificationStatus]] = {
    NotificationStatus.PENDING: frozenset(
        {NotificationStatus.QUEUED, NotificationStatus.PROCESSING}
    ),
    NotificationStatus.QUEUED: frozenset({NotificationStatus.PROCESSING}),
    NotificationStatus.PROCESSING: frozenset(
        {
            NotificationStatus.PROCESSING,
            NotificationStatus.SENT,
            NotificationStatus.RETRYING,
            NotificationStatus.FAILED,
        }
    ),
    NotificationStatus.RETRYING: frozenset({NotificationStatus.PROCESSING}),
    NotificationStatus.FAILED: frozenset({NotificationStatus.RETRYING}),
    NotificationStatus.SENT: frozenset(),
}


def can_transition(current: NotificationStatus, target: NotificationStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def sources_for(target: NotificationStatus) -> List[NotificationStatus]:
    """Statuses from which `target` may be entered."""
    return [
        source for source, targets in ALLOWED_TRANSITIONS.items() if target in targets
    ]


@dataclass
class Notification:
    """A request to deliver one message to one user over one channel.

    Attributes:
        id: UUID string assigned on creation
        user_id: Recipient user
        channel: email, sms or push
        template_id: Template rendered for this notification
        data: Variables substituted into the template
        status: Current NotificationStatus
        idempotency_key: Hash identifying the logical request
        error_message: Last failure reason, if any
        retry_count: Attempts made after the first one
    """

    id: str
    user_id: str
    channel: str
    template_id: str
    data: Dict[str, Any]
    status: NotificationStatus
    idempotency_key: str
    error_message: Optional[str] = None
    retry_count: int = 0
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def is_terminal(self) -> bool:
        return self.status in (NotificationStatus.SENT, NotificationStatus.FAILED)

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        result["status"] = self.status.value
        return result


@dataclass
class DeliveryLog:
    """One append-only record of a delivery attempt."""

    id: str
    notification_id: str
    attempt: int
    status: DeliveryStatus
    error_message: Optional[str] = None
    provider_response: Optional[Dict[str, Any]] = None
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class Template:
    """Reusable message with `{{variable}}` placeholders.

    Attributes:
        id: Template name used by callers (e.g. welcome_email)
        name: Display name
        channel: Channel the template is written for
        subject: Subject line (email) or push title fallback
        body: Message body
        variables: Names that must be present in a notification's data
    """

    id: str
    name: str
    channel: str
    body: str
    subject: Optional[str] = None
    variables: List[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
