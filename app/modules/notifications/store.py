"""Notification store and status lifecycle.

The store is the single source of truth for a notification. Every status
change is one conditional UPDATE guarded by the allowed source statuses, so
concurrent writers can never move a notification along an illegal edge.
"""

import uuid
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional

from sqlalchemy import case, delete, func, select, update

from infrastructure.logging import get_module_logger
from infrastructure.persistence import Database
from infrastructure.queue import as_utc, utcnow
from modules.notifications.db import store_session
from modules.notifications.domain.errors import (
    InvalidTransitionError,
    NotFoundError,
)
from modules.notifications.domain.models import (
    Notification,
    NotificationStatus,
    sources_for,
)
from modules.notifications.tables import NotificationRecord

logger = get_module_logger()

COMPONENT = "notification_store"


def _to_notification(record: NotificationRecord) -> Notification:
    return Notification(
        id=record.id,
        user_id=record.user_id,
        channel=record.channel,
        template_id=record.template_id,
        data=dict(record.data or {}),
        status=NotificationStatus(record.status),
        idempotency_key=record.idempotency_key,
        error_message=record.error_message,
        retry_count=record.retry_count,
        created_at=as_utc(record.created_at),
        updated_at=as_utc(record.updated_at),
    )


class NotificationStore:
    """Persistence and state machine for notifications.

    Args:
        database: Database holding the notifications table
        clock: Source of `updated_at` timestamps
    """

    def __init__(self, database: Database, clock: Callable[[], datetime] = utcnow):
        self.database = database
        self._clock = clock

    def create(
        self,
        user_id: str,
        channel: str,
        template_id: str,
        data: Dict[str, Any],
        idempotency_key: str,
    ) -> Notification:
        """Persist a new PENDING notification.

        Raises:
            ConflictError: If the idempotency key is already taken
        """
        now = self._clock()
        record = NotificationRecord(
            id=str(uuid.uuid4()),
            user_id=user_id,
            channel=channel,
            template_id=template_id,
            data=data,
            status=NotificationStatus.PENDING.value,
            idempotency_key=idempotency_key,
            retry_count=0,
            created_at=now,
            updated_at=now,
        )
        with store_session(self.database, COMPONENT, "create") as session:
            session.add(record)
            session.flush()
            notification = _to_notification(record)

        logger.info(
            "notification_created",
            notification_id=notification.id,
            user_id=user_id,
            channel=channel,
            template_id=template_id,
        )
        return notification

    def get(self, notification_id: str) -> Notification:
        with store_session(self.database, COMPONENT, "get") as session:
            record = session.get(NotificationRecord, notification_id)
            if record is None:
                raise NotFoundError(f"Notification {notification_id} not found")
            return _to_notification(record)

    def find_by_idempotency_key(self, idempotency_key: str) -> Optional[Notification]:
        with store_session(self.database, COMPONENT, "find_by_idempotency_key") as session:
            record = session.execute(
                select(NotificationRecord).where(
                    NotificationRecord.idempotency_key == idempotency_key
                )
            ).scalar_one_or_none()
            return _to_notification(record) if record else None

    def find_by_user(
        self, user_id: str, limit: int = 50, offset: int = 0
    ) -> List[Notification]:
        """Return a user's notifications, newest first."""
        with store_session(self.database, COMPONENT, "find_by_user") as session:
            records = (
                session.execute(
                    select(NotificationRecord)
                    .where(NotificationRecord.user_id == user_id)
                    .order_by(
                        NotificationRecord.created_at.desc(),
                        NotificationRecord.id.desc(),
                    )
                    .limit(limit)
                    .offset(offset)
                )
                .scalars()
                .all()
            )
            return [_to_notification(record) for record in records]

    def count_by_user(self, user_id: str) -> int:
        with store_session(self.database, COMPONENT, "count_by_user") as session:
            return session.execute(
                select(func.count())
                .select_from(NotificationRecord)
                .where(NotificationRecord.user_id == user_id)
            ).scalar_one()

    def count_by_status(self) -> Dict[str, int]:
        counts = {status.value: 0 for status in NotificationStatus}
        with store_session(self.database, COMPONENT, "count_by_status") as session:
            rows = session.execute(
                select(NotificationRecord.status, func.count()).group_by(
                    NotificationRecord.status
                )
            ).all()
        for status, count in rows:
            counts[status] = count
        return counts

    def mark_queued(self, notification_id: str) -> bool:
        """Move PENDING to QUEUED.

        Returns:
            False when a worker already moved the notification past PENDING.
        """
        now = self._clock()
        with store_session(self.database, COMPONENT, "mark_queued") as session:
            result = session.execute(
                update(NotificationRecord)
                .where(
                    NotificationRecord.id == notification_id,
                    NotificationRecord.status == NotificationStatus.PENDING.value,
                )
                .values(status=NotificationStatus.QUEUED.value, updated_at=now)
            )
            if result.rowcount == 1:
                logger.debug("notification_queued", notification_id=notification_id)
                return True

            status = session.execute(
                select(NotificationRecord.status).where(
                    NotificationRecord.id == notification_id
                )
            ).scalar_one_or_none()
            if status is None:
                raise NotFoundError(f"Notification {notification_id} not found")

        logger.debug(
            "notification_already_advanced",
            notification_id=notification_id,
            status=status,
        )
        return False

    def mark_processing(self, notification_id: str) -> Notification:
        """Move to PROCESSING, counting the attempt when it is not the first.

        `retry_count` grows by one when the previous status was RETRYING or
        PROCESSING (redelivery), in the same statement as the status change.
        """
        retry_count = case(
            (
                NotificationRecord.status.in_(
                    [
                        NotificationStatus.RETRYING.value,
                        NotificationStatus.PROCESSING.value,
                    ]
                ),
                NotificationRecord.retry_count + 1,
            ),
            else_=NotificationRecord.retry_count,
        )
        return self._transition(
            notification_id,
            NotificationStatus.PROCESSING,
            sources_for(NotificationStatus.PROCESSING),
            retry_count=retry_count,
        )

    def mark_sent(self, notification_id: str) -> Notification:
        return self._transition(
            notification_id,
            NotificationStatus.SENT,
            [NotificationStatus.PROCESSING],
            error_message=None,
        )

    def mark_retrying(self, notification_id: str, error: str) -> Notification:
        return self._transition(
            notification_id,
            NotificationStatus.RETRYING,
            [NotificationStatus.PROCESSING],
            error_message=error,
        )

    def mark_failed(self, notification_id: str, error: str) -> Notification:
        return self._transition(
            notification_id,
            NotificationStatus.FAILED,
            [NotificationStatus.PROCESSING],
            error_message=error,
        )

    def retry_failed(self, notification_id: str) -> Notification:
        """Manual retry: FAILED to RETRYING.

        Raises:
            InvalidTransitionError: If the notification is not FAILED
            NotFoundError: If the notification does not exist
        """
        return self._transition(
            notification_id,
            NotificationStatus.RETRYING,
            [NotificationStatus.FAILED],
            invalid_message="Cannot retry notification with status {status}",
        )

    def increment_retry_count(self, notification_id: str) -> Notification:
        now = self._clock()
        with store_session(self.database, COMPONENT, "increment_retry_count") as session:
            result = session.execute(
                update(NotificationRecord)
                .where(NotificationRecord.id == notification_id)
                .values(
                    retry_count=NotificationRecord.retry_count + 1, updated_at=now
                )
            )
            if result.rowcount != 1:
                raise NotFoundError(f"Notification {notification_id} not found")
            record = session.get(
                NotificationRecord, notification_id, populate_existing=True
            )
            return _to_notification(record)

    def delete(self, notification_id: str) -> None:
        """Remove a notification and, through the foreign key, its delivery logs."""
        with store_session(self.database, COMPONENT, "delete") as session:
            result = session.execute(
                delete(NotificationRecord).where(NotificationRecord.id == notification_id)
            )
            if result.rowcount != 1:
                raise NotFoundError(f"Notification {notification_id} not found")
        logger.warning("notification_deleted", notification_id=notification_id)

    def _transition(
        self,
        notification_id: str,
        target: NotificationStatus,
        sources: Iterable[NotificationStatus],
        invalid_message: Optional[str] = None,
        **values: Any,
    ) -> Notification:
        now = self._clock()
        with store_session(self.database, COMPONENT, f"mark_{target.value}") as session:
            result = session.execute(
                update(NotificationRecord)
                .where(
                    NotificationRecord.id == notification_id,
                    NotificationRecord.status.in_([source.value for source in sources]),
                )
                .values(status=target.value, updated_at=now, **values)
                .execution_options(synchronize_session=False)
            )
            record = session.get(
                NotificationRecord, notification_id, populate_existing=True
            )
            if record is None:
                raise NotFoundError(f"Notification {notification_id} not found")

            if result.rowcount != 1:
                template = invalid_message or (
                    "Cannot move notification from {status} to {target}"
                )
                message = template.format(status=record.status, target=target.value)
                logger.warning(
                    "notification_transition_rejected",
                    notification_id=notification_id,
                    current_status=record.status,
                    target_status=target.value,
                )
                raise InvalidTransitionError(
                    message, current_status=record.status, target_status=target.value
                )

            notification = _to_notification(record)

        logger.info(
            "notification_status_changed",
            notification_id=notification_id,
            status=target.value,
            retry_count=notification.retry_count,
        )
        return notification
