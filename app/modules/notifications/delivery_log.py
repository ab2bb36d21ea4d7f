"""Append-only delivery attempt log.

Each attempt to deliver a notification leaves exactly one row. Attempt numbers
are assigned here as ``max(attempt) + 1`` so they stay gap-free across manual
retries and crashed attempts; the unique (notification_id, attempt) constraint
rejects a concurrent duplicate and the append is retried with the next number.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Union

from sqlalchemy import func, select

from infrastructure.logging import get_module_logger
from infrastructure.persistence import Database
from infrastructure.queue import as_utc, utcnow
from modules.notifications.db import store_session
from modules.notifications.domain.errors import ConflictError, NotFoundError
from modules.notifications.domain.models import DeliveryLog, DeliveryStatus
from modules.notifications.tables import DeliveryLogRecord, NotificationRecord

logger = get_module_logger()

COMPONENT = "delivery_log"
MAX_APPEND_ATTEMPTS = 3


def _to_log(record: DeliveryLogRecord) -> DeliveryLog:
    return DeliveryLog(
        id=record.id,
        notification_id=record.notification_id,
        attempt=record.attempt,
        status=DeliveryStatus(record.status),
        error_message=record.error_message,
        provider_response=record.provider_response,
        created_at=as_utc(record.created_at),
    )


def _normalize(value: datetime) -> datetime:
    # Stored timestamps are UTC; compare against UTC bounds
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class DeliveryLogRepository:
    """Writes and queries delivery attempts."""

    def __init__(self, database: Database, clock: Callable[[], datetime] = utcnow):
        self.database = database
        self._clock = clock

    def append(
        self,
        notification_id: str,
        status: Union[DeliveryStatus, str],
        error_message: Optional[str] = None,
        provider_response: Optional[Dict[str, Any]] = None,
    ) -> DeliveryLog:
        """Record one attempt under the next attempt number.

        Raises:
            NotFoundError: If the notification does not exist
            ConflictError: If the attempt number kept colliding with concurrent appends
        """
        status = DeliveryStatus(status)
        for _ in range(MAX_APPEND_ATTEMPTS):
            try:
                with store_session(self.database, COMPONENT, "append") as session:
                    exists = session.execute(
                        select(NotificationRecord.id).where(
                            NotificationRecord.id == notification_id
                        )
                    ).scalar_one_or_none()
                    if exists is None:
                        raise NotFoundError(f"Notification {notification_id} not found")

                    attempt = self._next_attempt(session, notification_id)
                    record = DeliveryLogRecord(
                        id=str(uuid.uuid4()),
                        notification_id=notification_id,
                        attempt=attempt,
                        status=status.value,
                        error_message=error_message,
                        provider_response=provider_response,
                        created_at=self._clock(),
                    )
                    session.add(record)
                    session.flush()
                    log = _to_log(record)
            except ConflictError:
                logger.info(
                    "delivery_log_attempt_collision", notification_id=notification_id
                )
                continue

            logger.info(
                "delivery_attempt_logged",
                notification_id=notification_id,
                attempt=log.attempt,
                status=status.value,
            )
            return log

        raise ConflictError(
            f"Could not allocate a delivery attempt number for {notification_id}"
        )

    def find_by_notification(self, notification_id: str) -> List[DeliveryLog]:
        """Return every attempt for a notification, oldest first."""
        with store_session(self.database, COMPONENT, "find_by_notification") as session:
            records = (
                session.execute(
                    select(DeliveryLogRecord)
                    .where(DeliveryLogRecord.notification_id == notification_id)
                    .order_by(DeliveryLogRecord.attempt.asc())
                )
                .scalars()
                .all()
            )
            return [_to_log(record) for record in records]

    def find_latest(self, notification_id: str) -> Optional[DeliveryLog]:
        with store_session(self.database, COMPONENT, "find_latest") as session:
            record = session.execute(
                select(DeliveryLogRecord)
                .where(DeliveryLogRecord.notification_id == notification_id)
                .order_by(DeliveryLogRecord.attempt.desc())
                .limit(1)
            ).scalar_one_or_none()
            return _to_log(record) if record else None

    def next_attempt(self, notification_id: str) -> int:
        """Attempt number the next append for this notification will get."""
        with store_session(self.database, COMPONENT, "next_attempt") as session:
            return self._next_attempt(session, notification_id)

    def count_by_status(
        self,
        status: Union[DeliveryStatus, str],
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
    ) -> int:
        query = (
            select(func.count())
            .select_from(DeliveryLogRecord)
            .where(DeliveryLogRecord.status == DeliveryStatus(status).value)
        )
        query = self._within(query, since, until)
        with store_session(self.database, COMPONENT, "count_by_status") as session:
            return session.execute(query).scalar_one()

    def success_rate(
        self, since: Optional[datetime] = None, until: Optional[datetime] = None
    ) -> float:
        """Percentage of attempts that were sent, rounded to 2 decimals (0.0 when empty)."""
        sent = self.count_by_status(DeliveryStatus.SENT, since, until)
        failed = self.count_by_status(DeliveryStatus.FAILED, since, until)
        return self._rate(sent, sent + failed)

    def stats(
        self, since: Optional[datetime] = None, until: Optional[datetime] = None
    ) -> Dict[str, Any]:
        sent = self.count_by_status(DeliveryStatus.SENT, since, until)
        failed = self.count_by_status(DeliveryStatus.FAILED, since, until)
        return {
            "success_rate": self._rate(sent, sent + failed),
            "sent": sent,
            "failed": failed,
        }

    @staticmethod
    def _rate(sent: int, total: int) -> float:
        if total == 0:
            return 0.0
        return round(sent / total * 100, 2)

    @staticmethod
    def _within(query, since: Optional[datetime], until: Optional[datetime]):
        if since is not None:
            query = query.where(DeliveryLogRecord.created_at >= _normalize(since))
        if until is not None:
            query = query.where(DeliveryLogRecord.created_at <= _normalize(until))
        return query

    @staticmethod
    def _next_attempt(session, notification_id: str) -> int:
        current = session.execute(
            select(func.max(DeliveryLogRecord.attempt)).where(
                DeliveryLogRecord.notification_id == notification_id
            )
        ).scalar_one()
        return (current or 0) + 1
