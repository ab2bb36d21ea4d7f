"""Notification service - the application boundary.

Controllers and the CLI call into this service; it validates requests,
deduplicates them, persists notifications and hands them to the dispatch
queue. Delivery itself happens in `modules.notifications.worker`.
"""

import dataclasses
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from infrastructure.logging import get_module_logger
from infrastructure.queue import DispatchQueue, JobOptions
from modules.notifications.delivery_log import DeliveryLogRepository
from modules.notifications.domain.errors import (
    ConflictError,
    InfrastructureError,
    NotFoundError,
    ValidationError,
)
from modules.notifications.domain.models import (
    DeliveryLog,
    Notification,
    NotificationStatus,
)
from modules.notifications.idempotency import IdempotencyGuard
from modules.notifications.schemas import CreateNotificationRequest
from modules.notifications.store import NotificationStore
from modules.notifications.templates import TemplateRepository

logger = get_module_logger()

MAX_PAGE_SIZE = 100


class NotificationService:
    """Create, query and retry notifications.

    Args:
        store: Notification store
        guard: Idempotency guard
        templates: Template repository used for request validation
        queue: Dispatch queue receiving delivery jobs
        delivery_log: Delivery attempt log
        job_options: Attempt budget and backoff for every enqueued job
    """

    def __init__(
        self,
        store: NotificationStore,
        guard: IdempotencyGuard,
        templates: TemplateRepository,
        queue: DispatchQueue,
        delivery_log: DeliveryLogRepository,
        job_options: Optional[JobOptions] = None,
    ):
        self.store = store
        self.guard = guard
        self.templates = templates
        self.queue = queue
        self.delivery_log = delivery_log
        self.job_options = job_options or JobOptions()

    def create(self, request: CreateNotificationRequest) -> Tuple[Notification, bool]:
        """Accept a notification request.

        Identical requests (same user, template and data) resolve to the
        notification created by the first one.

        Args:
            request: Validated request payload

        Returns:
            Tuple of the notification and whether this call created it.

        Raises:
            ValidationError: Unknown template, channel mismatch or missing variables
            InfrastructureError: Store or queue unavailable
        """
        user_id = request.user_id
        channel = getattr(request.channel, "value", request.channel)
        template_id = request.template
        data = request.data

        key = self.guard.key_for(user_id, template_id, data)
        existing = self._find_existing(key)
        if existing is not None:
            return self._dispatch(existing, key), False

        self._validate(channel, template_id, data)

        try:
            notification = self.store.create(user_id, channel, template_id, data, key)
            created = True
        except ConflictError:
            # A concurrent request with the same key won the insert
            notification = self.store.find_by_idempotency_key(key)
            if notification is None:
                raise
            logger.info(
                "duplicate_request_detected",
                source="conflict",
                notification_id=notification.id,
            )
            created = False

        return self._dispatch(notification, key), created

    def get(self, notification_id: str) -> Notification:
        return self.store.get(notification_id)

    def list_for_user(
        self, user_id: str, limit: int = 50, offset: int = 0
    ) -> Tuple[List[Notification], int]:
        """Return a page of a user's notifications (newest first) and their total count.

        Raises:
            ValidationError: If limit is outside 1..100 or offset is negative
        """
        if limit < 1 or limit > MAX_PAGE_SIZE:
            raise ValidationError(f"Limit must be between 1 and {MAX_PAGE_SIZE}")
        if offset < 0:
            raise ValidationError("Offset must be non-negative")

        notifications = self.store.find_by_user(user_id, limit, offset)
        total = self.store.count_by_user(user_id)
        return notifications, total

    def retry_failed(self, notification_id: str) -> Notification:
        """Manually retry a FAILED notification with a fresh attempt budget.

        Raises:
            NotFoundError: Unknown notification
            InvalidTransitionError: The notification is not FAILED
        """
        notification = self.store.retry_failed(notification_id)
        self._enqueue(notification_id)
        logger.info("notification_retry_requested", notification_id=notification_id)
        return notification

    def delivery_history(self, notification_id: str) -> List[DeliveryLog]:
        self.store.get(notification_id)
        return self.delivery_log.find_by_notification(notification_id)

    def queue_stats(self) -> Dict[str, int]:
        try:
            return self.queue.get_stats()
        except SQLAlchemyError as e:
            raise InfrastructureError(f"Dispatch queue unavailable: {e}") from e

    def delivery_stats(
        self, since: Optional[datetime] = None, until: Optional[datetime] = None
    ) -> Dict[str, Any]:
        if since is not None and until is not None and since > until:
            raise ValidationError("'since' must not be later than 'until'")
        return self.delivery_log.stats(since, until)

    def _validate(self, channel: str, template_id: str, data: Dict[str, Any]) -> None:
        try:
            template = self.templates.get(template_id)
        except NotFoundError:
            raise ValidationError(f"Template '{template_id}' not found") from None

        if template.channel != channel:
            raise ValidationError(
                f"Template '{template_id}' is for {template.channel}, not {channel}"
            )

        missing = self.templates.validate_variables(template, data)
        if missing:
            raise ValidationError(
                f"Missing required template variables: {', '.join(missing)}"
            )

    def _find_existing(self, key: str) -> Optional[Notification]:
        notification_id = self.guard.resolve_key(key)
        if notification_id is None:
            return None
        try:
            return self.store.get(notification_id)
        except NotFoundError:
            # Cached id of a notification that has since been deleted
            logger.warning("idempotency_entry_stale", notification_id=notification_id)
            self.guard.forget(key)
            return None

    def _dispatch(self, notification: Notification, key: str) -> Notification:
        """Enqueue a PENDING notification, mark it QUEUED and remember its key.

        A PENDING duplicate means the original creator never finished this
        step; enqueueing again is safe because the queue keeps a single open
        job per notification.
        """
        if notification.status == NotificationStatus.PENDING:
            self._enqueue(notification.id)
            if self.store.mark_queued(notification.id):
                notification = dataclasses.replace(
                    notification, status=NotificationStatus.QUEUED
                )
            else:
                notification = self.store.get(notification.id)

        self.guard.remember(key, notification.id)
        return notification

    def _enqueue(self, notification_id: str) -> str:
        try:
            return self.queue.enqueue(notification_id, self.job_options)
        except SQLAlchemyError as e:
            logger.error(
                "notification_enqueue_failed",
                notification_id=notification_id,
                error=str(e),
            )
            raise InfrastructureError(f"Dispatch queue unavailable: {e}") from e
