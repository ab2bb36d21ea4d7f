from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter

from infrastructure.logging import get_module_logger
from infrastructure.services import NotificationServiceDep
from modules.notifications import schemas

logger = get_module_logger()

# Controllers are thin adapters: they accept Pydantic request models, call the
# service boundary, and wrap the result in the response envelope. Domain
# errors are turned into JSON error bodies by the server's exception handlers.
router = APIRouter(prefix="/notifications", tags=["notifications"])
queue_router = APIRouter(prefix="/queue", tags=["queue"])
delivery_router = APIRouter(prefix="/delivery", tags=["delivery"])


@router.post("", status_code=202, response_model=schemas.ApiResponse)
def create_notification_endpoint(
    request: schemas.CreateNotificationRequest, service: NotificationServiceDep
):
    """Accept a notification for delivery.

    **Idempotency:**
    - The same user, template and data always map to the same notification
    - A duplicate request returns the original id and its current status
    """
    notification, created = service.create(request)
    return schemas.ApiResponse(
        message=(
            "Notification queued for processing"
            if created
            else "Duplicate request, returning existing notification"
        ),
        data=schemas.NotificationAccepted(
            id=notification.id,
            status=notification.status.value,
            created_at=notification.created_at,
        ),
    )


@router.get("/user/{user_id}", response_model=schemas.NotificationListResponse)
def list_user_notifications_endpoint(
    user_id: str,
    service: NotificationServiceDep,
    limit: int = 50,
    offset: int = 0,
):
    """List a user's notifications, newest first.

    `limit` must be between 1 and 100 and `offset` must be non-negative.
    """
    notifications, total = service.list_for_user(user_id, limit=limit, offset=offset)
    return schemas.NotificationListResponse(
        data=[schemas.NotificationResponse.from_domain(n) for n in notifications],
        pagination=schemas.Pagination(
            limit=limit, offset=offset, count=len(notifications), total=total
        ),
    )


@router.get("/{notification_id}", response_model=schemas.ApiResponse)
def get_notification_endpoint(notification_id: UUID, service: NotificationServiceDep):
    notification = service.get(str(notification_id))
    return schemas.ApiResponse(data=schemas.NotificationResponse.from_domain(notification))


@router.get("/{notification_id}/logs", response_model=schemas.ApiResponse)
def get_delivery_logs_endpoint(notification_id: UUID, service: NotificationServiceDep):
    """Delivery attempts for a notification, oldest first."""
    logs = service.delivery_history(str(notification_id))
    return schemas.ApiResponse(
        data=[schemas.DeliveryLogResponse.from_domain(log) for log in logs]
    )


@router.post(
    "/{notification_id}/retry", status_code=202, response_model=schemas.ApiResponse
)
def retry_notification_endpoint(notification_id: UUID, service: NotificationServiceDep):
    """Manually retry a failed notification.

    Only notifications in the `failed` status can be retried; anything else
    answers 400.
    """
    notification = service.retry_failed(str(notification_id))
    return schemas.ApiResponse(
        message="Notification queued for retry",
        data=schemas.NotificationAccepted(
            id=notification.id,
            status=notification.status.value,
            created_at=notification.created_at,
        ),
    )


@queue_router.get("/stats", response_model=schemas.ApiResponse)
def get_queue_stats_endpoint(service: NotificationServiceDep):
    return schemas.ApiResponse(data=schemas.QueueStats(**service.queue_stats()))


@delivery_router.get("/stats", response_model=schemas.ApiResponse)
def get_delivery_stats_endpoint(
    service: NotificationServiceDep,
    since: Optional[datetime] = None,
    until: Optional[datetime] = None,
):
    """Delivery success rate and attempt counts, optionally within a time window."""
    return schemas.ApiResponse(
        data=schemas.DeliveryStats(**service.delivery_stats(since=since, until=until))
    )
