"""API contracts for the notifications endpoints."""

from datetime import datetime
from typing import Any, Dict, List, Optional, Annotated

from pydantic import BaseModel, ConfigDict, Field

from infrastructure.notifications import ChannelName
from modules.notifications.domain.models import DeliveryLog, Notification


class CreateNotificationRequest(BaseModel):
    """Schema for a notification request."""

    model_config = ConfigDict(str_strip_whitespace=True)

    user_id: Annotated[
        str,
        Field(
            ...,
            min_length=1,
            max_length=255,
            description="User to notify",
            json_schema_extra={"example": "12345"},
        ),
    ]
    channel: Annotated[
        ChannelName,
        Field(..., description="Delivery channel", json_schema_extra={"example": "email"}),
    ]
    template: Annotated[
        str,
        Field(
            ...,
            min_length=1,
            max_length=255,
            description="Template id",
            json_schema_extra={"example": "welcome_email"},
        ),
    ]
    data: Annotated[
        Dict[str, Any],
        Field(
            ...,
            description="Template variables",
            json_schema_extra={
                "example": {"name": "John", "app_name": "Acme", "link": "https://acme.test"}
            },
        ),
    ]


class NotificationAccepted(BaseModel):
    id: str
    status: str
    created_at: datetime


class NotificationResponse(BaseModel):
    """Schema for a full notification record."""

    id: str
    user_id: str
    channel: str
    template_id: str
    data: Dict[str, Any]
    status: str
    idempotency_key: str
    error_message: Optional[str] = None
    retry_count: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, notification: Notification) -> "NotificationResponse":
        return cls.model_validate(notification.to_dict())


class DeliveryLogResponse(BaseModel):
    id: str
    notification_id: str
    attempt: int
    status: str
    error_message: Optional[str] = None
    provider_response: Optional[Dict[str, Any]] = None
    created_at: datetime

    @classmethod
    def from_domain(cls, log: DeliveryLog) -> "DeliveryLogResponse":
        return cls(
            id=log.id,
            notification_id=log.notification_id,
            attempt=log.attempt,
            status=log.status.value,
            error_message=log.error_message,
            provider_response=log.provider_response,
            created_at=log.created_at,
        )


class Pagination(BaseModel):
    limit: int
    offset: int
    count: int
    total: int


class QueueStats(BaseModel):
    waiting: int
    active: int
    completed: int
    failed: int
    delayed: int
    total: int


class DeliveryStats(BaseModel):
    success_rate: float
    sent: int
    failed: int


class ApiResponse(BaseModel):
    """Envelope shared by every successful response."""

    success: bool = True
    message: Optional[str] = None
    data: Any = None


class NotificationListResponse(ApiResponse):
    data: List[NotificationResponse]
    pagination: Pagination
