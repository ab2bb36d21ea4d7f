"""SQLAlchemy tables for notifications, templates and delivery logs."""

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)

from infrastructure.persistence import Base


class NotificationRecord(Base):
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(255), nullable=False, index=True)
    channel = Column(String(50), nullable=False)
    template_id = Column(String(255), nullable=False)
    data = Column(JSON, nullable=False)
    status = Column(String(50), nullable=False, default="pending", index=True)
    idempotency_key = Column(String(255), nullable=False, unique=True)
    error_message = Column(Text, nullable=True)
    retry_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        CheckConstraint(
            "channel IN ('email', 'sms', 'push')", name="ck_notifications_channel"
        ),
        CheckConstraint(
            "status IN ('pending', 'queued', 'processing', 'sent', 'failed', 'retrying')",
            name="ck_notifications_status",
        ),
        CheckConstraint("retry_count >= 0", name="ck_notifications_retry_count"),
        Index("idx_notifications_user_created", "user_id", "created_at"),
    )


class TemplateRecord(Base):
    __tablename__ = "templates"

    id = Column(String(255), primary_key=True)
    name = Column(String(255), nullable=False)
    channel = Column(String(50), nullable=False)
    subject = Column(String(500), nullable=True)
    body = Column(Text, nullable=False)
    variables = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)


class DeliveryLogRecord(Base):
    __tablename__ = "delivery_logs"

    id = Column(String(36), primary_key=True)
    notification_id = Column(
        String(36),
        ForeignKey("notifications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    attempt = Column(Integer, nullable=False)
    status = Column(String(50), nullable=False)
    error_message = Column(Text, nullable=True)
    provider_response = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "notification_id", "attempt", name="uq_delivery_logs_notification_attempt"
        ),
        CheckConstraint("attempt >= 1", name="ck_delivery_logs_attempt"),
        CheckConstraint("status IN ('sent', 'failed')", name="ck_delivery_logs_status"),
    )
