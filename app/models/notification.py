from sqlalchemy import Column, String, Boolean, DateTime, Text
from app.models.base import BaseModel
import enum


class NotificationType(enum.Enum):
    REQUEST_SUBMITTED = "REQUEST_SUBMITTED"
    REQUEST_APPROVED = "REQUEST_APPROVED"
    REQUEST_REJECTED = "REQUEST_REJECTED"
    REQUEST_CANCELLED = "REQUEST_CANCELLED"
    REQUEST_PROCESSED = "REQUEST_PROCESSED"


class NotificationPriority(enum.Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class Notification(BaseModel):
    __tablename__ = "notifications"

    # Either a specific user or every holder of a role
    user_email = Column(String(255), nullable=True, index=True)
    recipient_role = Column(String(100), nullable=True, index=True)

    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    notification_type = Column(String(50), nullable=True)
    priority = Column(String(20), nullable=True)

    # Request reference
    request_type = Column(String(20), nullable=True)
    request_id = Column(String(64), nullable=True, index=True)

    send_email = Column(Boolean, default=False)
    is_read = Column(Boolean, default=False)
    read_at = Column(DateTime(timezone=True), nullable=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    failed_at = Column(DateTime(timezone=True), nullable=True)
    error_message = Column(Text, nullable=True)
    action_url = Column(String(255), nullable=True)
    triggered_by = Column(String(255), nullable=True)
