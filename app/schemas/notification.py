from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class NotificationResponse(BaseModel):
    id: int
    user_email: Optional[str] = None
    recipient_role: Optional[str] = None
    title: str
    message: str
    notification_type: Optional[str] = None
    priority: Optional[str] = None
    request_type: Optional[str] = None
    request_id: Optional[str] = None
    is_read: bool = False
    action_url: Optional[str] = None
    triggered_by: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class NotificationStats(BaseModel):
    delivered: int
    failed: int
    pending: int
    dropped: int
