from datetime import datetime, timezone
from typing import Any, List, Optional
from sqlalchemy import or_, desc
from sqlalchemy.orm import Session
from app.crud.base import CRUDBase
from app.models.notification import Notification


class CRUDNotification(CRUDBase[Notification, Any, Any]):

    def create_in_app(
        self,
        db: Session,
        *,
        title: str,
        message: str,
        user_email: Optional[str] = None,
        recipient_role: Optional[str] = None,
        notification_type: Optional[str] = None,
        priority: str = "MEDIUM",
        request_type: Optional[str] = None,
        request_id: Optional[str] = None,
        send_email: bool = False,
        action_url: Optional[str] = None,
        triggered_by: Optional[str] = None
    ) -> Notification:
        """Create notification for a user (by email) or for every holder of a role"""
        notification = Notification(
            user_email=user_email,
            recipient_role=recipient_role,
            title=title,
            message=message,
            notification_type=notification_type,
            priority=priority,
            request_type=request_type,
            request_id=request_id,
            send_email=send_email,
            action_url=action_url,
            triggered_by=triggered_by,
            sent_at=datetime.now(timezone.utc),
        )
        db.add(notification)
        db.flush()
        return notification

    def get_for_recipient(
        self,
        db: Session,
        *,
        user_email: str,
        role: Optional[str] = None,
        unread_only: bool = False,
        skip: int = 0,
        limit: int = 50
    ) -> List[Notification]:
        conditions = [Notification.user_email == user_email]
        if role:
            conditions.append(Notification.recipient_role == role)
        query = db.query(Notification).filter(or_(*conditions))
        if unread_only:
            query = query.filter(Notification.is_read == False)
        return query.order_by(desc(Notification.created_at), desc(Notification.id)).offset(skip).limit(limit).all()

    def mark_as_read(self, db: Session, *, notification_id: int, user_email: str, role: Optional[str] = None) -> Optional[Notification]:
        conditions = [Notification.user_email == user_email]
        if role:
            conditions.append(Notification.recipient_role == role)
        notification = (
            db.query(Notification)
            .filter(Notification.id == notification_id, or_(*conditions))
            .first()
        )
        if notification and not notification.is_read:
            notification.is_read = True
            notification.read_at = datetime.now(timezone.utc)
            db.flush()
        return notification


notification = CRUDNotification(Notification)
