# File: app/api/v1/endpoints/notifications.py
from typing import Any, List
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session

from app import crud
from app.core.deps import CurrentUser, get_current_user
from app.db.database import get_db
from app.schemas.notification import NotificationResponse, NotificationStats
from app.services.notification_service import NotificationDispatcher, get_notification_dispatcher

router = APIRouter()


@router.get("/", response_model=List[NotificationResponse])
def get_my_notifications(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    unread_only: bool = Query(False, description="Get only unread notifications"),
    skip: int = 0,
    limit: int = 50,
) -> Any:
    """In-app notifications addressed to the caller or the caller's role"""
    return crud.notification.get_for_recipient(
        db,
        user_email=current_user.email,
        role=current_user.role,
        unread_only=unread_only,
        skip=skip,
        limit=limit,
    )


@router.get("/stats", response_model=NotificationStats)
def get_notification_stats(
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
    current_user: CurrentUser = Depends(get_current_user),
) -> Any:
    """Delivery counters of the background notification worker"""
    return dispatcher.stats()


@router.put("/{notification_id}/read", response_model=NotificationResponse)
def mark_notification_as_read(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> Any:
    notification = crud.notification.mark_as_read(
        db, notification_id=notification_id, user_email=current_user.email, role=current_user.role
    )
    if not notification:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Notification not found",
        )
    db.commit()
    db.refresh(notification)
    return notification
