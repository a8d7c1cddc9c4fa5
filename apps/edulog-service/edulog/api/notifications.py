"""
Notification API Endpoints

In-app notification inbox for the current identity: listing, read state,
counters and expired-row cleanup.
"""

import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from edulog import audit
from edulog.audit import AuditAction
from edulog.db.database import get_db
from edulog.db import schemas
from edulog.api.deps import get_current_user_context, require_superadmin
from edulog.services.notification_service import NotificationService


router = APIRouter(tags=["notifications"])


@router.get("/", response_model=schemas.NotificationListResponse)
def get_notifications(
    unread_only: bool = False,
    limit: int = 50,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context)
):
    """
    Get notifications for the current user.

    - **unread_only**: If true, only return unread notifications
    - **limit**: Maximum number of notifications to return (default 50)
    """
    user, current_user = user_context

    service = NotificationService(db)
    notifications = service.get_user_notifications(
        user_id=user.id,
        unread_only=unread_only,
        limit=limit
    )

    unread_count = service.get_unread_count(user.id)

    return schemas.NotificationListResponse(
        notifications=notifications,
        unread_count=unread_count,
        total_count=len(notifications)
    )


@router.post("/{notification_id}/read", status_code=status.HTTP_204_NO_CONTENT)
def mark_notification_read(
    notification_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context)
):
    user, current_user = user_context

    service = NotificationService(db)
    success = service.mark_notification_read(notification_id, user.id)

    if not success:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Notification not found"
        )


@router.get("/stats", response_model=schemas.NotificationStatsResponse)
def get_notification_stats(
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context)
):
    user, current_user = user_context

    service = NotificationService(db)
    unread_count = service.get_unread_count(user.id)
    recent_notifications = service.get_user_notifications(
        user_id=user.id,
        unread_only=False,
        limit=5
    )

    return schemas.NotificationStatsResponse(
        unread_count=unread_count,
        total_notifications=len(recent_notifications),
        recent_notifications=recent_notifications
    )


@router.delete("/cleanup/expired")
def cleanup_expired_notifications(
    db: Session = Depends(get_db),
    user_context = Depends(require_superadmin)
):
    """
    Delete notifications past their expiry. Superadmin only.
    """
    user, current_user = user_context

    service = NotificationService(db)
    count = service.cleanup_expired_notifications()
    audit.log(
        db,
        action=AuditAction.NOTIFICATIONS_CLEANUP,
        event_type="admin_action",
        event_category="notifications",
        actor_id=user.id,
        metadata={"deleted": count},
    )

    return {"message": f"Cleaned up {count} expired notifications", "deleted": count}
