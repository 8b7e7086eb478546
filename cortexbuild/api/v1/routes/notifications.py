import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from cortexbuild.core.database import get_db
from cortexbuild.core.middleware import get_current_user
from cortexbuild.services.notification_service import (NotificationService,
                                                       notification_to_dict)

logger = logging.getLogger(__name__)

router = APIRouter()


def get_notification_service() -> NotificationService:
    """Dependency to get notification service instance"""
    return NotificationService()


@router.get("")
@router.get("/")
async def list_notifications(
    unread_only: bool = Query(False, description="Only return unread notifications"),
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user),
    notification_service: NotificationService = Depends(get_notification_service)
):
    """Subscription notifications (usage warnings) for the current user, newest first"""
    user_id = current_user['uid']
    logger.info(f"list_notifications: Entry - user: {user_id}, unread_only: {unread_only}")

    try:
        notifications = notification_service.list_notifications(db, user_id, unread_only=unread_only)
        logger.info(f"list_notifications: Success - user: {user_id}, count: {len(notifications)}")
        return {"notifications": notifications}
    except Exception as e:
        logger.error(f"list_notifications: Failure - {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch notifications")


@router.post("/{notification_id}/read")
async def mark_notification_read(
    notification_id: str,
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user),
    notification_service: NotificationService = Depends(get_notification_service)
):
    try:
        notification = notification_service.mark_read(db, current_user['uid'], notification_id)
        return notification_to_dict(notification)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except Exception as e:
        logger.error(f"mark_notification_read: Failure - {e}")
        raise HTTPException(status_code=500, detail="Failed to update notification")
