import json
import logging
import uuid
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from cortexbuild.core.config import settings
from cortexbuild.models.notification import SubscriptionNotification
from cortexbuild.services.quota_service import QuotaService

logger = logging.getLogger(__name__)

USAGE_WARNING = 'usage_warning'

METRIC_LABELS = {
    'flowRuns': 'flow runs',
    'sandboxRuns': 'sandbox runs',
    'aiQueries': 'AI queries',
    'apiCalls': 'API calls',
}


def notification_to_dict(notification: SubscriptionNotification) -> dict:
    return {
        'id': notification.id,
        'type': notification.type,
        'title': notification.title,
        'message': notification.message,
        'metadata': json.loads(notification.details) if notification.details else None,
        'read': notification.read,
        'created_at': notification.created_at.isoformat()
    }


class NotificationService:
    def __init__(self, quotas: Optional[QuotaService] = None):
        self.quotas = quotas or QuotaService()
        self.threshold_percent = settings.usage_warning_threshold_percent
        self.window = timedelta(hours=settings.usage_warning_window_hours)
        self.logger = logging.getLogger(__name__)

    def check_usage_warning(
        self,
        db: Session,
        user_id: str,
        company_id: str,
        metric: str,
        now: Optional[datetime] = None
    ) -> Optional[SubscriptionNotification]:
        """
        Insert a usage_warning notification when usage is in [threshold, 100) percent
        of a finite limit and no warning was created for the user inside the window.
        Returns the new notification, or None when nothing was sent.
        """
        self.logger.info(f"check_usage_warning: Entry - user: {user_id}, metric: {metric}")

        try:
            quota = self.quotas.check_quota(db, user_id, company_id, metric)
            current, limit = quota['current'], quota['limit']
            if limit <= 0:
                return None

            usage_percent = current / limit * 100
            if not (self.threshold_percent <= usage_percent < 100):
                return None

            now = now or datetime.utcnow()
            recent = db.query(SubscriptionNotification).filter(
                SubscriptionNotification.user_id == user_id,
                SubscriptionNotification.type == USAGE_WARNING,
                SubscriptionNotification.created_at > now - self.window
            ).first()
            if recent:
                self.logger.info(f"check_usage_warning: Already warned - user: {user_id}, notification: {recent.id}")
                return None

            label = METRIC_LABELS.get(metric, metric)
            notification = SubscriptionNotification(
                id=str(uuid.uuid4()),
                user_id=user_id,
                company_id=company_id,
                type=USAGE_WARNING,
                title='Approaching usage limit',
                message=f"You have used {usage_percent:.0f}% of your monthly {label} ({current}/{limit}). Upgrade your plan to avoid interruptions.",
                details=json.dumps({
                    'metric': metric,
                    'current': current,
                    'limit': limit,
                    'usage_percent': round(usage_percent, 1)
                }),
                read=False,
                created_at=now
            )
            db.add(notification)
            db.commit()
            db.refresh(notification)

            self.logger.info(f"check_usage_warning: Success - user: {user_id}, metric: {metric}, usage: {usage_percent:.1f}%")
            return notification
        except Exception as e:
            db.rollback()
            self.logger.error(f"check_usage_warning: Failure - {e}")
            raise

    def list_notifications(self, db: Session, user_id: str, unread_only: bool = False) -> list[dict]:
        query = db.query(SubscriptionNotification).filter(SubscriptionNotification.user_id == user_id)
        if unread_only:
            query = query.filter(SubscriptionNotification.read == False)
        return [notification_to_dict(n) for n in query.order_by(SubscriptionNotification.created_at.desc()).all()]

    def mark_read(self, db: Session, user_id: str, notification_id: str) -> SubscriptionNotification:
        self.logger.info(f"mark_read: Entry - user: {user_id}, notification: {notification_id}")

        try:
            notification = db.query(SubscriptionNotification).filter(
                SubscriptionNotification.id == notification_id,
                SubscriptionNotification.user_id == user_id
            ).first()
            if not notification:
                raise ValueError("Notification not found")

            notification.read = True
            db.commit()
            db.refresh(notification)
            return notification
        except Exception as e:
            db.rollback()
            self.logger.error(f"mark_read: Failure - {e}")
            raise
