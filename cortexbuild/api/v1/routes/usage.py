import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from cortexbuild.core.database import get_db
from cortexbuild.core.middleware import get_current_user
from cortexbuild.services.notification_service import NotificationService
from cortexbuild.services.quota_service import METRICS, QuotaService

logger = logging.getLogger(__name__)

router = APIRouter()


def get_quota_service() -> QuotaService:
    """Dependency to get quota service instance"""
    return QuotaService()


def get_notification_service() -> NotificationService:
    """Dependency to get notification service instance"""
    return NotificationService()


def _validate_metric(metric: str):
    if metric not in METRICS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown metric: {metric}. Expected one of: {', '.join(METRICS)}"
        )


def _quota_exceeded(metric: str, quota: dict) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail={
            "message": f"Monthly {metric} quota exceeded",
            **quota
        }
    )


@router.get("")
@router.get("/")
async def get_usage(
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user),
    quota_service: QuotaService = Depends(get_quota_service)
):
    """Current period usage and remaining quota for every metric"""
    user_id = current_user['uid']
    logger.info(f"get_usage: Entry - user: {user_id}")

    try:
        result = quota_service.get_quota_status(db, user_id, current_user['company_id'])
        logger.info(f"get_usage: Success - user: {user_id}")
        return result
    except Exception as e:
        logger.error(f"get_usage: Failure - {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch usage")


@router.get("/{metric}/quota")
async def check_quota(
    metric: str,
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user),
    quota_service: QuotaService = Depends(get_quota_service)
):
    """Returns {allowed, current, limit} without consuming anything"""
    _validate_metric(metric)
    logger.info(f"check_quota: Entry - user: {current_user['uid']}, metric: {metric}")

    try:
        return quota_service.check_quota(db, current_user['uid'], current_user['company_id'], metric)
    except Exception as e:
        logger.error(f"check_quota: Failure - {e}")
        raise HTTPException(status_code=500, detail="Failed to check quota")


@router.post("/{metric}/track")
async def track_usage(
    metric: str,
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user),
    quota_service: QuotaService = Depends(get_quota_service),
    notification_service: NotificationService = Depends(get_notification_service)
):
    """
    Record one metered action: check the quota, then increment.
    The check and the increment are separate statements; use /consume when
    the limit must hold under concurrent requests.
    """
    _validate_metric(metric)
    user_id, company_id = current_user['uid'], current_user['company_id']
    logger.info(f"track_usage: Entry - user: {user_id}, metric: {metric}")

    try:
        quota = quota_service.check_quota(db, user_id, company_id, metric)
        if not quota['allowed']:
            logger.info(f"track_usage: Quota exceeded - user: {user_id}, metric: {metric}")
            raise _quota_exceeded(metric, quota)

        quota_service.track_usage(db, user_id, company_id, metric)
        warning = notification_service.check_usage_warning(db, user_id, company_id, metric)

        logger.info(f"track_usage: Success - user: {user_id}, metric: {metric}")
        return {
            "allowed": True,
            "current": quota['current'] + 1 if quota['limit'] != -1 else 0,
            "limit": quota['limit'],
            "warning": warning is not None
        }
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"track_usage: Failure - {e}")
        raise HTTPException(status_code=500, detail="Failed to track usage")


@router.post("/{metric}/consume")
async def consume_quota(
    metric: str,
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user),
    quota_service: QuotaService = Depends(get_quota_service),
    notification_service: NotificationService = Depends(get_notification_service)
):
    """Atomic check-and-increment of one metered action"""
    _validate_metric(metric)
    user_id, company_id = current_user['uid'], current_user['company_id']
    logger.info(f"consume_quota: Entry - user: {user_id}, metric: {metric}")

    try:
        quota = quota_service.consume_quota(db, user_id, company_id, metric)
        if not quota['allowed']:
            raise _quota_exceeded(metric, quota)

        warning = notification_service.check_usage_warning(db, user_id, company_id, metric)
        logger.info(f"consume_quota: Success - user: {user_id}, metric: {metric}")
        return {**quota, "warning": warning is not None}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"consume_quota: Failure - {e}")
        raise HTTPException(status_code=500, detail="Failed to consume quota")
