import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from cortexbuild.core.database import get_db
from cortexbuild.core.middleware import get_current_user
from cortexbuild.services.plan_catalog import PlanCatalog, plan_to_dict
from cortexbuild.services.quota_service import QuotaService
from cortexbuild.services.subscription_service import (SubscriptionService,
                                                       subscription_to_dict)

router = APIRouter()
logger = logging.getLogger(__name__)


def get_subscription_service() -> SubscriptionService:
    """Dependency to get subscription service instance"""
    return SubscriptionService()


def get_quota_service() -> QuotaService:
    """Dependency to get quota service instance"""
    return QuotaService()


class ChangePlanRequest(BaseModel):
    plan_id: str
    reason: Optional[str] = None
    # Simulated billing: the id is recorded, no payment provider is called
    stripe_subscription_id: Optional[str] = None


@router.get("/plans")
async def get_plans(
    db: Session = Depends(get_db),
    subscription_service: SubscriptionService = Depends(get_subscription_service)
):
    """
    Get all subscription plans, cheapest first.
    Public endpoint - no authentication required.
    """
    logger.info("get_plans: Entry")

    try:
        plans = subscription_service.catalog.get_all_plans(db)
        logger.info(f"get_plans: Success - {len(plans)} plans")
        return {"plans": plans}
    except Exception as e:
        logger.error(f"get_plans: Failure - {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch plans"
        )


@router.get("/plans/{plan_id}")
async def get_plan(
    plan_id: str,
    db: Session = Depends(get_db),
    subscription_service: SubscriptionService = Depends(get_subscription_service)
):
    """Get a single plan. Public endpoint."""
    catalog: PlanCatalog = subscription_service.catalog
    catalog.seed_plans_if_empty(db)
    plan = catalog.get_plan_by_id(db, plan_id)
    if not plan:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Plan not found: {plan_id}")
    return plan_to_dict(plan)


@router.get("/current")
async def get_current_subscription(
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user),
    subscription_service: SubscriptionService = Depends(get_subscription_service),
    quota_service: QuotaService = Depends(get_quota_service)
):
    """
    Get current user's subscription with plan and this month's usage.
    A free subscription is created on first access.
    """
    user_id, company_id = current_user['uid'], current_user['company_id']
    logger.info(f"get_current_subscription: Entry - user: {user_id}")

    try:
        subscription = subscription_service.get_current_subscription(db, user_id, company_id)
        subscription['usage'] = quota_service.get_current_usage(db, user_id, company_id)
        logger.info(f"get_current_subscription: Success - user: {user_id}")
        return {"subscription": subscription}
    except ValueError as e:
        logger.error(f"get_current_subscription: ValueError - {e}")
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )
    except Exception as e:
        logger.error(f"get_current_subscription: Failure - {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch current subscription"
        )


@router.post("/change")
async def change_plan(
    request: ChangePlanRequest,
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user),
    subscription_service: SubscriptionService = Depends(get_subscription_service)
):
    """Switch the current user to another plan. The previous subscription is canceled."""
    user_id, company_id = current_user['uid'], current_user['company_id']
    logger.info(f"change_plan: Entry - user: {user_id}, plan: {request.plan_id}")

    try:
        subscription = subscription_service.change_plan(
            db=db,
            user_id=user_id,
            company_id=company_id,
            plan_id=request.plan_id,
            changed_by=user_id,
            reason=request.reason,
            stripe_subscription_id=request.stripe_subscription_id
        )
        logger.info(f"change_plan: Success - user: {user_id}, subscription: {subscription.id}")
        return {
            "subscription": subscription_to_dict(subscription),
            "message": "Plan changed successfully"
        }
    except ValueError as e:
        logger.error(f"change_plan: ValueError - {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except Exception as e:
        logger.error(f"change_plan: Failure - {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to change plan"
        )


@router.post("/cancel")
async def cancel_subscription(
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user),
    subscription_service: SubscriptionService = Depends(get_subscription_service)
):
    """
    Cancel current subscription.
    Subscription remains active until the end of the current period.
    """
    user_id, company_id = current_user['uid'], current_user['company_id']
    logger.info(f"cancel_subscription: Entry - user: {user_id}")

    try:
        subscription = subscription_service.cancel_subscription(db, user_id, company_id, changed_by=user_id)
        logger.info(f"cancel_subscription: Success - user: {user_id}, subscription: {subscription.id}")
        return {
            "subscription": subscription_to_dict(subscription),
            "message": "Subscription canceled. Access will continue until the end of the current period."
        }
    except ValueError as e:
        logger.error(f"cancel_subscription: ValueError - {e}")
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )
    except Exception as e:
        logger.error(f"cancel_subscription: Failure - {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to cancel subscription"
        )


@router.get("/history")
async def get_subscription_history(
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user),
    subscription_service: SubscriptionService = Depends(get_subscription_service)
):
    """Tier change history for the current user, newest first."""
    user_id = current_user['uid']
    logger.info(f"get_subscription_history: Entry - user: {user_id}")

    try:
        history = subscription_service.get_subscription_history(db, user_id)
        logger.info(f"get_subscription_history: Success - user: {user_id}, count: {len(history)}")
        return {"history": history}
    except Exception as e:
        logger.error(f"get_subscription_history: Failure - {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch subscription history"
        )
