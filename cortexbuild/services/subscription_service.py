import json
import logging
import uuid
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from cortexbuild.models.subscription import Subscription, SubscriptionStatus
from cortexbuild.models.subscription_history import SubscriptionHistory
from cortexbuild.services.plan_catalog import FREE_PLAN_ID, PlanCatalog, plan_to_dict

logger = logging.getLogger(__name__)

BILLING_PERIOD_DAYS = 30
# Free subscriptions never lapse
FREE_PERIOD_YEARS = 100

TIER_RANK = {'free': 0, 'pro': 1, 'enterprise': 2}


def _free_period_end(start: datetime) -> datetime:
    try:
        return start.replace(year=start.year + FREE_PERIOD_YEARS)
    except ValueError:
        # 29 February with a non-leap target year
        return start.replace(year=start.year + FREE_PERIOD_YEARS, day=28)


def subscription_to_dict(subscription: Subscription) -> dict:
    return {
        'id': subscription.id,
        'user_id': subscription.user_id,
        'company_id': subscription.company_id,
        'plan_id': subscription.plan_id,
        'status': subscription.status.value,
        'current_period_start': subscription.current_period_start.isoformat(),
        'current_period_end': subscription.current_period_end.isoformat(),
        'cancel_at_period_end': subscription.cancel_at_period_end,
        'stripe_subscription_id': subscription.stripe_subscription_id,
    }


class SubscriptionService:
    def __init__(self, catalog: Optional[PlanCatalog] = None):
        self.catalog = catalog or PlanCatalog()
        self.logger = logging.getLogger(__name__)

    def get_user_subscription(self, db: Session, user_id: str, company_id: str) -> Optional[Subscription]:
        """Latest active subscription for the (user, company) pair"""
        return db.query(Subscription).filter(
            Subscription.user_id == user_id,
            Subscription.company_id == company_id,
            Subscription.status == SubscriptionStatus.ACTIVE
        ).order_by(Subscription.created_at.desc()).first()

    def create_free_subscription(self, db: Session, user_id: str, company_id: str) -> Subscription:
        self.logger.info(f"create_free_subscription: Entry - user: {user_id}, company: {company_id}")

        try:
            self.catalog.seed_plans_if_empty(db)
            if not self.catalog.get_plan_by_id(db, FREE_PLAN_ID):
                raise ValueError("Free plan not found")

            now = datetime.utcnow()
            subscription = Subscription(
                id=str(uuid.uuid4()),
                user_id=user_id,
                company_id=company_id,
                plan_id=FREE_PLAN_ID,
                status=SubscriptionStatus.ACTIVE,
                current_period_start=now,
                current_period_end=_free_period_end(now),
                cancel_at_period_end=False
            )
            db.add(subscription)
            db.commit()
            db.refresh(subscription)

            self.logger.info(f"create_free_subscription: Success - subscription: {subscription.id}")
            return subscription
        except Exception as e:
            db.rollback()
            self.logger.error(f"create_free_subscription: Failure - {e}")
            raise

    def get_or_create_subscription(self, db: Session, user_id: str, company_id: str) -> Subscription:
        """First read of a subscription provisions the free plan"""
        subscription = self.get_user_subscription(db, user_id, company_id)
        if subscription:
            return subscription
        return self.create_free_subscription(db, user_id, company_id)

    def get_current_subscription(self, db: Session, user_id: str, company_id: str) -> dict:
        """Subscription with its plan, for the account screen"""
        self.logger.info(f"get_current_subscription: Entry - user: {user_id}")

        try:
            subscription = self.get_or_create_subscription(db, user_id, company_id)
            plan = self.catalog.get_plan_by_id(db, subscription.plan_id)
            if not plan:
                raise ValueError(f"Plan not found: {subscription.plan_id}")

            result = subscription_to_dict(subscription)
            result['plan'] = plan_to_dict(plan)

            self.logger.info(f"get_current_subscription: Success - user: {user_id}, plan: {plan.id}")
            return result
        except Exception as e:
            self.logger.error(f"get_current_subscription: Failure - {e}")
            raise

    def change_plan(
        self,
        db: Session,
        user_id: str,
        company_id: str,
        plan_id: str,
        changed_by: str,
        reason: Optional[str] = None,
        stripe_subscription_id: Optional[str] = None
    ) -> Subscription:
        """
        Move a user to another plan.
        The previous subscription row is canceled and a new one appended;
        rows are never re-pointed at a different plan.
        """
        self.logger.info(f"change_plan: Entry - user: {user_id}, company: {company_id}, plan: {plan_id}")

        try:
            self.catalog.seed_plans_if_empty(db)
            new_plan = self.catalog.get_plan_by_id(db, plan_id)
            if not new_plan:
                raise ValueError(f"Invalid plan: {plan_id}")

            existing = self.get_user_subscription(db, user_id, company_id)
            old_tier = None
            if existing:
                if existing.plan_id == plan_id:
                    raise ValueError(f"Already subscribed to {plan_id}")
                old_plan = self.catalog.get_plan_by_id(db, existing.plan_id)
                old_tier = old_plan.tier if old_plan else None
                existing.status = SubscriptionStatus.CANCELED
                existing.updated_at = datetime.utcnow()
                db.flush()

            start = datetime.utcnow()
            if new_plan.tier == 'free':
                end = _free_period_end(start)
            else:
                end = start + timedelta(days=BILLING_PERIOD_DAYS)

            subscription = Subscription(
                id=str(uuid.uuid4()),
                user_id=user_id,
                company_id=company_id,
                plan_id=plan_id,
                status=SubscriptionStatus.ACTIVE,
                current_period_start=start,
                current_period_end=end,
                cancel_at_period_end=False,
                stripe_subscription_id=stripe_subscription_id
            )
            db.add(subscription)

            if reason is None:
                reason = 'upgrade' if TIER_RANK.get(new_plan.tier, 0) > TIER_RANK.get(old_tier, 0) else 'downgrade'

            db.add(SubscriptionHistory(
                id=str(uuid.uuid4()),
                user_id=user_id,
                company_id=company_id,
                subscription_id=subscription.id,
                old_tier=old_tier,
                new_tier=new_plan.tier,
                reason=reason,
                changed_by=changed_by,
                details=json.dumps({
                    'plan_id': plan_id,
                    'previous_subscription_id': existing.id if existing else None,
                    'stripe_subscription_id': stripe_subscription_id
                })
            ))

            db.commit()
            db.refresh(subscription)

            self.logger.info(f"change_plan: Success - user: {user_id}, subscription: {subscription.id}, {old_tier} -> {new_plan.tier}")
            return subscription
        except Exception as e:
            db.rollback()
            self.logger.error(f"change_plan: Failure - {e}")
            raise

    def cancel_subscription(self, db: Session, user_id: str, company_id: str, changed_by: str) -> Subscription:
        """Cancel at period end. Access continues until current_period_end."""
        self.logger.info(f"cancel_subscription: Entry - user: {user_id}")

        try:
            subscription = self.get_user_subscription(db, user_id, company_id)
            if not subscription:
                raise ValueError("No active subscription found")

            plan = self.catalog.get_plan_by_id(db, subscription.plan_id)
            if plan and plan.tier == 'free':
                raise ValueError("Free subscriptions cannot be canceled")

            subscription.cancel_at_period_end = True
            subscription.updated_at = datetime.utcnow()

            db.add(SubscriptionHistory(
                id=str(uuid.uuid4()),
                user_id=user_id,
                company_id=company_id,
                subscription_id=subscription.id,
                old_tier=plan.tier if plan else None,
                # The tier only changes when expire_subscriptions runs
                new_tier=plan.tier if plan else subscription.plan_id,
                reason='cancel',
                changed_by=changed_by,
                details=json.dumps({
                    'canceled_at': datetime.utcnow().isoformat(),
                    'current_period_end': subscription.current_period_end.isoformat()
                })
            ))

            db.commit()
            db.refresh(subscription)

            self.logger.info(f"cancel_subscription: Success - user: {user_id}, subscription: {subscription.id}")
            return subscription
        except Exception as e:
            db.rollback()
            self.logger.error(f"cancel_subscription: Failure - {e}")
            raise

    def expire_subscriptions(self, db: Session, now: Optional[datetime] = None) -> int:
        """Close subscriptions canceled at period end whose period is over and fall back to free"""
        self.logger.info("expire_subscriptions: Entry")

        try:
            now = now or datetime.utcnow()
            self.catalog.seed_plans_if_empty(db)

            expired = db.query(Subscription).filter(
                Subscription.status == SubscriptionStatus.ACTIVE,
                Subscription.cancel_at_period_end == True,
                Subscription.current_period_end < now
            ).all()

            for subscription in expired:
                plan = self.catalog.get_plan_by_id(db, subscription.plan_id)
                subscription.status = SubscriptionStatus.CANCELED
                subscription.updated_at = now
                db.flush()

                free = Subscription(
                    id=str(uuid.uuid4()),
                    user_id=subscription.user_id,
                    company_id=subscription.company_id,
                    plan_id=FREE_PLAN_ID,
                    status=SubscriptionStatus.ACTIVE,
                    current_period_start=now,
                    current_period_end=_free_period_end(now),
                    cancel_at_period_end=False
                )
                db.add(free)
                db.add(SubscriptionHistory(
                    id=str(uuid.uuid4()),
                    user_id=subscription.user_id,
                    company_id=subscription.company_id,
                    subscription_id=free.id,
                    old_tier=plan.tier if plan else None,
                    new_tier='free',
                    reason='expired',
                    changed_by='system',
                    details=json.dumps({
                        'expired_subscription_id': subscription.id,
                        'current_period_end': subscription.current_period_end.isoformat()
                    })
                ))

            db.commit()
            self.logger.info(f"expire_subscriptions: Success - expired: {len(expired)}")
            return len(expired)
        except Exception as e:
            db.rollback()
            self.logger.error(f"expire_subscriptions: Failure - {e}")
            raise

    def get_subscription_history(self, db: Session, user_id: str) -> list[dict]:
        self.logger.info(f"get_subscription_history: Entry - user: {user_id}")

        history = db.query(SubscriptionHistory).filter(
            SubscriptionHistory.user_id == user_id
        ).order_by(SubscriptionHistory.created_at.desc()).all()

        result = [
            {
                'id': entry.id,
                'old_tier': entry.old_tier,
                'new_tier': entry.new_tier,
                'reason': entry.reason,
                'changed_by': entry.changed_by,
                'metadata': json.loads(entry.details) if entry.details else None,
                'created_at': entry.created_at.isoformat()
            }
            for entry in history
        ]
        self.logger.info(f"get_subscription_history: Success - user: {user_id}, count: {len(result)}")
        return result
