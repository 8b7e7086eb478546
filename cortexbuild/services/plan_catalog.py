import logging
from typing import Optional

from sqlalchemy.orm import Session

from cortexbuild.models.plan import Plan

logger = logging.getLogger(__name__)

UNLIMITED = -1

FREE_PLAN_ID = 'plan-free'

PLAN_SEED = [
    {
        'id': FREE_PLAN_ID,
        'name': 'Free',
        'tier': 'free',
        'price_monthly': 0,
        'limits': {
            'max_flows': 3,
            'max_runs': 100,
            'max_sandbox_runs': 10,
            'max_ai_queries': 50,
            'max_api_calls_per_minute': 10,
            'max_team_members': 1,
            'max_storage_gb': 1,
        },
        'features': {
            'custom_domain': False,
            'white_label': False,
            'priority_support': False,
            'advanced_analytics': False,
            'custom_integrations': False,
            'sso_enabled': False,
        },
    },
    {
        'id': 'plan-pro-monthly',
        'name': 'Pro',
        'tier': 'pro',
        'price_monthly': 49,
        'limits': {
            'max_flows': 50,
            'max_runs': 5000,
            'max_sandbox_runs': 100,
            'max_ai_queries': 1000,
            'max_api_calls_per_minute': 100,
            'max_team_members': 10,
            'max_storage_gb': 50,
        },
        'features': {
            'custom_domain': False,
            'white_label': False,
            'priority_support': True,
            'advanced_analytics': True,
            'custom_integrations': True,
            'sso_enabled': False,
        },
    },
    {
        'id': 'plan-enterprise-monthly',
        'name': 'Enterprise',
        'tier': 'enterprise',
        'price_monthly': 199,
        'limits': {
            'max_flows': UNLIMITED,
            'max_runs': UNLIMITED,
            'max_sandbox_runs': UNLIMITED,
            'max_ai_queries': UNLIMITED,
            'max_api_calls_per_minute': 1000,
            'max_team_members': UNLIMITED,
            'max_storage_gb': 500,
        },
        'features': {
            'custom_domain': True,
            'white_label': True,
            'priority_support': True,
            'advanced_analytics': True,
            'custom_integrations': True,
            'sso_enabled': True,
        },
    },
]


def plan_to_dict(plan: Plan) -> dict:
    return {
        'id': plan.id,
        'name': plan.name,
        'tier': plan.tier,
        'price_monthly': float(plan.price_monthly),
        'billing_period': plan.billing_period,
        'limits': dict(plan.limits),
        'features': dict(plan.features),
    }


class PlanCatalog:
    """Read-only plan reference data. Plans are seeded once and never edited in place."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def seed_plans_if_empty(self, db: Session) -> int:
        """Seed plans table if empty. Returns the number of plans inserted."""
        try:
            plan_count = db.query(Plan).count()
            if plan_count > 0:
                return 0

            self.logger.info("seed_plans_if_empty: Plans table is empty, seeding plans")
            for seed in PLAN_SEED:
                db.add(Plan(billing_period='monthly', **seed))
            db.commit()
            self.logger.info(f"seed_plans_if_empty: Success - seeded {len(PLAN_SEED)} plans")
            return len(PLAN_SEED)
        except Exception as e:
            db.rollback()
            self.logger.error(f"seed_plans_if_empty: Failure - {e}")
            # Don't raise - lookups still work against whatever rows exist
            return 0

    def get_all_plans(self, db: Session) -> list[dict]:
        self.logger.info("get_all_plans: Entry")
        self.seed_plans_if_empty(db)

        plans = db.query(Plan).order_by(Plan.price_monthly).all()
        self.logger.info(f"get_all_plans: Success - {len(plans)} plans")
        return [plan_to_dict(plan) for plan in plans]

    def get_plan_by_id(self, db: Session, plan_id: str) -> Optional[Plan]:
        return db.query(Plan).filter(Plan.id == plan_id).first()

    @staticmethod
    def get_limit(plan: Plan, limit_key: str) -> Optional[int]:
        """Limit value for a plan (-1 = unlimited), None when the plan has no such limit"""
        return (plan.limits or {}).get(limit_key)
