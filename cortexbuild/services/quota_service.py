import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from cortexbuild.models.usage_metrics import UsageMetrics
from cortexbuild.services.plan_catalog import UNLIMITED, PlanCatalog
from cortexbuild.services.subscription_service import SubscriptionService

logger = logging.getLogger(__name__)

# metric -> (plan limit key, usage_metrics column)
METRICS = {
    'flowRuns': ('max_runs', 'flow_runs'),
    'sandboxRuns': ('max_sandbox_runs', 'sandbox_runs'),
    'aiQueries': ('max_ai_queries', 'ai_queries'),
    'apiCalls': ('max_api_calls_per_minute', 'api_calls'),
}


def current_period(now: Optional[datetime] = None) -> str:
    """Usage period for a moment in time: the UTC calendar month as YYYY-MM"""
    return (now or datetime.utcnow()).strftime('%Y-%m')


def _metric_fields(metric: str) -> tuple[str, str]:
    try:
        return METRICS[metric]
    except KeyError:
        raise ValueError(f"Unknown metric: {metric}")


def _denied() -> dict:
    return {'allowed': False, 'current': 0, 'limit': 0}


class QuotaService:
    """
    Per-user, per-company, per-month usage counters checked against plan limits.

    check_quota followed by track_usage is not atomic: concurrent callers can
    both pass the check before either increments. consume_quota performs the
    check and the increment as one conditional UPDATE.
    """

    def __init__(self, subscriptions: Optional[SubscriptionService] = None):
        self.subscriptions = subscriptions or SubscriptionService()
        self.catalog: PlanCatalog = self.subscriptions.catalog
        self.logger = logging.getLogger(__name__)

    def _resolve_limit(self, db: Session, user_id: str, company_id: str, metric: str) -> Optional[int]:
        """Plan limit for the metric, or None when the user has no usable subscription/plan."""
        subscription = self.subscriptions.get_user_subscription(db, user_id, company_id)
        if not subscription:
            self.logger.info(f"_resolve_limit: No active subscription - user: {user_id}, company: {company_id}")
            return None

        plan = self.catalog.get_plan_by_id(db, subscription.plan_id)
        if not plan:
            self.logger.warning(f"_resolve_limit: Plan not found - {subscription.plan_id}")
            return None

        limit_key, _ = _metric_fields(metric)
        limit = self.catalog.get_limit(plan, limit_key)
        if limit is None:
            self.logger.warning(f"_resolve_limit: Plan {plan.id} has no limit {limit_key}")
        return limit

    def _get_counter(self, db: Session, user_id: str, company_id: str, column: str, period: str) -> int:
        row = db.query(UsageMetrics).filter(
            UsageMetrics.user_id == user_id,
            UsageMetrics.company_id == company_id,
            UsageMetrics.period == period
        ).first()
        return int(getattr(row, column) or 0) if row else 0

    def _upsert_counter(self, db: Session, user_id: str, company_id: str, column: str, period: str, amount: int):
        """INSERT the period row with the counter at `amount`, or add `amount` to the existing row."""
        dialect = db.get_bind().dialect.name
        if dialect == 'postgresql':
            insert = postgresql.insert
        elif dialect == 'sqlite':
            insert = sqlite.insert
        else:
            raise RuntimeError(f"Upsert not supported for dialect: {dialect}")

        now = datetime.utcnow()
        stmt = insert(UsageMetrics).values(
            user_id=user_id,
            company_id=company_id,
            period=period,
            created_at=now,
            updated_at=now,
            **{column: amount}
        )
        if amount:
            stmt = stmt.on_conflict_do_update(
                index_elements=['user_id', 'company_id', 'period'],
                set_={column: getattr(UsageMetrics, column) + amount, 'updated_at': now}
            )
        else:
            stmt = stmt.on_conflict_do_nothing(index_elements=['user_id', 'company_id', 'period'])
        db.execute(stmt)

    def check_quota(self, db: Session, user_id: str, company_id: str, metric: str) -> dict:
        """
        Returns dict with:
            - 'allowed': bool - True when current < limit, or the limit is unlimited
            - 'current': int - counter for the current period
            - 'limit': int - plan limit, -1 for unlimited, 0 when denied for lack of a plan
        """
        self.logger.info(f"check_quota: Entry - user: {user_id}, company: {company_id}, metric: {metric}")

        try:
            _, column = _metric_fields(metric)

            limit = self._resolve_limit(db, user_id, company_id, metric)
            if limit is None:
                return _denied()

            if limit == UNLIMITED:
                self.logger.info(f"check_quota: Unlimited - user: {user_id}, metric: {metric}")
                return {'allowed': True, 'current': 0, 'limit': UNLIMITED}

            current = self._get_counter(db, user_id, company_id, column, current_period())
            allowed = current < limit

            self.logger.info(f"check_quota: Success - user: {user_id}, metric: {metric}, count: {current}/{limit}, allowed: {allowed}")
            return {'allowed': allowed, 'current': current, 'limit': limit}
        except Exception as e:
            self.logger.error(f"check_quota: Failure - {e}")
            raise

    def track_usage(self, db: Session, user_id: str, company_id: str, metric: str, period: Optional[str] = None):
        """Add exactly one to the metric's counter for the period (default: current month)."""
        self.logger.info(f"track_usage: Entry - user: {user_id}, company: {company_id}, metric: {metric}")

        try:
            _, column = _metric_fields(metric)
            self._upsert_counter(db, user_id, company_id, column, period or current_period(), 1)
            db.commit()
            self.logger.info(f"track_usage: Success - user: {user_id}, metric: {metric}")
        except Exception as e:
            db.rollback()
            self.logger.error(f"track_usage: Failure - {e}")
            raise

    def consume_quota(self, db: Session, user_id: str, company_id: str, metric: str) -> dict:
        """
        Check and increment in one statement.
        Returns the check_quota shape; 'current' is the counter after a granted increment.
        """
        self.logger.info(f"consume_quota: Entry - user: {user_id}, company: {company_id}, metric: {metric}")

        try:
            _, column = _metric_fields(metric)
            period = current_period()

            limit = self._resolve_limit(db, user_id, company_id, metric)
            if limit is None:
                return _denied()

            if limit == UNLIMITED:
                self._upsert_counter(db, user_id, company_id, column, period, 1)
                db.commit()
                return {'allowed': True, 'current': 0, 'limit': UNLIMITED}

            self._upsert_counter(db, user_id, company_id, column, period, 0)
            counter = getattr(UsageMetrics, column)
            result = db.execute(
                update(UsageMetrics)
                .where(
                    UsageMetrics.user_id == user_id,
                    UsageMetrics.company_id == company_id,
                    UsageMetrics.period == period,
                    counter < limit
                )
                .values({column: counter + 1, 'updated_at': datetime.utcnow()})
                .execution_options(synchronize_session=False)
            )
            db.commit()

            allowed = result.rowcount == 1
            current = self._get_counter(db, user_id, company_id, column, period)
            self.logger.info(f"consume_quota: Success - user: {user_id}, metric: {metric}, count: {current}/{limit}, allowed: {allowed}")
            return {'allowed': allowed, 'current': current, 'limit': limit}
        except Exception as e:
            db.rollback()
            self.logger.error(f"consume_quota: Failure - {e}")
            raise

    def get_current_usage(self, db: Session, user_id: str, company_id: str, period: Optional[str] = None) -> dict:
        period = period or current_period()
        row = db.query(UsageMetrics).filter(
            UsageMetrics.user_id == user_id,
            UsageMetrics.company_id == company_id,
            UsageMetrics.period == period
        ).first()

        return {
            'user_id': user_id,
            'company_id': company_id,
            'period': period,
            'flow_runs': row.flow_runs if row else 0,
            'sandbox_runs': row.sandbox_runs if row else 0,
            'ai_queries': row.ai_queries if row else 0,
            'api_calls': row.api_calls if row else 0,
            'storage_gb': float(row.storage_gb or 0) if row else 0.0,
        }

    def get_quota_status(self, db: Session, user_id: str, company_id: str) -> dict:
        self.logger.info(f"get_quota_status: Entry - user: {user_id}")

        try:
            subscription = self.subscriptions.get_user_subscription(db, user_id, company_id)
            plan = self.catalog.get_plan_by_id(db, subscription.plan_id) if subscription else None
            usage = self.get_current_usage(db, user_id, company_id)

            result = {
                'plan_id': plan.id if plan else None,
                'plan_tier': plan.tier if plan else None,
                'period': usage['period'],
                'quotas': {}
            }

            for metric, (limit_key, column) in METRICS.items():
                limit = (self.catalog.get_limit(plan, limit_key) if plan else None) or 0
                used = usage[column]
                unlimited = limit == UNLIMITED
                result['quotas'][metric] = {
                    'used': used,
                    'limit': limit,
                    'remaining': -1 if unlimited else max(0, limit - used),
                    'unlimited': unlimited,
                    'percent': None if unlimited or limit <= 0 else round(used / limit * 100, 1)
                }

            self.logger.info(f"get_quota_status: Success - user: {user_id}")
            return result
        except Exception as e:
            self.logger.error(f"get_quota_status: Failure - {e}")
            raise

    def reset_usage(
        self,
        db: Session,
        user_id: str,
        company_id: str,
        period: Optional[str] = None,
        metric: Optional[str] = None
    ) -> int:
        """
        Reset usage counters to 0.

        Args:
            db: Database session.
            user_id: User ID.
            company_id: Company ID.
            period: YYYY-MM period. Defaults to the current month.
            metric: Single metric to reset. Defaults to None (all metrics).

        Returns:
            int: Number of rows updated.
        """
        self.logger.info(f"reset_usage: Entry - user: {user_id}, period: {period}, metric: {metric}")

        try:
            if metric:
                columns = [_metric_fields(metric)[1]]
            else:
                columns = [column for _, column in METRICS.values()]

            rows_updated = db.query(UsageMetrics).filter(
                UsageMetrics.user_id == user_id,
                UsageMetrics.company_id == company_id,
                UsageMetrics.period == (period or current_period())
            ).update({column: 0 for column in columns}, synchronize_session=False)
            db.commit()

            self.logger.info(f"reset_usage: Success - user: {user_id}, rows updated: {rows_updated}")
            return rows_updated
        except Exception as e:
            db.rollback()
            self.logger.error(f"reset_usage: Failure - {e}")
            raise
