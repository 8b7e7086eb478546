"""Add subscription plans, subscriptions, usage metrics and notifications

Revision ID: subscription_001
Revises:
Create Date: 2025-01-15 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
import json


# revision identifiers, used by Alembic.
revision = 'subscription_001'
down_revision = None
branch_labels = None
depends_on = None


def _plan_rows():
    from cortexbuild.services.plan_catalog import PLAN_SEED
    return [
        {**seed, 'billing_period': 'monthly', 'limits': json.dumps(seed['limits']), 'features': json.dumps(seed['features'])}
        for seed in PLAN_SEED
    ]


def upgrade():
    # Create subscription_plans table
    op.create_table('subscription_plans',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('tier', sa.String(), nullable=False),
        sa.Column('price_monthly', sa.Numeric(10, 2), nullable=False),
        sa.Column('billing_period', sa.String(), nullable=False, server_default='monthly'),
        sa.Column('limits', sa.JSON(), nullable=False),
        sa.Column('features', sa.JSON(), nullable=False),
        sa.Column('stripe_product_id', sa.String(), nullable=True),
        sa.Column('stripe_price_id', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_subscription_plans_tier'), 'subscription_plans', ['tier'], unique=False)

    # Create user_subscriptions table
    op.create_table('user_subscriptions',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('company_id', sa.String(), nullable=False),
        sa.Column('plan_id', sa.String(), nullable=False),
        sa.Column('status', sa.Enum('ACTIVE', 'CANCELED', 'PAST_DUE', 'TRIALING', name='subscriptionstatus'), nullable=False),
        sa.Column('current_period_start', sa.DateTime(), nullable=False),
        sa.Column('current_period_end', sa.DateTime(), nullable=False),
        sa.Column('cancel_at_period_end', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('stripe_subscription_id', sa.String(), nullable=True),
        sa.Column('stripe_customer_id', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['plan_id'], ['subscription_plans.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_user_subscriptions_id'), 'user_subscriptions', ['id'], unique=False)
    op.create_index(op.f('ix_user_subscriptions_user_id'), 'user_subscriptions', ['user_id'], unique=False)
    op.create_index(op.f('ix_user_subscriptions_company_id'), 'user_subscriptions', ['company_id'], unique=False)
    op.create_index(op.f('ix_user_subscriptions_status'), 'user_subscriptions', ['status'], unique=False)

    # Create usage_metrics table
    op.create_table('usage_metrics',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('company_id', sa.String(), nullable=False),
        sa.Column('period', sa.String(), nullable=False),
        sa.Column('flow_runs', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('sandbox_runs', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('ai_queries', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('api_calls', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('storage_gb', sa.Float(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'company_id', 'period', name='uq_usage_metrics_user_company_period')
    )
    op.create_index(op.f('ix_usage_metrics_user_id'), 'usage_metrics', ['user_id'], unique=False)
    op.create_index(op.f('ix_usage_metrics_company_id'), 'usage_metrics', ['company_id'], unique=False)
    op.create_index(op.f('ix_usage_metrics_period'), 'usage_metrics', ['period'], unique=False)

    # Create subscription_history table
    op.create_table('subscription_history',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('company_id', sa.String(), nullable=True),
        sa.Column('subscription_id', sa.String(), nullable=True),
        sa.Column('old_tier', sa.String(), nullable=True),
        sa.Column('new_tier', sa.String(), nullable=False),
        sa.Column('reason', sa.String(), nullable=True),
        sa.Column('changed_by', sa.String(), nullable=True),
        sa.Column('metadata', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_subscription_history_id'), 'subscription_history', ['id'], unique=False)
    op.create_index(op.f('ix_subscription_history_user_id'), 'subscription_history', ['user_id'], unique=False)
    op.create_index(op.f('ix_subscription_history_subscription_id'), 'subscription_history', ['subscription_id'], unique=False)
    op.create_index(op.f('ix_subscription_history_created_at'), 'subscription_history', ['created_at'], unique=False)

    # Create subscription_notifications table
    op.create_table('subscription_notifications',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('company_id', sa.String(), nullable=True),
        sa.Column('type', sa.String(), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('metadata', sa.Text(), nullable=True),
        sa.Column('read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_subscription_notifications_id'), 'subscription_notifications', ['id'], unique=False)
    op.create_index(op.f('ix_subscription_notifications_user_id'), 'subscription_notifications', ['user_id'], unique=False)
    op.create_index(op.f('ix_subscription_notifications_type'), 'subscription_notifications', ['type'], unique=False)
    op.create_index(op.f('ix_subscription_notifications_created_at'), 'subscription_notifications', ['created_at'], unique=False)

    # Seed the plan catalog
    plans = sa.table('subscription_plans',
        sa.column('id', sa.String),
        sa.column('name', sa.String),
        sa.column('tier', sa.String),
        sa.column('price_monthly', sa.Numeric),
        sa.column('billing_period', sa.String),
        sa.column('limits', sa.Text),
        sa.column('features', sa.Text),
    )
    op.bulk_insert(plans, _plan_rows())


def downgrade():
    op.drop_table('subscription_notifications')
    op.drop_table('subscription_history')
    op.drop_table('usage_metrics')
    op.drop_table('user_subscriptions')
    op.drop_index(op.f('ix_subscription_plans_tier'), table_name='subscription_plans')
    op.drop_table('subscription_plans')
    if op.get_bind().dialect.name == "postgresql":
        op.execute("DROP TYPE IF EXISTS subscriptionstatus")
