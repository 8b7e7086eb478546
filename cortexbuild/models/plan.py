from sqlalchemy import Column, String, DateTime, Numeric, JSON
from cortexbuild.core.database import Base
from datetime import datetime


class Plan(Base):
    __tablename__ = "subscription_plans"

    id = Column(String, primary_key=True)  # 'plan-free', 'plan-pro-monthly', ...
    name = Column(String, nullable=False)
    tier = Column(String, nullable=False, index=True)  # 'free', 'pro', 'enterprise'
    price_monthly = Column(Numeric(10, 2), nullable=False)
    billing_period = Column(String, nullable=False, default='monthly')
    limits = Column(JSON, nullable=False)  # maxFlows, maxRuns, ... (-1 = unlimited)
    features = Column(JSON, nullable=False)  # customDomain, whiteLabel, ... as booleans
    stripe_product_id = Column(String, nullable=True)
    stripe_price_id = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
