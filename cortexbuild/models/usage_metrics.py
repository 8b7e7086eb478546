from sqlalchemy import Column, String, Integer, Float, DateTime, UniqueConstraint
from cortexbuild.core.database import Base
from datetime import datetime


class UsageMetrics(Base):
    __tablename__ = "usage_metrics"
    __table_args__ = (
        UniqueConstraint("user_id", "company_id", "period", name="uq_usage_metrics_user_company_period"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String, nullable=False, index=True)
    company_id = Column(String, nullable=False, index=True)
    period = Column(String, nullable=False, index=True)  # YYYY-MM
    flow_runs = Column(Integer, nullable=False, default=0)
    sandbox_runs = Column(Integer, nullable=False, default=0)
    ai_queries = Column(Integer, nullable=False, default=0)
    api_calls = Column(Integer, nullable=False, default=0)
    storage_gb = Column(Float, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
