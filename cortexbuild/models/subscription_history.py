from sqlalchemy import Column, String, DateTime, Text
from cortexbuild.core.database import Base
from datetime import datetime


class SubscriptionHistory(Base):
    __tablename__ = "subscription_history"

    id = Column(String, primary_key=True, index=True)
    user_id = Column(String, nullable=False, index=True)
    company_id = Column(String, nullable=True)
    subscription_id = Column(String, nullable=True, index=True)
    old_tier = Column(String, nullable=True)
    new_tier = Column(String, nullable=False)
    reason = Column(String, nullable=True)  # 'upgrade', 'downgrade', 'cancel', 'expired'
    changed_by = Column(String, nullable=True)
    # 'metadata' is reserved on declarative classes, so the attribute is 'details'
    details = Column("metadata", Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
