from sqlalchemy import Column, String, DateTime, Text, Boolean
from cortexbuild.core.database import Base
from datetime import datetime


class SubscriptionNotification(Base):
    __tablename__ = "subscription_notifications"

    id = Column(String, primary_key=True, index=True)
    user_id = Column(String, nullable=False, index=True)
    company_id = Column(String, nullable=True)
    type = Column(String, nullable=False, index=True)  # 'usage_warning'
    title = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    details = Column("metadata", Text, nullable=True)  # JSON
    read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
