from cortexbuild.models.plan import Plan
from cortexbuild.models.subscription import Subscription, SubscriptionStatus
from cortexbuild.models.usage_metrics import UsageMetrics
from cortexbuild.models.subscription_history import SubscriptionHistory
from cortexbuild.models.notification import SubscriptionNotification

__all__ = ["Plan", "Subscription", "SubscriptionStatus", "UsageMetrics", "SubscriptionHistory", "SubscriptionNotification"]
