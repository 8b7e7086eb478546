"""
Tests for usage warning notifications
"""

from datetime import datetime, timedelta

import pytest

from cortexbuild.models.notification import SubscriptionNotification
from cortexbuild.models.usage_metrics import UsageMetrics
from cortexbuild.services.notification_service import (USAGE_WARNING,
                                                       NotificationService)
from cortexbuild.services.quota_service import current_period


@pytest.fixture
def notifications():
    return NotificationService()


@pytest.fixture
def pro_user(seeded_db, subscribe):
    """Pro user (1000 AI queries per month) with a usage row for this month"""
    subscribe("u1", "c1", "plan-pro-monthly")
    usage = UsageMetrics(user_id="u1", company_id="c1", period=current_period())
    seeded_db.add(usage)
    seeded_db.commit()
    return usage


def set_ai_queries(db, usage, value):
    usage.ai_queries = value
    db.commit()


def test_no_warning_below_threshold(notifications, seeded_db, pro_user):
    set_ai_queries(seeded_db, pro_user, 799)

    assert notifications.check_usage_warning(seeded_db, "u1", "c1", "aiQueries") is None


def test_warning_at_threshold(notifications, seeded_db, pro_user):
    set_ai_queries(seeded_db, pro_user, 800)

    notification = notifications.check_usage_warning(seeded_db, "u1", "c1", "aiQueries")

    assert notification is not None
    assert notification.type == USAGE_WARNING
    assert "80%" in notification.message
    assert "800/1000" in notification.message


def test_no_warning_once_limit_reached(notifications, seeded_db, pro_user):
    set_ai_queries(seeded_db, pro_user, 1000)

    assert notifications.check_usage_warning(seeded_db, "u1", "c1", "aiQueries") is None


def test_warning_deduplicated_within_window(notifications, seeded_db, pro_user):
    set_ai_queries(seeded_db, pro_user, 850)
    now = datetime.utcnow()

    assert notifications.check_usage_warning(seeded_db, "u1", "c1", "aiQueries", now=now) is not None
    assert notifications.check_usage_warning(seeded_db, "u1", "c1", "aiQueries", now=now + timedelta(hours=2)) is None
    assert notifications.check_usage_warning(seeded_db, "u1", "c1", "aiQueries", now=now + timedelta(hours=25)) is not None
    assert seeded_db.query(SubscriptionNotification).count() == 2


def test_no_warning_for_unlimited_plan(notifications, seeded_db, subscribe):
    subscribe("u2", "c1", "plan-enterprise-monthly")

    assert notifications.check_usage_warning(seeded_db, "u2", "c1", "flowRuns") is None


def test_list_and_mark_read(notifications, seeded_db, pro_user):
    set_ai_queries(seeded_db, pro_user, 900)
    notification = notifications.check_usage_warning(seeded_db, "u1", "c1", "aiQueries")

    listed = notifications.list_notifications(seeded_db, "u1", unread_only=True)
    assert [n['id'] for n in listed] == [notification.id]
    assert listed[0]['metadata'] == {'metric': 'aiQueries', 'current': 900, 'limit': 1000, 'usage_percent': 90.0}

    notifications.mark_read(seeded_db, "u1", notification.id)

    assert notifications.list_notifications(seeded_db, "u1", unread_only=True) == []
    assert len(notifications.list_notifications(seeded_db, "u1")) == 1


def test_mark_read_other_users_notification_raises(notifications, seeded_db, pro_user):
    set_ai_queries(seeded_db, pro_user, 900)
    notification = notifications.check_usage_warning(seeded_db, "u1", "c1", "aiQueries")

    with pytest.raises(ValueError, match="Notification not found"):
        notifications.mark_read(seeded_db, "someone-else", notification.id)
