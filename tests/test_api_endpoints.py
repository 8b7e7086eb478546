"""
Tests for API endpoints
"""

import pytest
from fastapi.testclient import TestClient

from cortexbuild.core.database import get_db
from cortexbuild.core.middleware import get_current_user
from cortexbuild.models.usage_metrics import UsageMetrics
from cortexbuild.services.quota_service import current_period


@pytest.fixture
def app():
    # Import after Firebase is mocked
    from cortexbuild.main import app
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def mock_current_user():
    """Mock current user for authenticated requests"""
    return {
        "uid": "test_user_123",
        "email": "test@example.com",
        "role": "developer",
        "company_id": "company_1",
        "token": {"uid": "test_user_123"}
    }


@pytest.fixture
def client(app, seeded_db, mock_current_user):
    """Test client with the database and the authenticated user overridden"""
    def _get_db():
        yield seeded_db

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_current_user] = lambda: mock_current_user
    return TestClient(app)


class TestHealthEndpoint:
    def test_health_check(self, app):
        response = TestClient(app).get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


class TestAuthentication:
    def test_missing_token_is_rejected(self, app):
        response = TestClient(app).get("/api/v1/subscriptions/current")

        assert response.status_code in (401, 403)

    def test_invalid_token_is_rejected(self, app, mock_firebase_admin):
        mock_firebase_admin.verify_id_token.side_effect = Exception("Token expired")

        response = TestClient(app).get(
            "/api/v1/subscriptions/current",
            headers={"Authorization": "Bearer expired-token"}
        )

        assert response.status_code == 401


class TestSubscriptionEndpoints:
    def test_list_plans(self, client):
        response = client.get("/api/v1/subscriptions/plans")

        assert response.status_code == 200
        assert [plan["tier"] for plan in response.json()["plans"]] == ["free", "pro", "enterprise"]

    def test_get_unknown_plan(self, client):
        assert client.get("/api/v1/subscriptions/plans/plan-gold").status_code == 404

    def test_current_creates_free_subscription(self, client):
        response = client.get("/api/v1/subscriptions/current")

        assert response.status_code == 200
        subscription = response.json()["subscription"]
        assert subscription["plan_id"] == "plan-free"
        assert subscription["plan"]["limits"]["max_runs"] == 100
        assert subscription["usage"]["flow_runs"] == 0

    def test_change_plan_and_history(self, client):
        response = client.post("/api/v1/subscriptions/change", json={"plan_id": "plan-pro-monthly"})

        assert response.status_code == 200
        assert response.json()["subscription"]["plan_id"] == "plan-pro-monthly"

        history = client.get("/api/v1/subscriptions/history").json()["history"]
        assert history[0]["new_tier"] == "pro"
        assert history[0]["changed_by"] == "test_user_123"

    def test_change_to_invalid_plan(self, client):
        response = client.post("/api/v1/subscriptions/change", json={"plan_id": "plan-gold"})

        assert response.status_code == 400

    def test_cancel_without_subscription(self, client):
        assert client.post("/api/v1/subscriptions/cancel").status_code == 404

    def test_cancel_paid_subscription(self, client):
        client.post("/api/v1/subscriptions/change", json={"plan_id": "plan-pro-monthly"})

        response = client.post("/api/v1/subscriptions/cancel")

        assert response.status_code == 200
        assert response.json()["subscription"]["cancel_at_period_end"] is True


class TestUsageEndpoints:
    def test_track_increments_and_reports(self, client):
        client.get("/api/v1/subscriptions/current")

        response = client.post("/api/v1/usage/flowRuns/track")

        assert response.status_code == 200
        assert response.json() == {"allowed": True, "current": 1, "limit": 100, "warning": False}

    def test_track_over_quota_returns_429(self, client, seeded_db):
        client.get("/api/v1/subscriptions/current")
        seeded_db.add(UsageMetrics(user_id="test_user_123", company_id="company_1", period=current_period(), sandbox_runs=10))
        seeded_db.commit()

        response = client.post("/api/v1/usage/sandboxRuns/track")

        assert response.status_code == 429
        assert response.json()["detail"]["limit"] == 10

    def test_track_near_limit_creates_warning(self, client, seeded_db):
        client.get("/api/v1/subscriptions/current")
        seeded_db.add(UsageMetrics(user_id="test_user_123", company_id="company_1", period=current_period(), ai_queries=39))
        seeded_db.commit()

        response = client.post("/api/v1/usage/aiQueries/track")

        assert response.json()["warning"] is True
        notifications = client.get("/api/v1/notifications").json()["notifications"]
        assert len(notifications) == 1

        read = client.post(f"/api/v1/notifications/{notifications[0]['id']}/read")
        assert read.json()["read"] is True
        assert client.get("/api/v1/notifications?unread_only=true").json()["notifications"] == []

    def test_consume(self, client):
        client.get("/api/v1/subscriptions/current")

        response = client.post("/api/v1/usage/aiQueries/consume")

        assert response.status_code == 200
        assert response.json()["current"] == 1

    def test_quota_without_subscription(self, client):
        response = client.get("/api/v1/usage/flowRuns/quota")

        assert response.json() == {"allowed": False, "current": 0, "limit": 0}

    def test_unknown_metric(self, client):
        assert client.post("/api/v1/usage/storage/track").status_code == 400

    def test_usage_status(self, client):
        client.get("/api/v1/subscriptions/current")

        response = client.get("/api/v1/usage")

        assert response.status_code == 200
        assert set(response.json()["quotas"]) == {"flowRuns", "sandboxRuns", "aiQueries", "apiCalls"}

    def test_mark_unknown_notification_read(self, client):
        assert client.post("/api/v1/notifications/missing/read").status_code == 404


class TestNavigationEndpoints:
    def test_bootstrap_for_developer(self, client):
        response = client.get("/api/v1/navigation/bootstrap")

        assert response.status_code == 200
        body = response.json()
        assert body["stack"][0]["screen"] == "developer-dashboard"
        assert body["dashboard"] == "developer-dashboard"

    def test_deep_link_into_project(self, client):
        response = client.post("/api/v1/navigation/deep-link", json={
            "stack": [{"screen": "global-dashboard"}],
            "project_id": "p1",
            "screen": "rfi-detail",
            "params": {"rfiId": "r1"},
            "projects": [{"id": "p1", "name": "Riverside Tower"}]
        })

        body = response.json()
        assert body["resolved"] is True
        assert [frame["screen"] for frame in body["stack"]] == ["project-home", "rfi-detail"]
        assert body["view"] == "rfi-detail"

    def test_deep_link_unknown_project(self, client):
        response = client.post("/api/v1/navigation/deep-link", json={
            "stack": [{"screen": "global-dashboard"}],
            "project_id": "p404",
            "screen": "rfi-detail",
            "projects": []
        })

        body = response.json()
        assert body["resolved"] is False
        assert body["stack"] == [{"screen": "global-dashboard", "params": {}, "project": None}]
        assert body["view"] == "global-dashboard"

    def test_deep_link_to_unregistered_screen_renders_placeholder(self, client):
        response = client.post("/api/v1/navigation/deep-link", json={"screen": "quantum-planner"})

        assert response.json()["view"] == "placeholder-tool"
