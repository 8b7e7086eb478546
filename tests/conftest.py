"""
Pytest configuration for testing
"""

import json
import os
import tempfile
from unittest.mock import MagicMock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Create mock Firebase credentials before any imports
credentials_path = os.path.join(tempfile.gettempdir(), "cortexbuild-test-creds.json")
if not os.path.exists(credentials_path):
    with open(credentials_path, "w") as f:
        json.dump({
            "type": "service_account",
            "project_id": "test-project",
            "private_key_id": "test-key-id",
            "client_email": "test@test-project.iam.gserviceaccount.com",
            "client_id": "123456789",
            "token_uri": "https://oauth2.googleapis.com/token",
        }, f)

# Set up environment variables for testing before any imports
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["FIREBASE_PROJECT_ID"] = "test-project"
os.environ["FIREBASE_CREDENTIALS_PATH"] = credentials_path
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["REDIS_URL"] = "redis://localhost:6379/1"
os.environ["REDIS_PASSWORD"] = ""


# Mock Firebase Admin before it's imported
@pytest.fixture(autouse=True)
def mock_firebase_admin(monkeypatch):
    """Mock Firebase Admin SDK to avoid initialization issues in tests"""
    mock_credentials = MagicMock()
    monkeypatch.setattr("firebase_admin.credentials.Certificate", mock_credentials.Certificate)

    mock_init = MagicMock()
    monkeypatch.setattr("firebase_admin.initialize_app", mock_init)

    # cortexbuild.core.firebase holds its own reference to the auth module
    mock_auth = MagicMock()
    monkeypatch.setattr("cortexbuild.core.firebase.auth", mock_auth)

    yield mock_auth


@pytest.fixture(scope="function")
def db_engine():
    """Fresh in-memory SQLite database per test"""
    # Import after env vars are set
    from cortexbuild.core.database import Base
    import cortexbuild.models  # noqa: F401

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(db_engine):
    """Create a new database session for a test"""
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = TestingSessionLocal()

    yield session

    session.rollback()
    session.close()


@pytest.fixture
def seeded_db(db_session):
    """Session with the plan catalog seeded"""
    from cortexbuild.services.plan_catalog import PlanCatalog

    PlanCatalog().seed_plans_if_empty(db_session)
    return db_session


@pytest.fixture
def subscribe(seeded_db):
    """Put a user on a plan: subscribe('u1', 'c1', 'plan-pro-monthly')"""
    from cortexbuild.services.plan_catalog import FREE_PLAN_ID
    from cortexbuild.services.subscription_service import SubscriptionService

    service = SubscriptionService()

    def _subscribe(user_id, company_id, plan_id):
        if plan_id == FREE_PLAN_ID:
            return service.create_free_subscription(seeded_db, user_id, company_id)
        return service.change_plan(seeded_db, user_id, company_id, plan_id, changed_by="test")

    return _subscribe
