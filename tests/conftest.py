import pytest
import os
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set env before importing app components
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SLACK_BOT_TOKEN"] = ""
os.environ["SLACK_SIGNING_SECRET"] = ""

from pto_service.database import Base, get_db
from pto_service.main import app
from pto_service.models.user import User
from pto_service.services.policy_store import PolicyStore, SHORT_TERM
from fastapi.testclient import TestClient

# SQLite in-memory database configuration
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """Fresh schema with the default PTO types for each test function."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    PolicyStore(session).seed_defaults()

    yield session

    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def make_user(db_session):
    """Factory for users; pass manager=<User> to set the approver."""
    def _make_user(slack_id, name=None, manager=None, is_admin=False, is_student=False):
        user = User(
            slack_id=slack_id,
            name=name or slack_id,
            manager_id=manager.id if manager else None,
            is_admin=is_admin,
            is_student=is_student,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user
    return _make_user


@pytest.fixture(scope="function")
def manager(make_user):
    return make_user("UMANAGER", "Maria Manager")


@pytest.fixture(scope="function")
def employee(make_user, manager):
    return make_user("UEMPLOYEE", "Erik Employee", manager=manager)


@pytest.fixture(scope="function")
def admin_user(make_user):
    return make_user("UADMIN", "Ada Admin", is_admin=True)


@pytest.fixture(scope="function")
def set_allowance(db_session):
    """Override the allowance of a short-term type for a test."""
    def _set_allowance(name, days, category=SHORT_TERM):
        PolicyStore(db_session).update_policy(category, name, {"annual_allowance_days": days})
    return _set_allowance


@pytest.fixture(scope="function")
def client(db_session):
    """Get a TestClient that uses the test database session via dependency override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
