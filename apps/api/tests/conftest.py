"""
Pytest configuration and fixtures

IMPORTANT: All tests use transactional rollback isolation.
Nothing created during tests persists to the database.

The suite runs against an in-memory SQLite database; the environment is
set before any application module reads settings.
"""
import os
import sys

os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("SECRET_KEY", "test-secret-key-that-is-at-least-32-characters")
os.environ.setdefault("LOG_FORMAT", "text")

# Add the parent directory to the path so we can import from services
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest  # noqa: E402
from datetime import date  # noqa: E402
from uuid import uuid4  # noqa: E402

from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from core.database import Base, engine, get_db  # noqa: E402
from core.security import create_access_token  # noqa: E402
from models import AccountabilityPair, User  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def _create_schema():
    """Create every table once for the in-memory database."""
    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)


@pytest.fixture(scope="function")
def db_session():
    """
    Create a database session with transactional rollback.

    Application code may call commit() and rollback() freely; both only
    act on a savepoint inside the outer transaction, which is rolled back
    after the test completes.
    """
    connection = engine.connect()
    transaction = connection.begin()
    session = Session(bind=connection, join_transaction_mode="create_savepoint")

    yield session

    session.close()
    transaction.rollback()
    connection.close()


def _make_user(db_session, **fields) -> User:
    user = User(
        email=f"test_{uuid4()}@example.com",
        display_name=fields.pop("display_name", "Test User"),
        **fields,
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def test_user(db_session):
    """A UTC user with no account start floor."""
    return _make_user(db_session, timezone="UTC")


@pytest.fixture
def make_user(db_session):
    """Factory for extra users (other timezones, start dates, partners)."""
    def _factory(**fields):
        return _make_user(db_session, **fields)
    return _factory


@pytest.fixture
def partner(db_session, test_user):
    """A second user paired with test_user."""
    other = _make_user(db_session, display_name="Partner", timezone="UTC")
    db_session.add(AccountabilityPair(user_id=test_user.id, partner_id=other.id))
    db_session.commit()
    return other


@pytest.fixture
def account_start(db_session, test_user):
    test_user.account_start_date = date(2026, 1, 1)
    db_session.commit()
    return test_user.account_start_date


@pytest.fixture
def client(db_session):
    """TestClient bound to the test's transactional session."""
    from main import app

    def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    yield TestClient(app)
    app.dependency_overrides.pop(get_db, None)


@pytest.fixture
def auth_headers(test_user):
    token = create_access_token({"sub": str(test_user.id)})
    return {"Authorization": f"Bearer {token}"}
