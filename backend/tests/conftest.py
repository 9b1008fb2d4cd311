# backend/tests/conftest.py
"""
Pytest configuration for the sessions API.

Every test gets a fresh in-memory SQLite schema. The API client shares the
test's session through a dependency override, so rows created by fixtures
are visible to requests and vice versa.
"""

import os
import sys

# CRITICAL: Set testing mode BEFORE any app imports!
os.environ["is_testing"] = "true"
os.environ["booking_lock_sweeper_enabled"] = "false"

# Add the backend directory to Python path so imports work
backend_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, backend_dir)

from app.core.config import settings

settings.is_testing = True

from typing import Callable, Dict

from fastapi.testclient import TestClient
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool
from tests.utils.builders import future_slot, recurring_entry

from app.api.dependencies.database import get_db
from app.auth import create_access_token
from app.core.enums import AvailabilityType, RoleName
from app.database import Base
from app.main import fastapi_app as app  # Use FastAPI instance for tests
from app.models.availability import Availability
from app.models.user import User

test_engine = create_engine(
    "sqlite+pysqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(
    autocommit=False, autoflush=False, bind=test_engine, expire_on_commit=False
)


@pytest.fixture(scope="function")
def db():
    """Create a fresh schema and session for each test."""
    Base.metadata.create_all(bind=test_engine)
    session = TestSessionLocal()

    yield session

    session.rollback()
    session.close()
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def client(db: Session):
    """Create a test client with the test database."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    test_client = TestClient(app)

    yield test_client

    app.dependency_overrides.clear()
    test_client.close()


# ============================================================================
# USERS
# ============================================================================


@pytest.fixture
def make_user(db: Session) -> Callable[..., User]:
    """Factory creating committed users with a given role."""
    counter = {"n": 0}

    def _make(role: RoleName = RoleName.MENTEE, is_active: bool = True, first_name: str = "Test") -> User:
        counter["n"] += 1
        user = User(
            email=f"{role.value}{counter['n']}@example.com",
            first_name=first_name,
            last_name=f"{role.value.title()} {counter['n']}",
            role=role.value,
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture
def test_mentor(make_user) -> User:
    return make_user(RoleName.MENTOR, first_name="Maya")


@pytest.fixture
def test_mentor_2(make_user) -> User:
    return make_user(RoleName.MENTOR, first_name="Omar")


@pytest.fixture
def test_mentee(make_user) -> User:
    return make_user(RoleName.MENTEE, first_name="Lina")


@pytest.fixture
def test_mentee_2(make_user) -> User:
    return make_user(RoleName.MENTEE, first_name="Sam")


@pytest.fixture
def test_admin(make_user) -> User:
    return make_user(RoleName.ADMIN, first_name="Ada")


# ============================================================================
# AVAILABILITY
# ============================================================================


@pytest.fixture
def slot_start():
    """Start of the one-seat weekly slot offered by ``test_availability``."""
    return future_slot(days_ahead=7, hour=15)


@pytest.fixture
def group_slot_start():
    """Start of the three-seat weekly slot offered by ``group_availability``."""
    return future_slot(days_ahead=9, hour=17)


@pytest.fixture
def test_availability(db: Session, test_mentor: User, slot_start) -> Availability:
    availability = Availability(
        mentor_id=test_mentor.id,
        type=AvailabilityType.RECURRING.value,
        timezone="UTC",
        recurring=[recurring_entry(slot_start)],
        capacity=1,
        note="https://meet.example.com/maya",
        active=True,
    )
    db.add(availability)
    db.commit()
    return availability


@pytest.fixture
def group_availability(db: Session, test_mentor: User, group_slot_start) -> Availability:
    availability = Availability(
        mentor_id=test_mentor.id,
        type=AvailabilityType.RECURRING.value,
        timezone="UTC",
        recurring=[recurring_entry(group_slot_start, duration_minutes=90)],
        capacity=3,
        note="Group office hours",
        active=True,
    )
    db.add(availability)
    db.commit()
    return availability


# ============================================================================
# AUTH HEADERS
# ============================================================================


def _auth_headers(user: User) -> Dict[str, str]:
    token = create_access_token({"sub": user.id})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers_mentee(test_mentee: User) -> dict:
    return _auth_headers(test_mentee)


@pytest.fixture
def auth_headers_mentee_2(test_mentee_2: User) -> dict:
    return _auth_headers(test_mentee_2)


@pytest.fixture
def auth_headers_mentor(test_mentor: User) -> dict:
    return _auth_headers(test_mentor)


@pytest.fixture
def auth_headers_mentor_2(test_mentor_2: User) -> dict:
    return _auth_headers(test_mentor_2)


@pytest.fixture
def auth_headers_admin(test_admin: User) -> dict:
    return _auth_headers(test_admin)
