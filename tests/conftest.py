"""
Pytest configuration and fixtures

All tests run against an in-memory SQLite database. The schema is dropped
and recreated before every test, so nothing leaks between tests.
Redis and rate limiting are disabled.
"""
import os
import sys
from datetime import timedelta

import pytest

# Configure the app before anything imports core.config
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["REDIS_URL"] = ""
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["LOG_FORMAT"] = "text"
os.environ["ENVIRONMENT"] = "test"

# Add the parent directory to the path so we can import from services
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.database import Base, SessionLocal, engine  # noqa: E402
from main import app  # noqa: E402
from models import utcnow  # noqa: E402
from services.bmi_calculator import evaluate  # noqa: E402
from services.user_records import Measurement, record_calculation  # noqa: E402


@pytest.fixture(autouse=True)
def fresh_schema():
    """Recreate all tables before each test."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def db_session():
    """Session for seeding and inspecting data. Seed helpers commit."""
    session = SessionLocal()
    yield session
    session.close()


def add_user(db, name, gender="male", age=30, height=175.0, weight=70.0, days_ago=0, anonymous=False):
    """
    Store one calculation the way POST /api/bmi does, then backdate it.

    The user's created_at, last_calculation and history timestamps are all
    set to `days_ago` days before now.
    """
    measurement = Measurement(
        height=height,
        weight=weight,
        age=age,
        gender=gender,
        name=None if anonymous else name,
    )
    user, _ = record_calculation(db, measurement, evaluate(height, weight))

    when = utcnow() - timedelta(days=days_ago)
    user.created_at = when
    user.last_calculation = when
    for entry in user.history:
        entry.calculated_at = when
    db.commit()
    return user


@pytest.fixture
def make_user(db_session):
    """Factory fixture around add_user bound to the test session."""
    def _make(name, **kwargs):
        return add_user(db_session, name, **kwargs)
    return _make


@pytest.fixture
def seeded_users(db_session):
    """
    Four named users (one per category) and one anonymous user.

    Newest calculation first: dave, carol, bob, alice.
    """
    users = {
        "alice": add_user(db_session, "alice", gender="female", age=25, height=165, weight=50, days_ago=4),  # 18.37 Underweight
        "bob": add_user(db_session, "bob", gender="male", age=40, height=180, weight=95, days_ago=3),  # 29.32 Overweight
        "carol": add_user(db_session, "carol", gender="female", age=35, height=170, weight=65, days_ago=2),  # 22.49 Normal
        "dave": add_user(db_session, "dave", gender="male", age=55, height=175, weight=110, days_ago=1),  # 35.92 Obese
    }
    users["anonymous"] = add_user(db_session, None, gender="male", age=30, height=175, weight=70, anonymous=True)
    return users
