# backend/tests/conftest.py
"""
Pytest configuration.

Runs every test against an in-memory SQLite database, with email going to the
console provider, Celery executing tasks inline, and no captcha or Stripe
credentials so nothing leaves the process.
"""

import os

# CRITICAL: Set the environment BEFORE any gymbook imports!
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["EMAIL_PROVIDER"] = "console"
os.environ["ABUSE_STORE"] = "memory"
os.environ["STRIPE_SECRET_KEY"] = ""
os.environ["CAPTCHA_SECRET_KEY"] = ""
os.environ.pop("REDIS_URL", None)
os.environ.pop("RESEND_API_KEY", None)

# CRITICAL: Mock Resend API globally to prevent real emails in ANY test
import unittest.mock

global_resend_mock = unittest.mock.patch("resend.Emails.send")
mocked_send = global_resend_mock.start()
mocked_send.return_value = {"id": "test-email-id", "status": "sent"}

from datetime import date
from typing import Dict

from fastapi.testclient import TestClient
import pytest
from sqlalchemy.orm import Session

from gymbook.api.dependencies.database import get_db
from gymbook.core.abuse_guard import AbuseGuard, CaptchaVerifier, InMemoryCounterStore
from gymbook.core.config import settings
from gymbook.core.timezone_utils import club_today
from gymbook.database import Base, SessionLocal, engine
from gymbook.main import create_app
import gymbook.models  # noqa: F401
from gymbook.models.gym_class import ClassInstance
from gymbook.models.member import Member
from gymbook.tasks import celery_app
from tests.factories.gym import TEST_PASSWORD, auth_headers_for, make_class, make_member

settings.is_testing = True
celery_app.conf.task_always_eager = True


@pytest.fixture(scope="function")
def db():
    """Fresh schema and session for each test."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()

    yield session

    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def abuse_guard() -> AbuseGuard:
    """Isolated guard: in-memory counters and captcha bypass."""
    return AbuseGuard(store=InMemoryCounterStore(), captcha=CaptchaVerifier(secret_key=""))


@pytest.fixture
def client(db: Session, abuse_guard: AbuseGuard):
    """Create a test client with the test database."""
    app = create_app(abuse_guard=abuse_guard)

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    # Don't use context manager - startup seeding is not wanted in tests
    test_client = TestClient(app)

    yield test_client

    app.dependency_overrides.clear()
    test_client.close()


@pytest.fixture
def test_password() -> str:
    """Standard test password for all test members."""
    return TEST_PASSWORD


@pytest.fixture
def member(db: Session) -> Member:
    return make_member(db, name="Jamie Fighter", email="jamie@example.com")


@pytest.fixture
def admin(db: Session) -> Member:
    return make_member(db, name="Club Admin", email="admin@example.com", is_admin=True)


@pytest.fixture
def gym_class(db: Session) -> ClassInstance:
    return make_class(db)


@pytest.fixture
def auth_headers(member: Member) -> Dict[str, str]:
    return auth_headers_for(member)


@pytest.fixture
def admin_headers(admin: Member) -> Dict[str, str]:
    return auth_headers_for(admin)


@pytest.fixture
def today() -> date:
    return club_today()
