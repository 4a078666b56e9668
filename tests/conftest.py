"""Pytest configuration and fixtures

Provides:
- db: a fresh in-memory database session per test
- client: TestClient whose get_db dependency is bound to ``db``
- make_user / make_conversation: small factories over the service layer
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("AI_BACKEND", "template")

from typing import Generator  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from research_chat import models  # noqa: E402,F401
from research_chat.database import Base, get_db  # noqa: E402
from research_chat.main import app  # noqa: E402
from research_chat.services import auth as auth_service  # noqa: E402
from research_chat.services import conversations as conversation_service  # noqa: E402
from research_chat.services.research import (  # noqa: E402
    MockResearchProvider,
    TemplateResponseGenerator,
    get_research_provider,
    get_response_generator,
)


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Create a fresh database for each test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(autoflush=False, bind=engine)

    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(scope="function")
def client(db: Session) -> Generator[TestClient, None, None]:
    """Create a test client with database override."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_research_provider] = lambda: MockResearchProvider()
    app.dependency_overrides[get_response_generator] = lambda: TemplateResponseGenerator()

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db: Session):
    counter = {"n": 0}

    def _make_user(email=None, password="secret-pass", display_name="Test User", **kwargs):
        counter["n"] += 1
        return auth_service.create_user(
            db,
            email=email or f"user{counter['n']}@example.com",
            password=password,
            display_name=display_name,
            **kwargs,
        )

    return _make_user


@pytest.fixture
def make_conversation(db: Session):
    def _make_conversation(user, title="New conversation"):
        return conversation_service.create_conversation(db, user_id=user.id, title=title)

    return _make_conversation


def assert_response_ok(response, expected_status=200):
    """Assert response status and return JSON"""
    assert (
        response.status_code == expected_status
    ), f"Expected {expected_status}, got {response.status_code}: {response.text}"
    return response.json()
