"""Pytest configuration and fixtures."""

import os

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from src.api.dependencies import get_extraction_adapter, get_opik_spans_client
from src.config import get_settings
from src.database import Base, get_db
from src.main import app
from src.models import Ingredient
from src.services.auth import create_access_token
from src.services.extraction import ExtractionResult

TEST_USER_ID = "user-123"
OTHER_USER_ID = "user-456"
ADMIN_USER_ID = "admin-001"


class AuthHeaders(dict):
    """Dict subclass that also stores user_id."""

    def __init__(self, *args, user_id: str | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.user_id = user_id


def make_auth_headers(user_id: str) -> AuthHeaders:
    token = create_access_token(user_id, email=f"{user_id}@example.com")
    return AuthHeaders({"Authorization": f"Bearer {token}"}, user_id=user_id)


# Use test database - PostgreSQL in Docker, SQLite locally
if os.getenv("DATABASE_URL"):
    # Running in Docker - use PostgreSQL test database
    SQLALCHEMY_DATABASE_URL = os.getenv("DATABASE_URL").replace(
        "/homecuistot", "/homecuistot_test"
    )
else:
    # Running locally - use SQLite
    SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"

connect_args = {"check_same_thread": False} if "sqlite" in SQLALCHEMY_DATABASE_URL else {}
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args=connect_args)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="session", autouse=True)
def setup_test_database():
    """Create test database schema once at the start of the test session."""
    if "postgresql" in SQLALCHEMY_DATABASE_URL:
        # For PostgreSQL, create the test database
        from sqlalchemy_utils import create_database, database_exists

        # Create test database if it doesn't exist
        if not database_exists(SQLALCHEMY_DATABASE_URL):
            create_database(SQLALCHEMY_DATABASE_URL)

    Base.metadata.create_all(bind=engine)
    yield
    # Don't drop database - just leave it for next run (each test cleans up after itself)


@pytest.fixture(scope="function", autouse=True)
def db():
    """Create a fresh database session for each test with cleanup."""
    session = TestingSessionLocal()

    yield session

    # Clean up all data after test
    session.rollback()
    for table in reversed(Base.metadata.sorted_tables):
        session.execute(table.delete())
    session.commit()
    session.close()


@pytest.fixture(autouse=True)
def settings(monkeypatch):
    """Cached settings with test-friendly quota and admin values."""
    settings = get_settings()
    monkeypatch.setattr(settings, "admin_user_ids", ADMIN_USER_ID)
    monkeypatch.setattr(settings, "daily_llm_limit", 100)
    monkeypatch.setattr(settings, "removal_policy", "decrement")
    return settings


class FakeExtractionAdapter:
    """Stands in for the LLM-backed adapter; records every call."""

    def __init__(self):
        self.result = ExtractionResult()
        self.error: Exception | None = None
        self.calls: list[dict] = []

    async def extract(self, **kwargs) -> ExtractionResult:
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        if kwargs.get("audio") is not None and self.result.transcribed_text is None:
            self.result.transcribed_text = "transcribed words"
        return self.result


class FakeSpansClient:
    """In-memory stand-in for the Opik spans REST client."""

    def __init__(self):
        self.next_span: dict | None = None
        self.reviewed: list[str] = []
        self.error: Exception | None = None
        self.mark_error: Exception | None = None

    async def get_next_unprocessed_span(self):
        if self.error is not None:
            raise self.error
        return self.next_span

    async def mark_span_as_reviewed(self, span_id: str) -> bool:
        if self.error is not None:
            raise self.error
        if self.mark_error is not None:
            raise self.mark_error
        self.reviewed.append(span_id)
        return True


@pytest.fixture
def fake_adapter():
    return FakeExtractionAdapter()


@pytest.fixture
def fake_spans():
    return FakeSpansClient()


@pytest.fixture(scope="function")
def client(db, fake_adapter, fake_spans):
    """Create a test client with database and provider overrides."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_extraction_adapter] = lambda: fake_adapter
    app.dependency_overrides[get_opik_spans_client] = lambda: fake_spans
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Auth headers for a regular user."""
    return make_auth_headers(TEST_USER_ID)


@pytest.fixture
def other_auth_headers():
    return make_auth_headers(OTHER_USER_ID)


@pytest.fixture
def admin_headers():
    """Auth headers for a user listed in ADMIN_USER_IDS."""
    return make_auth_headers(ADMIN_USER_ID)


@pytest.fixture
def catalog(db):
    """Seed a small ingredient catalog, keyed by name."""
    entries = [
        ("milk", "dairy"),
        ("egg", "eggs"),
        ("onion", "vegetables"),
        ("tomato", "vegetables"),
        ("olive oil", "oils_and_fats"),
        ("salt", "salt"),
        ("butter", "dairy"),
        ("basil leaf", "plants"),
    ]
    ingredients = [Ingredient(name=name, category=category) for name, category in entries]
    db.add_all(ingredients)
    db.commit()
    return {ingredient.name: ingredient for ingredient in ingredients}
