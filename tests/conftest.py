"""Shared pytest fixtures.

Environment is set before any app import so the cached settings, the
engine and the module-level services all pick up the test configuration:
an in-memory SQLite database and cheap bcrypt rounds.
"""

import os

os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key-for-testing-only"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["API_KEY_FORMAT"] = "signed"
os.environ["LOG_LEVEL"] = "WARNING"

from datetime import datetime, timedelta, timezone  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlmodel import Session, SQLModel  # noqa: E402

from app.core.rate_limit import InMemoryRateLimitStore, public_listing_limiter  # noqa: E402
from app.core.security import hash_password  # noqa: E402
from app.database import engine  # noqa: E402
from app.main import app  # noqa: E402
from app.models.user import User  # noqa: E402

API = "/api"
DEFAULT_PASSWORD = "Password123"


@pytest.fixture(autouse=True)
def fresh_database():
    """Recreate all tables for every test."""
    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
    yield
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def fresh_rate_limiter():
    """Each test starts with empty rate limit windows."""
    public_listing_limiter.store = InMemoryRateLimitStore()
    yield


@pytest.fixture
def client() -> TestClient:
    """TestClient without lifespan (tables are managed by fresh_database)."""
    return TestClient(app)


@pytest.fixture
def session():
    with Session(engine) as s:
        yield s


def create_user(
    email: str,
    name: str = "Test User",
    password: str | None = DEFAULT_PASSWORD,
    **fields,
) -> User:
    """Insert a user in its own session and return the detached row."""
    with Session(engine) as s:
        user = User(
            email=email,
            name=name,
            password_hash=hash_password(password) if password else None,
            **fields,
        )
        s.add(user)
        s.commit()
        s.refresh(user)
        return user


def fetch(model, pk):
    """Load a fresh copy of a row (None if gone)."""
    with Session(engine) as s:
        return s.get(model, pk)


def request_payload(**overrides) -> dict:
    payload = {
        "title": "Alphonso mangoes",
        "description": "Two boxes from the market",
        "category": "Food",
        "quantity": 2,
        "estimated_value": 25.5,
        "source_city": "Mumbai",
        "source_shop": "Crawford Market stall 12",
        "source_address": "Lokmanya Tilak Marg",
        "alternative_source": "Any fruit vendor",
        "delivery_city": "Pune",
        "meetup_area": "Koregaon Park",
        "due_date": (datetime.now(timezone.utc) + timedelta(days=7)).isoformat(),
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def alice() -> User:
    return create_user("alice@example.com", "Alice", rating=4.5)


@pytest.fixture
def bob() -> User:
    return create_user("bob@example.com", "Bob", rating=4.8)


@pytest.fixture
def carol() -> User:
    return create_user("carol@example.com", "Carol")


@pytest.fixture
def login_headers(client: TestClient):
    """Return a function that exchanges credentials for x-api-key headers."""

    def _headers(user: User, password: str = DEFAULT_PASSWORD) -> dict[str, str]:
        response = client.post(
            f"{API}/session",
            json={"email": user.email, "password": password},
        )
        assert response.status_code == 200, response.text
        return {"x-api-key": response.json()["session_token"]}

    return _headers


@pytest.fixture
def create_request(client: TestClient):
    """Return a function that posts a request and returns its JSON."""

    def _create(headers: dict[str, str], **overrides) -> dict:
        response = client.post(
            f"{API}/requests", json=request_payload(**overrides), headers=headers
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _create


