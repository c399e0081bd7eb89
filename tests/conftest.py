import os

# Settings are read at import time, so the test environment must be in place
# before anything from ``app`` is imported.
os.environ.setdefault("JWT_SECRET", "test-secret-key-for-the-review-votes-suite")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("ENABLE_TOKEN_BLACKLIST", "false")

import uuid
from typing import AsyncGenerator, Callable, Awaitable, Dict

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.pool import StaticPool

from app.core.security import token_manager
from app.crud.review_crud import review_repository
from app.db.session import Database
from app.main import app
from app.models.review_model import Review
from app.services.vote_service import VoteService
from app.utils.deps import get_vote_service

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


# --- Database Fixtures ---


@pytest_asyncio.fixture
async def database() -> AsyncGenerator[Database, None]:
    """
    A fresh in-memory database with all tables created, one per test.
    """
    test_db = Database(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await test_db.create_all()
    try:
        yield test_db
    finally:
        await test_db.drop_all()
        await test_db.disconnect()


@pytest.fixture
def vote_service(database: Database) -> VoteService:
    """A VoteService bound to the test database."""
    return VoteService(database=database)


@pytest.fixture
def make_review(database: Database) -> Callable[..., Awaitable[Review]]:
    """Factory inserting a review row, returns the stored Review."""

    async def _make_review(**overrides) -> Review:
        review_data = {
            "dealership_id": f"place-{uuid.uuid4().hex[:12]}",
            "user_id": uuid.uuid4(),
            "rating": 4,
            "title": "Smooth purchase",
            "content": "Receipt the same day and plates within a week.",
        }
        review_data.update(overrides)
        async with database.transaction() as session:
            return await review_repository.create(session, obj_in=Review(**review_data))

    return _make_review


@pytest_asyncio.fixture
async def review(make_review) -> Review:
    """A single review with no votes."""
    return await make_review()


@pytest.fixture
def user_id() -> uuid.UUID:
    return uuid.uuid4()


# --- HTTP Fixtures ---


@pytest.fixture
def auth_headers() -> Callable[[uuid.UUID], Dict[str, str]]:
    """Builds an Authorization header for the given user id."""

    def _auth_headers(for_user: uuid.UUID) -> Dict[str, str]:
        token = token_manager.create_access_token(
            for_user, email="driver@example.com", name="Test Driver"
        )
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers


@pytest_asyncio.fixture
async def test_client(vote_service: VoteService) -> AsyncGenerator[AsyncClient, None]:
    """
    Provides an HTTP client for API testing, overriding the vote service.
    """
    app.dependency_overrides[get_vote_service] = lambda: vote_service

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client

    app.dependency_overrides.clear()
