"""Pytest configuration and fixtures."""

import os
import re
from collections.abc import AsyncGenerator
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch
from urllib.parse import parse_qs, urlparse

# Set test environment before importing app
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["PASSWORD_HASH_ROUNDS"] = "4"
os.environ["EMAIL_BACKEND"] = "console"
os.environ["EMAIL_DELIVERY"] = "inline"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from notehub.database import get_session
from notehub.main import app
from notehub.models import User
from notehub.services.accounts import AccountService
from notehub.services.auth import create_token
from notehub.services.email import EmailMessage
from notehub.services.notifications import Notifier, get_notifier
from notehub.services.passwords import password_hasher
from notehub.services.users import CredentialStore

PASSWORD = "Passw0rd"


class RecordingNotifier(Notifier):
    """Notifier that keeps every message instead of sending it."""

    def __init__(self, result: bool = True):
        self.result = result
        self.sent: list[tuple[str, EmailMessage]] = []

    async def send(self, to: str, message: EmailMessage) -> bool:
        self.sent.append((to, message))
        return self.result

    @property
    def last(self) -> tuple[str, EmailMessage]:
        assert self.sent, "no message was sent"
        return self.sent[-1]


def link_params(message: EmailMessage) -> dict[str, str]:
    """Pull token and email out of the link in an email's text body."""
    match = re.search(r"https?://\S+", message.text or "")
    assert match, "message has no link"
    query = parse_qs(urlparse(match.group(0)).query)
    return {key: values[0] for key, values in query.items()}


@pytest.fixture(autouse=True)
def mock_queue():
    """Mock the SAQ queue to avoid Redis connections in tests."""
    mock_job = MagicMock()
    mock_job.id = "test-job-id"
    mock_job.key = "test-job-key"

    with patch("notehub.tasks.queue.queue.enqueue", new_callable=AsyncMock) as mock_enqueue:
        mock_enqueue.return_value = mock_job
        yield mock_enqueue


@pytest.fixture
async def test_engine():
    """In-memory SQLite database, fresh for every test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def accounts(session: AsyncSession, notifier: RecordingNotifier) -> AccountService:
    """Account service wired to the test session and a recording notifier."""
    return AccountService(session, notifier=notifier)


@pytest.fixture
async def client(
    session: AsyncSession, notifier: RecordingNotifier
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client."""

    async def override_get_session():
        yield session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_notifier] = lambda: notifier

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
async def user(session: AsyncSession) -> User:
    """Create a verified test user with a password."""
    user = await CredentialStore(session).create(
        email="test@example.com",
        name="Test User",
        password_hash=password_hasher.hash(PASSWORD),
        verified=True,
    )
    await session.commit()
    return user


@pytest.fixture
async def unverified_user(session: AsyncSession) -> User:
    """Create a test user that has not confirmed their email."""
    user = await CredentialStore(session).create(
        email="pending@example.com",
        name="Pending User",
        password_hash=password_hasher.hash(PASSWORD),
    )
    await session.commit()
    return user


@pytest.fixture
def user_token(user: User) -> str:
    """Create a JWT token for the test user."""
    return create_token(user)


@pytest.fixture
def auth_headers(user_token: str) -> dict[str, str]:
    """Create authorization headers for the test user."""
    return {"Authorization": f"Bearer {user_token}"}


# Helper to make authenticated requests
class AuthenticatedClient:
    """Wrapper for AsyncClient with authentication."""

    def __init__(self, client: AsyncClient, headers: dict[str, str]):
        self.client = client
        self.headers = headers

    async def get(self, url: str, **kwargs: Any) -> Any:
        kwargs.setdefault("headers", {}).update(self.headers)
        return await self.client.get(url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> Any:
        kwargs.setdefault("headers", {}).update(self.headers)
        return await self.client.post(url, **kwargs)


@pytest.fixture
def authenticated_client(client: AsyncClient, auth_headers: dict[str, str]) -> AuthenticatedClient:
    """Create an authenticated test client."""
    return AuthenticatedClient(client, auth_headers)
