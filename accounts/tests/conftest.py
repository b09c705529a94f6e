"""Test fixtures for the account service.

Uses SQLite in-memory for tests — no Postgres needed — and a recording
notifier in place of Resend.
"""

import os
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("ENV", "development")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from accounts.app.core.database import Base, get_db
from accounts.app.core.errors import DeliveryError
from accounts.app.main import app
from accounts.app.models import account  # noqa: F401
from accounts.app.routes.deps import get_clock, get_notifier

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"

PASSWORD = "testpassword123"


@dataclass
class SentMessage:
    kind: str  # "code" or "reset"
    email: str
    name: str
    secret: str


@dataclass
class RecordingNotifier:
    """Notifier double: keeps every message, or fails when told to."""

    sent: list[SentMessage] = field(default_factory=list)
    fail: bool = False

    async def send_verification_code(self, email: str, name: str, code: str) -> None:
        if self.fail:
            raise DeliveryError("Email could not be sent")
        self.sent.append(SentMessage("code", email, name, code))

    async def send_reset_link(self, email: str, name: str, token: str) -> None:
        if self.fail:
            raise DeliveryError("Email could not be sent")
        self.sent.append(SentMessage("reset", email, name, token))

    def last(self, kind: str, email: str) -> str:
        for message in reversed(self.sent):
            if message.kind == kind and message.email == email:
                return message.secret
        raise AssertionError(f"no {kind} message sent to {email}")


class FakeClock:
    """Controllable UTC clock."""

    def __init__(self) -> None:
        self.now = datetime.now(timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        TEST_DB_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Yield a DB session for direct model manipulation in tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest_asyncio.fixture
async def client(session_factory, notifier, clock) -> AsyncGenerator[AsyncClient, None]:
    """Async test client for the FastAPI app."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_clock] = lambda: clock

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def register_user(client: AsyncClient):
    """Return a coroutine function posting a registration."""

    async def register(email: str = "test@example.com", password: str = PASSWORD,
                       first_name: str = "Test", last_name: str = "User"):
        return await client.post("/auth/register", json={
            "firstName": first_name,
            "lastName": last_name,
            "email": email,
            "password": password,
        })

    return register


@pytest_asyncio.fixture
async def verified_user(client: AsyncClient, notifier: RecordingNotifier, register_user) -> str:
    """Register and verify test@example.com; returns the email."""
    await register_user()
    code = notifier.last("code", "test@example.com")
    resp = await client.post("/auth/verify-email", json={"email": "test@example.com", "code": code})
    assert resp.status_code == 200
    return "test@example.com"


@pytest_asyncio.fixture
async def auth_headers(client: AsyncClient, verified_user: str) -> dict:
    """Log the verified test user in and return auth headers."""
    resp = await client.post("/auth/login", json={
        "email": verified_user,
        "password": PASSWORD,
    })
    token = resp.json()["token"]
    return {"Authorization": f"Bearer {token}"}
