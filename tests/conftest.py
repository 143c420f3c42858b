"""Test fixtures — a fresh in-memory database per test.

Learn: Testing pattern for async SQLAlchemy + FastAPI:

1. Each test gets its own engine on sqlite+aiosqlite ":memory:" with a
   StaticPool, so every session in the test sees the same database.
2. Tables are created from the ORM metadata; the engine is disposed
   after the test, which throws the whole database away.
3. get_db is overridden to hand each request its own session from that
   engine, exactly like production hands out sessions per request.
4. The mail collaborator is swapped for a RecordingMailer so reset tokens
   can be read back out of the "sent" email.
"""

import os

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"
os.environ["SCRIBE_DATABASE_URL"] = TEST_DB_URL

import re
import uuid

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from scribe.auth import password
from scribe.db.engine import get_db
from scribe.db.models import Base
from scribe.main import app
from scribe.services.mailer import MailDeliveryError, Mailer, get_mailer


class RecordingMailer(Mailer):
    """Keeps sent messages in memory; can be told to fail."""

    def __init__(self, fail: bool = False):
        self.sent: list[dict] = []
        self.fail = fail

    async def send(self, to: str, subject: str, body: str) -> None:
        if self.fail:
            raise MailDeliveryError("SMTP server unavailable")
        self.sent.append({"to": to, "subject": subject, "body": body})

    def last_token(self) -> str:
        match = re.search(r"/reset-password/(\S+)", self.sent[-1]["body"])
        assert match, "no reset link in the last email"
        return match.group(1)


@pytest.fixture(autouse=True)
def fast_bcrypt(monkeypatch):
    """Minimum bcrypt work factor; tests hash a lot of passwords."""
    monkeypatch.setattr(password, "BCRYPT_ROUNDS", 4)


@pytest_asyncio.fixture()
async def engine():
    engine = create_async_engine(
        TEST_DB_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture()
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture()
async def db_session(session_factory):
    """A session for service-level tests and DB inspection."""
    async with session_factory() as session:
        yield session


@pytest.fixture()
def mailer():
    return RecordingMailer()


@pytest_asyncio.fixture()
async def client(session_factory, mailer):
    """HTTP client running the real auth pipeline against the test DB."""
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_mailer] = lambda: mailer

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture()
def make_user(client):
    """Register a user through the API; returns the response plus auth headers."""
    async def _make(username: str | None = None, password: str = "password_123") -> dict:
        username = username or f"user-{uuid.uuid4().hex[:8]}"
        r = await client.post(
            "/api/v1/users",
            json={
                "username": username,
                "email": f"{username}@example.com",
                "password": password,
            },
        )
        assert r.status_code == 201, r.text
        user = r.json()
        user["password"] = password
        user["headers"] = {"Authorization": f"Bearer {user['token']}"}
        return user

    return _make
