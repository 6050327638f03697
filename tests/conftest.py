"""
Shared fixtures.

The app runs against an in-memory SQLite database and fakeredis. Argon2
costs are lowered before anything from ``teamkick`` is imported, since the
hasher is built once from settings.
"""

from __future__ import annotations

import os

os.environ.setdefault("TK_ARGON2_TIME_COST", "1")
os.environ.setdefault("TK_ARGON2_MEMORY_COST", "1024")
os.environ.setdefault("TK_ARGON2_PARALLELISM", "1")
os.environ.setdefault("TK_DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("TK_AUTO_CREATE_TABLES", "false")
os.environ.setdefault("TK_LOG_FORMAT", "console")

import fakeredis  # noqa: E402
import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import event  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from teamkick.core.config import Settings  # noqa: E402
from teamkick.core.database import get_session, init_db  # noqa: E402
from teamkick.core.roles import UserRole  # noqa: E402
from teamkick.main import create_app  # noqa: E402
from teamkick.services import users as user_service  # noqa: E402

PASSWORD = "Secret123!"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        environment="development",
        session_secret="test-session-secret",
        auto_create_tables=False,
        csrf_protection=True,
        rate_limit_enabled=True,
        rate_limit_max_requests=1000,
    )


@pytest.fixture
async def engine():
    eng = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # SQLite ignores ON DELETE clauses unless foreign keys are switched on.
    @event.listens_for(eng.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    await init_db(eng)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def redis_client():
    client = fakeredis.FakeAsyncRedis(decode_responses=True)
    yield client
    await client.aclose()


@pytest.fixture
def app(settings, redis_client, session_factory):
    application = create_app(settings, redis_client)

    async def override_get_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    application.dependency_overrides[get_session] = override_get_session
    return application


@pytest.fixture
async def make_client(app):
    """Factory for independent clients (separate cookie jars)."""
    clients: list[AsyncClient] = []

    def factory() -> AsyncClient:
        client = AsyncClient(transport=ASGITransport(app=app), base_url="http://test")
        clients.append(client)
        return client

    yield factory
    for client in clients:
        await client.aclose()


@pytest.fixture
async def client(make_client) -> AsyncClient:
    return make_client()


def use_csrf(client: AsyncClient, settings: Settings) -> None:
    """Echo the CSRF cookie back in the header, as the frontend does."""
    client.headers[settings.csrf_header_name] = client.cookies[settings.csrf_cookie_name]


@pytest.fixture
def signup(settings):
    """Register (and thereby log in) a user on ``client``."""

    async def _signup(client: AsyncClient, username: str, password: str = PASSWORD, **extra) -> dict:
        response = await client.post(
            "/api/register", json={"username": username, "password": password, **extra}
        )
        assert response.status_code == 201, response.text
        use_csrf(client, settings)
        return response.json()

    return _signup


@pytest.fixture
def login(settings):
    async def _login(client: AsyncClient, username: str, password: str = PASSWORD):
        response = await client.post(
            "/api/login", json={"username": username, "password": password}
        )
        if response.status_code == 200:
            use_csrf(client, settings)
        return response

    return _login


@pytest.fixture
def create_team():
    async def _create_team(client: AsyncClient, name: str = "Rovers FC") -> dict:
        response = await client.post("/api/teams", json={"name": name})
        assert response.status_code == 201, response.text
        return response.json()["team"]

    return _create_team


class RecordingMailer:
    """Keeps sent messages in memory instead of logging them."""

    def __init__(self):
        self.outbox = []

    async def send(self, message) -> None:
        self.outbox.append(message)


@pytest.fixture
def outbox(app) -> list:
    mailer = RecordingMailer()
    app.state.mailer = mailer
    return mailer.outbox


@pytest.fixture
async def superuser_client(make_client, login, session_factory):
    async with session_factory() as session:
        await user_service.create_user("root", PASSWORD, session, role=UserRole.SUPERUSER)
        await session.commit()
    client = make_client()
    r = await login(client, "root")
    assert r.status_code == 200
    return client
