"""Test fixtures — a fresh in-memory database per test.

Learn: Testing pattern for async SQLAlchemy + FastAPI + aiosqlite:

1. Settings are read at import time, so the signing secret and a cheap
   bcrypt cost are put in the environment before anything from todoapp
   is imported.
2. Each test gets its own in-memory SQLite engine. StaticPool keeps a
   single connection alive, so every session sees the same database, and
   the database vanishes with the engine — no rollback tricks needed.
3. get_db is overridden to hand that session to every request.
4. The rate limiter's store is cleared around each test so request counts
   never leak between tests.
"""

import os

os.environ.setdefault("TODOAPP_JWT_SECRET", "test-signing-secret-0123456789abcdef")
os.environ.setdefault("TODOAPP_PASSWORD_HASH_ROUNDS", "4")
os.environ.setdefault("TODOAPP_DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("TODOAPP_ENVIRONMENT", "development")

import uuid  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from todoapp.db.engine import build_engine, get_db  # noqa: E402
from todoapp.db.init_db import create_schema, seed  # noqa: E402
from todoapp.main import app  # noqa: E402

ADMIN_EMAIL = "admin@todoapp.com"
ADMIN_PASSWORD = "Admin#Pass123"
USER_PASSWORD = "Str0ng!Pass"


@pytest_asyncio.fixture()
async def db_session():
    """Per-test session on a private in-memory database, seeded with roles and admin."""
    engine = build_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await create_schema(engine)
    session = AsyncSession(bind=engine, expire_on_commit=False)
    await seed(session, ADMIN_EMAIL, ADMIN_PASSWORD)
    try:
        yield session
    finally:
        await session.close()
        await engine.dispose()


@pytest.fixture(autouse=True)
def reset_rate_limits():
    app.state.rate_limiter.store.clear()
    yield
    app.state.rate_limiter.store.clear()


@pytest_asyncio.fixture()
async def client(db_session):
    """HTTP client for the API app, backed by the per-test database.

    Learn: Unlike dependency-overridden auth, every test here goes through
    the real Bearer-token pipeline: tests register or log in first and
    send the token they get back.
    """

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


def auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


async def register_user(client, first_name: str = "Test", last_name: str = "User"):
    """Register a fresh account. Returns (email, token)."""
    email = f"user-{uuid.uuid4().hex[:8]}@example.com"
    r = await client.post(
        "/api/auth/register",
        json={
            "first_name": first_name,
            "last_name": last_name,
            "email": email,
            "password": USER_PASSWORD,
            "confirm_password": USER_PASSWORD,
        },
    )
    assert r.status_code == 201, r.text
    return email, r.json()["token"]


async def login(client, email: str, password: str) -> str:
    r = await client.post("/api/auth/login", json={"email": email, "password": password})
    assert r.status_code == 200, r.text
    return r.json()["token"]


@pytest_asyncio.fixture()
async def admin_token(client):
    return await login(client, ADMIN_EMAIL, ADMIN_PASSWORD)


@pytest_asyncio.fixture()
async def user_token(client):
    _, token = await register_user(client)
    return token


@pytest_asyncio.fixture()
async def web_client(client):
    """HTTP client for the front-end app, whose API calls reach the API app in-process.

    Learn: The web app's ApiClient gets an httpx client on ASGITransport
    pointed at the API app, so the full browser → web → API path runs in
    one event loop against the per-test database.
    """
    import httpx

    from todoapp.web.api_client import ApiClient
    from todoapp.web.main import create_web_app

    api_http = httpx.AsyncClient(transport=ASGITransport(app=app), base_url="http://api")
    web_app = create_web_app(api_client=ApiClient(api_http))

    transport = ASGITransport(app=web_app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac

    await api_http.aclose()
