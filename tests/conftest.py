"""Shared pytest fixtures.

Environment variables are set before any `app` import so the settings object
and the module-level engine pick them up.
"""

import os

os.environ.setdefault("DB_URL", "sqlite+aiosqlite://")
os.environ.setdefault("ENV", "prod")
os.environ.setdefault("TWITTER_CLIENT_ID", "test-client-id")
os.environ.setdefault("TWITTER_CLIENT_SECRET", "test-client-secret")
os.environ.setdefault("TWITTER_CALLBACK_URL", "https://postai.test/x-callback")

import sqlite3
from collections.abc import AsyncGenerator, Generator
from typing import Any

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI
from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.config import settings
from app.core.db import get_db
from app.main import app
from app.models.linked_identity import LinkedIdentity  # noqa: F401
from app.models.oauth_state import OAuthState  # noqa: F401
from app.services.linked_identity import LinkedIdentityService
from app.services.oauth_state import OAuthStateService
from app.services.twitter import TwitterClient, get_twitter_client
from app.services.x_auth import XAuthService


class FakeTwitter:
    """In-process stand-in for the X token and /users/me endpoints."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.token_status = 200
        self.token_body: Any = {
            "token_type": "bearer",
            "access_token": "user-access-token",
            "refresh_token": "user-refresh-token",
            "expires_in": 7200,
            "scope": "tweet.read tweet.write users.read offline.access",
        }
        self.me_status: dict[str, int] = {}
        self.user: dict[str, Any] = {
            "id": "42",
            "username": "alice",
            "name": "Alice",
            "profile_image_url": "https://pbs.twimg.com/profile_images/alice.jpg",
        }
        self.raise_on: set[str] = set()

    def requests_to(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path in self.raise_on:
            raise httpx.ConnectTimeout("timed out", request=request)

        if request.url.path == "/2/oauth2/token":
            return httpx.Response(self.token_status, json=self.token_body)

        if request.url.path == "/2/users/me":
            bearer = request.headers["Authorization"].removeprefix("Bearer ")
            status = self.me_status.get(bearer, 200)
            if status != 200:
                return httpx.Response(status, json={"title": "Unauthorized", "status": status})
            return httpx.Response(200, json={"data": self.user})

        return httpx.Response(404)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def fake_twitter() -> FakeTwitter:
    return FakeTwitter()


@pytest.fixture
def twitter_client(fake_twitter: FakeTwitter) -> TwitterClient:
    return TwitterClient(transport=fake_twitter.transport)


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine]:
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db(engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    async with AsyncSession(
        engine, autocommit=False, autoflush=False, expire_on_commit=False
    ) as session:
        yield session


@pytest.fixture
def state_service(db: AsyncSession) -> OAuthStateService:
    return OAuthStateService(db)


@pytest.fixture
def identity_service(db: AsyncSession) -> LinkedIdentityService:
    return LinkedIdentityService(db)


@pytest.fixture
def x_auth_service(
    state_service: OAuthStateService,
    identity_service: LinkedIdentityService,
    twitter_client: TwitterClient,
) -> XAuthService:
    return XAuthService(state_service, identity_service, twitter_client)


@pytest.fixture
def dev_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "env", "dev")


@pytest_asyncio.fixture
async def api_app(db: AsyncSession, twitter_client: TwitterClient) -> AsyncGenerator[FastAPI]:
    """The FastAPI app wired to the test database and the fake X endpoints."""

    async def override_get_db() -> AsyncGenerator[AsyncSession]:
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_twitter_client] = lambda: twitter_client
    yield app
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def api_client(api_app: FastAPI) -> AsyncGenerator[httpx.AsyncClient]:
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=api_app), base_url="http://testserver"
    ) as client:
        yield client


@pytest.fixture
def log_messages() -> Generator[list[str]]:
    """Everything loguru emits while the test runs."""
    messages: list[str] = []
    handler_id = logger.add(lambda message: messages.append(str(message)), level="DEBUG")
    yield messages
    logger.remove(handler_id)


@pytest.fixture
def failing_inserts(db: AsyncSession, monkeypatch: pytest.MonkeyPatch) -> None:
    """Make INSERT statements on `db` fail the way a constraint violation does."""
    execute = db.execute

    async def wrapper(statement: Any, *args: Any, **kwargs: Any) -> Any:
        if getattr(statement, "is_insert", False):
            raise IntegrityError(
                "INSERT INTO linked_identities (access_token, refresh_token) VALUES (?, ?)",
                ("user-access-token", "user-refresh-token"),
                sqlite3.IntegrityError("UNIQUE constraint failed: linked_identities.user_id"),
            )
        return await execute(statement, *args, **kwargs)

    monkeypatch.setattr(db, "execute", wrapper)
