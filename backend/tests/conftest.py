"""
Notely Backend - Test Configuration (conftest.py)
===================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Every test gets its own SQLite file database (aiosqlite) with the full
       schema. The app under test has get_db_session and
       get_identity_provider overridden, so no PostgreSQL and no Google.

Fixture Hierarchy (all function-scoped):
    db_engine          → temp SQLite engine with Base.metadata created
    session_factory    → async_sessionmaker bound to db_engine
    db_session         → one AsyncSession for direct service calls
    fake_idp           → FakeIdentityProvider (configurable profile / error)
    test_client        → httpx AsyncClient over ASGITransport
    make_user          → creates a User through UserDirectory
    login_headers      → Cookie header carrying a fresh signed session
    count_rows         → row count for a model
"""

import os

# Settings are read at import time: set the environment before any notely import
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./notely_test.db"
os.environ["ENVIRONMENT"] = "development"
os.environ["SESSION_SECRET"] = "test-session-secret"
os.environ["GOOGLE_CLIENT_ID"] = "test-client-id"
os.environ["GOOGLE_CLIENT_SECRET"] = "test-client-secret"
os.environ["FRONTEND_ORIGIN"] = "http://localhost:3000"
os.environ["LOG_LEVEL"] = "WARNING"

from typing import Dict, List, Optional
from urllib.parse import urlencode

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import notely.models  # noqa: F401
from notely.config import settings
from notely.database import Base, get_db_session
from notely.dependencies import get_identity_provider
from notely.models.user import User
from notely.schemas.auth import IdentityProfile
from notely.services.identity_base import IdentityProvider
from notely.services.session_service import session_store, sign_token
from notely.services.user_service import user_directory


class FakeIdentityProvider(IdentityProvider):
    """Stands in for Google: returns `profile`, or raises `error` when set."""

    def __init__(self):
        self.profile = IdentityProfile(
            subject="google-sub-ada",
            display_name="Ada Lovelace",
            email="ada@example.com",
        )
        self.error: Optional[Exception] = None
        self.exchanged_codes: List[str] = []

    def authorization_url(self, state: str) -> str:
        return "https://idp.test/authorize?" + urlencode({"state": state})

    async def exchange(self, code: str) -> IdentityProfile:
        self.exchanged_codes.append(code)
        if self.error is not None:
            raise self.error
        return self.profile


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'notely_test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def fake_idp():
    return FakeIdentityProvider()


@pytest_asyncio.fixture
async def test_client(session_factory, fake_idp):
    """
    HTTPX AsyncClient talking to a fresh app instance.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
    """
    from notely.main import create_app

    app = create_app()

    async def override_db_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_db_session
    app.dependency_overrides[get_identity_provider] = lambda: fake_idp

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def make_user(db_session):
    async def _make(google_id: str = "google-sub-ada", display_name: str = "Ada") -> User:
        return await user_directory.upsert_by_external_id(
            db_session, external_id=google_id, display_name=display_name, email=None
        )
    return _make


@pytest.fixture
def login_headers(db_session):
    async def _login(user: User) -> Dict[str, str]:
        token = await session_store.create(db_session, user.id)
        return {"Cookie": f"{settings.session_cookie_name}={sign_token(token)}"}
    return _login


@pytest.fixture
def count_rows(db_session):
    """Row count for a model, read through the test's own session."""
    async def _count(model) -> int:
        result = await db_session.execute(select(func.count()).select_from(model))
        return result.scalar_one()
    return _count
