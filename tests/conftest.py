"""
Shared test fixtures.

Uses an in-memory SQLite database (via aiosqlite) so tests run without
Docker / PostgreSQL / Redis.  The production models carry no
PostgreSQL-only column types, so the real metadata is created as-is.
A fresh engine is built per test; ``StaticPool`` keeps every session of
that test on the one in-memory database.
"""

import os

# Must be set before anything under ``src`` reads the settings
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("RECONCILE_ENABLED", "false")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

from typing import AsyncGenerator
from unittest.mock import AsyncMock, patch

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from src.domain.enums import UserRole
from src.domain.security import hash_password
from src.infrastructure import models  # noqa: F401  (registers tables)
from src.infrastructure.database import Base
from src.infrastructure.models import StopModel, UserModel

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"

PASSWORD = "secret-pass"
PASSWORD_HASH = hash_password(PASSWORD)


# ── Database ──────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def test_engine():
    engine = create_async_engine(TEST_DB_URL, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False
    )


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


# ── Data builders ─────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def make_user(db_session):
    """Insert a user (a driver unless told otherwise) and return it."""

    async def _make(
        username: str, name: str | None = None, role: UserRole = UserRole.DRIVER
    ) -> UserModel:
        user = UserModel(
            username=username,
            password_hash=PASSWORD_HASH,
            name=name or username.title(),
            role=role,
        )
        db_session.add(user)
        await db_session.commit()
        return user

    return _make


@pytest_asyncio.fixture
async def make_driver(make_user):
    async def _make(username: str, name: str | None = None) -> UserModel:
        return await make_user(username, name)

    return _make


@pytest_asyncio.fixture
async def make_stops(db_session):
    """Insert one stop per name and return them in insertion order."""

    async def _make(*names: str) -> list[StopModel]:
        stops = [
            StopModel(name=name, lat=41.0 + i * 0.1, lng=29.0 - i * 0.1)
            for i, name in enumerate(names)
        ]
        db_session.add_all(stops)
        await db_session.commit()
        return stops

    return _make


# ── HTTP client ───────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def client(session_factory):
    """AsyncClient backed by the per-test SQLite database."""

    async def _test_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    with (
        patch(
            "src.workers.reconciler.start_reconcile_loop",
            new_callable=AsyncMock,
        ),
        patch(
            "src.workers.reconciler.stop_reconcile_loop",
            new_callable=AsyncMock,
        ),
    ):
        from src.api.app import create_app
        from src.api.dependencies import get_db

        app = create_app()
        app.dependency_overrides[get_db] = _test_db

        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac
