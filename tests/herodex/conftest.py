"""Shared fixtures: in-memory SQLite, a fake provider, and an app client."""

from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
from fastapi import Depends
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

import herodex.cache as cache_module
from herodex.db.connection import get_db
from herodex.db.models import Base
from herodex.db.repositories import AccountRepository, HeroRepository
from herodex.main import app
from herodex.services.auth_service import AuthService
from herodex.services.dependencies import get_auth_service, get_hero_provider
from herodex.services.favorites_service import FavoritesService
from herodex.services.hero_service import HeroService
from tests.herodex.fakes import FakeProvider, make_hero

TEST_BCRYPT_ROUNDS = 4


@pytest_asyncio.fixture
async def engine() -> AsyncIterator[AsyncEngine]:
    """One in-memory database shared by every connection of a test."""

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        future=True,
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        yield session
        if session.in_transaction():
            await session.rollback()


@pytest.fixture
def catalog() -> list:
    """Heroes known to the fake provider."""

    return [
        make_hero("69", "Batman", full_name="Bruce Wayne"),
        make_hero("620", "Spider-Man", full_name="Peter Parker"),
        make_hero("644", "Superman", full_name="Clark Kent"),
        make_hero("346", "Iron Man", full_name="Tony Stark"),
        make_hero("70", "Batman II", full_name="Dick Grayson"),
    ]


@pytest.fixture
def provider(catalog: list) -> FakeProvider:
    return FakeProvider(catalog)


@pytest.fixture
def hero_service(session: AsyncSession, provider: FakeProvider) -> HeroService:
    return HeroService(HeroRepository(session), provider, session=session, page_size=20)


@pytest.fixture
def favorites_service(session: AsyncSession, hero_service: HeroService) -> FavoritesService:
    return FavoritesService(
        AccountRepository(session),
        HeroRepository(session),
        hero_service,
        session=session,
    )


@pytest.fixture
def auth_service(session: AsyncSession) -> AuthService:
    return AuthService(
        AccountRepository(session), session=session, bcrypt_rounds=TEST_BCRYPT_ROUNDS
    )


@pytest_asyncio.fixture(autouse=True)
async def in_process_sessions(monkeypatch: pytest.MonkeyPatch) -> AsyncIterator[None]:
    """Keep sessions out of any real Redis and start each test with none."""

    async def _no_redis():
        return None

    monkeypatch.setattr(cache_module, "get_redis", _no_redis)
    await cache_module.local_cache_clear_all()
    yield
    await cache_module.local_cache_clear_all()


@pytest_asyncio.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession],
    provider: FakeProvider,
) -> AsyncIterator[AsyncClient]:
    """HTTP client bound to the app with the database and provider swapped out."""

    async def _override_get_db() -> AsyncIterator[AsyncSession]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def _override_provider() -> AsyncIterator[FakeProvider]:
        yield provider

    def _override_auth(session: AsyncSession = Depends(get_db)) -> AuthService:
        return AuthService(
            AccountRepository(session), session=session, bcrypt_rounds=TEST_BCRYPT_ROUNDS
        )

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_hero_provider] = _override_provider
    app.dependency_overrides[get_auth_service] = _override_auth

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as http_client:
        yield http_client

    app.dependency_overrides.clear()
