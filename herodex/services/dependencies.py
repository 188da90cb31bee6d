"""FastAPI dependency wiring for Herodex services.

Keeping the factories out of the service modules leaves those modules free
of web-layer concerns, so the seed script and the tests can build services
directly from a session and a provider.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from herodex.clients.superhero_api import HeroProvider, SuperheroApiClient
from herodex.db.connection import get_db
from herodex.db.repositories import AccountRepository, HeroRepository
from herodex.services.auth_service import AuthService
from herodex.services.favorites_service import FavoritesService
from herodex.services.hero_service import HeroService
from herodex.settings import AppSettings, get_settings


async def get_hero_provider() -> AsyncIterator[HeroProvider]:
    """Yield a Superhero API client that is closed once the request ends."""

    async with SuperheroApiClient.from_settings() as client:
        yield client


def get_hero_service(
    session: AsyncSession = Depends(get_db),
    provider: HeroProvider = Depends(get_hero_provider),
    settings: AppSettings = Depends(get_settings),
) -> HeroService:
    return HeroService(
        HeroRepository(session),
        provider,
        session=session,
        page_size=settings.page_size,
        search_limit=settings.search_result_limit,
    )


def get_favorites_service(
    session: AsyncSession = Depends(get_db),
    hero_service: HeroService = Depends(get_hero_service),
) -> FavoritesService:
    """Wire the account and hero repositories around the shared session."""

    return FavoritesService(
        AccountRepository(session),
        HeroRepository(session),
        hero_service,
        session=session,
    )


def get_auth_service(session: AsyncSession = Depends(get_db)) -> AuthService:
    return AuthService(AccountRepository(session), session=session)


__all__ = [
    "get_auth_service",
    "get_favorites_service",
    "get_hero_provider",
    "get_hero_service",
]
