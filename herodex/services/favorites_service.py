"""Favorites workflows: toggling, reasons, profile listings, and rankings.

Every mutating call takes the current user explicitly. ``None`` means the
request is anonymous and the call raises
:class:`~herodex.errors.AuthenticationRequiredError` before touching the
database.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from herodex.db.repositories.account_repository import AccountRepository
from herodex.db.repositories.hero_repository import HeroRepository
from herodex.errors import AuthenticationRequiredError, PersistenceError
from herodex.schemas.account import (
    FavoriteHero,
    FavoriteStatus,
    FavoriteToggleResult,
    SessionUser,
    TopFavorite,
)
from herodex.services.hero_service import HeroService
from herodex.settings import DEFAULT_TOP_FAVORITES_LIMIT

logger = logging.getLogger(__name__)

FAVORITES_ERROR_MESSAGE = "Error updating favorites"


def _require_user(user: SessionUser | None) -> SessionUser:
    if user is None:
        raise AuthenticationRequiredError()
    return user


class FavoritesService:
    """Coordinates the account store with the hero cache."""

    def __init__(
        self,
        accounts: AccountRepository,
        heroes: HeroRepository,
        hero_service: HeroService,
        *,
        session: AsyncSession,
    ) -> None:
        self._accounts = accounts
        self._heroes = heroes
        self._hero_service = hero_service
        self._session = session

    async def toggle_favorite(
        self,
        user: SessionUser | None,
        hero_id: str,
        reason: str = "",
    ) -> FavoriteToggleResult:
        """Add ``hero_id`` to the user's favorites, or remove it if present.

        The hero is resolved through the cache-through lookup first, so a
        favorite always points at a hero that was cached at the time.

        Raises:
            AuthenticationRequiredError: ``user`` is ``None``.
            HeroNotFoundError: the hero cannot be resolved.
            PersistenceError: the write failed and was rolled back.
        """

        user = _require_user(user)
        hero = await self._hero_service.ensure_hero(hero_id)

        try:
            entry = await self._accounts.get_favorite(user_id=user.id, hero_id=hero.id)
            if entry is None:
                await self._accounts.add_favorite(
                    user_id=user.id, hero_id=hero.id, reason=reason or ""
                )
                favorited = True
            else:
                await self._accounts.delete_favorite(entry)
                favorited = False
            await self._session.commit()
        except SQLAlchemyError as exc:
            await self._rollback("toggle favorite", user.id, hero.id, exc)
            raise PersistenceError(FAVORITES_ERROR_MESSAGE) from exc

        logger.info(
            "User %s %s hero %s",
            user.id,
            "favorited" if favorited else "unfavorited",
            hero.id,
        )
        return FavoriteToggleResult(hero=hero, favorited=favorited)

    async def update_reason(
        self,
        user: SessionUser | None,
        hero_id: str,
        reason: str,
    ) -> bool:
        """Overwrite the reason on an existing favorite.

        Returns ``False`` without writing anything when the hero is not one of
        the user's favorites.
        """

        user = _require_user(user)
        hero_id = str(hero_id).strip()

        try:
            entry = await self._accounts.get_favorite(user_id=user.id, hero_id=hero_id)
            if entry is None:
                return False
            await self._accounts.update_reason(entry, reason or "")
            await self._session.commit()
        except SQLAlchemyError as exc:
            await self._rollback("update reason", user.id, hero_id, exc)
            raise PersistenceError(FAVORITES_ERROR_MESSAGE) from exc
        return True

    async def list_favorites(self, account_id: int) -> list[FavoriteHero]:
        """Return the account's favorites in the order they were added.

        Entries whose hero is no longer cached are left out.
        """

        entries = await self._accounts.list_favorites(account_id)
        heroes = await self._heroes.get_many(entry.hero_id for entry in entries)

        favorites: list[FavoriteHero] = []
        for entry in entries:
            hero = heroes.get(entry.hero_id)
            if hero is None:
                logger.debug("Skipping favorite %s: hero not cached", entry.hero_id)
                continue
            favorites.append(
                FavoriteHero(hero=hero, reason=entry.reason or "", added_at=entry.added_at)
            )
        return favorites

    async def favorite_status(self, account_id: int, hero_id: str) -> FavoriteStatus | None:
        entry = await self._accounts.get_favorite(user_id=account_id, hero_id=str(hero_id))
        if entry is None:
            return None
        return FavoriteStatus(
            hero_id=entry.hero_id,
            reason=entry.reason or "",
            position=entry.position,
        )

    async def favorite_hero_ids(self, account_id: int) -> set[str]:
        """Ids the account has favorited, for marking buttons on listings."""

        entries = await self._accounts.list_favorites(account_id)
        return {entry.hero_id for entry in entries}

    async def top_favorites(self, limit: int = DEFAULT_TOP_FAVORITES_LIMIT) -> list[TopFavorite]:
        """Rank heroes by how many distinct accounts favorited them.

        The ranking is cut to ``limit`` before heroes are resolved, so heroes
        missing from the cache shrink the result rather than being replaced.
        """

        counts = await self._accounts.favorite_counts(limit=limit)
        heroes = await self._heroes.get_many(hero_id for hero_id, _ in counts)
        return [
            TopFavorite(hero=heroes[hero_id], count=count)
            for hero_id, count in counts
            if hero_id in heroes
        ]

    async def _rollback(
        self, action: str, user_id: int, hero_id: str, exc: SQLAlchemyError
    ) -> None:
        await self._session.rollback()
        logger.error("Failed to %s (user=%s, hero=%s): %s", action, user_id, hero_id, exc)


__all__ = ["FAVORITES_ERROR_MESSAGE", "FavoritesService"]
