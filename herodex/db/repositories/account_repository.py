"""Persistence for user accounts and their ordered favorites."""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from herodex.db.models import FavoriteEntry, User


class AccountRepository:
    """Encapsulates SQLAlchemy operations for the account and favorites tables."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_user(self, user_id: int) -> User | None:
        return await self._session.get(User, user_id)

    async def find_by_identifier(self, identifier: str) -> User | None:
        """Match ``identifier`` against the lower-cased email or the exact username."""

        cleaned = identifier.strip()
        query = select(User).where(
            or_(User.email == cleaned.lower(), User.username == cleaned)
        )
        result = await self._session.execute(query.limit(1))
        return result.scalars().first()

    async def username_or_email_taken(self, *, username: str, email: str) -> bool:
        query = select(User.id).where(
            or_(User.email == email.strip().lower(), User.username == username)
        )
        result = await self._session.execute(query.limit(1))
        return result.first() is not None

    async def create_user(self, *, username: str, email: str, password_hash: str) -> User:
        user = User(username=username, email=email, password_hash=password_hash)
        self._session.add(user)
        await self._session.flush()
        return user

    async def get_favorite(self, *, user_id: int, hero_id: str) -> FavoriteEntry | None:
        query = select(FavoriteEntry).where(
            FavoriteEntry.user_id == user_id,
            FavoriteEntry.hero_id == str(hero_id),
        )
        result = await self._session.execute(query)
        return result.scalars().first()

    async def list_favorites(self, user_id: int) -> list[FavoriteEntry]:
        """Return the user's entries in insertion order."""

        query = (
            select(FavoriteEntry)
            .where(FavoriteEntry.user_id == user_id)
            .order_by(FavoriteEntry.position.asc(), FavoriteEntry.id.asc())
        )
        result = await self._session.execute(query)
        return list(result.scalars().all())

    async def add_favorite(self, *, user_id: int, hero_id: str, reason: str) -> FavoriteEntry:
        """Append a new entry after the user's current last favorite."""

        result = await self._session.execute(
            select(func.max(FavoriteEntry.position)).where(FavoriteEntry.user_id == user_id)
        )
        last_position = result.scalar_one_or_none()
        entry = FavoriteEntry(
            user_id=user_id,
            hero_id=str(hero_id),
            reason=reason,
            position=0 if last_position is None else last_position + 1,
        )
        self._session.add(entry)
        await self._session.flush()
        return entry

    async def delete_favorite(self, entry: FavoriteEntry) -> None:
        """Delete an entry and close the gap it leaves in the ordering."""

        user_id = entry.user_id
        await self._session.delete(entry)
        await self._session.flush()
        await self.normalize_positions(user_id)

    async def update_reason(self, entry: FavoriteEntry, reason: str) -> FavoriteEntry:
        entry.reason = reason
        entry.updated_at = datetime.now(UTC)
        await self._session.flush()
        return entry

    async def normalize_positions(self, user_id: int) -> None:
        """Ensure positions are contiguous after mutations."""

        for index, entry in enumerate(await self.list_favorites(user_id)):
            entry.position = index
        await self._session.flush()

    async def favorite_counts(self, *, limit: int) -> list[tuple[str, int]]:
        """Return ``(hero_id, distinct users)`` pairs, most favorited first.

        Ties are ordered by hero id so the ranking is stable between calls.
        """

        favorite_count = func.count(func.distinct(FavoriteEntry.user_id)).label("favorite_count")
        query = (
            select(FavoriteEntry.hero_id, favorite_count)
            .group_by(FavoriteEntry.hero_id)
            .order_by(favorite_count.desc(), FavoriteEntry.hero_id.asc())
            .limit(limit)
        )
        result = await self._session.execute(query)
        return [(hero_id, int(count)) for hero_id, count in result.all()]


__all__ = ["AccountRepository"]
