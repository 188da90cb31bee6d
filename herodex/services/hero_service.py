"""Cache-through access to hero records.

The local ``heroes`` table is always consulted first. The Superhero API is
only called when the table has nothing to offer: a single-hero miss, a
search with zero local matches, or a listing request against a completely
empty table. Every hero fetched from the provider is written back before it
is returned, so the next identical request never leaves the process.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from herodex.clients.superhero_api import HeroProvider
from herodex.db.repositories.hero_repository import HeroRepository
from herodex.errors import HeroNotFoundError, HeroProviderError, PersistenceError
from herodex.schemas.hero import HeroPage, HeroRecord, HeroSearchResult, PaginationInfo
from herodex.settings import DEFAULT_PAGE_SIZE, DEFAULT_SEARCH_RESULT_LIMIT
from herodex.utils.request_context import get_request_id

logger = logging.getLogger(__name__)

LIST_ERROR_MESSAGE = "Failed to fetch superheroes. Please try again later."
SEARCH_ERROR_MESSAGE = "Failed to search superheroes. Please try again later."


def _sort_key(hero: HeroRecord) -> tuple[str, str]:
    return (hero.name, hero.id)


class HeroService:
    """Hero listing, lookup, and search on top of the local cache."""

    def __init__(
        self,
        repository: HeroRepository,
        provider: HeroProvider,
        *,
        session: AsyncSession,
        page_size: int = DEFAULT_PAGE_SIZE,
        search_limit: int = DEFAULT_SEARCH_RESULT_LIMIT,
    ) -> None:
        self._repository = repository
        self._provider = provider
        self._session = session
        self._page_size = page_size
        self._search_limit = search_limit

    @property
    def page_size(self) -> int:
        return self._page_size

    async def get_page(self, page: int = 1, page_size: int | None = None) -> HeroPage:
        """Return one name-ordered page of cached heroes.

        An empty table is seeded with ``page_size`` random heroes before the
        page is built. Provider and database failures never escape: the page
        comes back empty with ``error`` set instead.
        """

        page = max(page, 1)
        size = page_size or self._page_size

        try:
            total = await self._repository.count()
            if total == 0:
                seeded = await self._seed_random(size)
                total = await self._repository.count()
                logger.info("Seeded %d heroes into an empty cache", len(seeded))
                # The freshly seeded heroes are the whole listing.
                page = 1

            heroes = await self._repository.list_page(offset=(page - 1) * size, limit=size)
        except HeroProviderError as exc:
            logger.warning(
                "Superhero API unavailable while listing heroes (request_id=%s): %s",
                get_request_id(),
                exc,
            )
            return self._empty_page(page, size, LIST_ERROR_MESSAGE)
        except PersistenceError:
            return self._empty_page(page, size, LIST_ERROR_MESSAGE)
        except SQLAlchemyError as exc:
            logger.error("Database error while listing heroes: %s", exc)
            await self._session.rollback()
            return self._empty_page(page, size, LIST_ERROR_MESSAGE)

        return HeroPage(
            heroes=heroes,
            pagination=PaginationInfo.build(page=page, page_size=size, total=total),
        )

    async def get_hero(self, hero_id: str) -> HeroRecord:
        """Return the hero from the cache, fetching and storing it on a miss.

        A hero that was fetched but could not be written is still returned;
        the next lookup simply fetches it again.

        Raises:
            HeroNotFoundError: the provider does not know the id or could not
                be reached.
        """

        hero_id = str(hero_id).strip()
        cached = await self._repository.get(hero_id)
        if cached is not None:
            return cached
        if not hero_id.isdigit():
            # Provider ids are numeric; stray paths like /favicon.ico end here.
            raise HeroNotFoundError(hero_id)

        try:
            record = await self._provider.get_hero(hero_id)
        except HeroProviderError as exc:
            logger.warning("Could not fetch hero %s from the provider: %s", hero_id, exc)
            raise HeroNotFoundError(hero_id) from exc

        try:
            stored = await self._store([record])
        except PersistenceError:
            return record
        return stored[0] if stored else record

    # Favorites only need to know that a hero resolves.
    ensure_hero = get_hero

    async def search(self, query: str) -> HeroSearchResult:
        """Match ``query`` against cached names, falling back to the provider."""

        cleaned = (query or "").strip()
        if not cleaned:
            return HeroSearchResult(query="")

        try:
            local = await self._repository.search(cleaned, limit=self._search_limit)
        except SQLAlchemyError as exc:
            logger.error("Database error while searching for %r: %s", cleaned, exc)
            await self._session.rollback()
            return HeroSearchResult(query=cleaned, error=SEARCH_ERROR_MESSAGE)
        if local:
            return HeroSearchResult(query=cleaned, heroes=local)

        try:
            fetched = await self._provider.search_heroes(cleaned)
        except HeroProviderError as exc:
            logger.warning("Provider search failed for %r: %s", cleaned, exc)
            return HeroSearchResult(query=cleaned, error=SEARCH_ERROR_MESSAGE)

        if not fetched:
            return HeroSearchResult(query=cleaned)

        try:
            stored = await self._store(fetched)
        except PersistenceError:
            return HeroSearchResult(query=cleaned, error=SEARCH_ERROR_MESSAGE)

        heroes = sorted(stored, key=_sort_key)[: self._search_limit]
        return HeroSearchResult(query=cleaned, heroes=heroes)

    async def _seed_random(self, count: int) -> list[HeroRecord]:
        records = await self._provider.get_random_heroes(count)
        return await self._store(records)

    async def _store(self, records: Sequence[HeroRecord]) -> list[HeroRecord]:
        """Persist ``records`` and commit, wrapping database failures."""

        try:
            stored = await self._repository.create_many(records)
            await self._session.commit()
        except SQLAlchemyError as exc:
            await self._session.rollback()
            logger.error("Failed to cache %d hero(es): %s", len(records), exc)
            raise PersistenceError("Failed to cache heroes") from exc
        return stored

    @staticmethod
    def _empty_page(page: int, page_size: int, error: str) -> HeroPage:
        return HeroPage(
            heroes=[],
            pagination=PaginationInfo.build(page=page, page_size=page_size, total=0),
            error=error,
        )


__all__ = ["HeroService", "LIST_ERROR_MESSAGE", "SEARCH_ERROR_MESSAGE"]
