"""Async client for the public Superhero API (https://superheroapi.com).

Every call embeds the access token in the path::

    GET {base}/{key}/{id}            -> hero object or {"response": "error", ...}
    GET {base}/{key}/search/{name}   -> {"response": "success", "results": [...]}

Responses cross a strict boundary here: callers only ever see
:class:`~herodex.schemas.hero.HeroRecord` instances or a
:class:`~herodex.errors.HeroProviderError`.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Iterable
from typing import Any, Protocol, runtime_checkable
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from herodex.errors import HeroProviderError, HeroProviderNotFoundError
from herodex.schemas.hero import HeroRecord
from herodex.settings import AppSettings, get_settings

logger = logging.getLogger(__name__)

# Batman, Spider-Man, Superman, Iron Man, Captain America, Thor, Black Widow,
# Hulk, Wonder Woman, Wolverine.
POPULAR_HERO_IDS: tuple[str, ...] = (
    "69",
    "620",
    "644",
    "346",
    "149",
    "659",
    "106",
    "213",
    "717",
    "720",
)


@runtime_checkable
class HeroProvider(Protocol):
    """Provider surface required by the hero service."""

    async def get_hero(self, hero_id: str) -> HeroRecord:
        """Return one hero or raise :class:`HeroProviderError`."""

    async def search_heroes(self, name: str) -> list[HeroRecord]:
        """Return every hero whose name matches ``name``."""

    async def get_random_heroes(self, count: int) -> list[HeroRecord]:
        """Return up to ``count`` heroes picked at random."""


class SuperheroApiClient:
    """Thin wrapper around :class:`httpx.AsyncClient` for the Superhero API."""

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str,
        max_hero_id: int,
        timeout: float = 10.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._max_hero_id = max_hero_id
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    @classmethod
    def from_settings(cls, settings: AppSettings | None = None) -> SuperheroApiClient:
        settings = settings or get_settings()
        return cls(
            api_key=settings.superhero_api_key,
            base_url=settings.superhero_api_base_url,
            max_hero_id=settings.provider_max_hero_id,
            timeout=settings.provider_timeout_seconds,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> SuperheroApiClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def get_hero(self, hero_id: str) -> HeroRecord:
        """Fetch a single hero by provider id."""

        hero_id = str(hero_id).strip()
        try:
            payload = await self._get_json(quote(hero_id, safe=""))
        except httpx.HTTPStatusError as exc:
            if exc.response.status_code == httpx.codes.NOT_FOUND:
                raise HeroProviderNotFoundError(hero_id) from exc
            raise HeroProviderError(
                f"HTTP {exc.response.status_code}: Superhero with ID {hero_id} not available"
            ) from exc

        if payload.get("response") == "error":
            raise HeroProviderNotFoundError(hero_id, payload.get("error") or None)

        return self._parse_hero(payload)

    async def search_heroes(self, name: str) -> list[HeroRecord]:
        """Search heroes by name; a provider-side "not found" yields ``[]``."""

        try:
            payload = await self._get_json(f"search/{quote(name.strip(), safe='')}")
        except httpx.HTTPStatusError as exc:
            raise HeroProviderError(
                f"HTTP {exc.response.status_code}: Search failed for {name!r}"
            ) from exc

        if payload.get("response") == "error":
            return []

        heroes: list[HeroRecord] = []
        for item in payload.get("results") or []:
            try:
                heroes.append(self._parse_hero(item))
            except HeroProviderError as exc:
                logger.warning("Skipping malformed search result for %r: %s", name, exc)
        return heroes

    def random_hero_id(self) -> str:
        return str(random.randint(1, self._max_hero_id))

    async def get_random_hero(self) -> HeroRecord:
        return await self.get_hero(self.random_hero_id())

    async def get_random_heroes(self, count: int) -> list[HeroRecord]:
        """Fetch ``count`` random heroes concurrently.

        Individual failures are logged and skipped. If every request fails
        the first error is raised so callers can report the outage.
        """

        if count <= 0:
            return []
        results = await asyncio.gather(
            *(self.get_random_hero() for _ in range(count)),
            return_exceptions=True,
        )
        return self._collect(results, context="random hero")

    async def get_heroes_by_ids(self, hero_ids: Iterable[str]) -> list[HeroRecord]:
        ids = [str(hero_id) for hero_id in hero_ids]
        if not ids:
            return []
        results = await asyncio.gather(
            *(self.get_hero(hero_id) for hero_id in ids),
            return_exceptions=True,
        )
        return self._collect(results, context="hero by id")

    async def get_popular_heroes(self) -> list[HeroRecord]:
        return await self.get_heroes_by_ids(POPULAR_HERO_IDS)

    async def _get_json(self, path: str) -> dict[str, Any]:
        url = f"{self._base_url}/{self._api_key}/{path}"
        try:
            response = await self._client.get(url)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError:
            raise
        except httpx.HTTPError as exc:
            raise HeroProviderError(f"Superhero API request failed: {exc}") from exc
        except ValueError as exc:
            raise HeroProviderError("Superhero API returned invalid JSON") from exc

        if not isinstance(payload, dict):
            raise HeroProviderError("Superhero API returned an unexpected payload")
        return payload

    def _parse_hero(self, payload: dict[str, Any]) -> HeroRecord:
        try:
            return HeroRecord.from_provider(payload)
        except ValidationError as exc:
            raise HeroProviderError(f"Malformed hero payload: {exc.error_count()} error(s)") from exc

    def _collect(self, results: list[Any], *, context: str) -> list[HeroRecord]:
        heroes: list[HeroRecord] = []
        errors: list[BaseException] = []
        for result in results:
            if isinstance(result, BaseException):
                if not isinstance(result, HeroProviderError):
                    raise result
                logger.warning("Failed to fetch %s: %s", context, result)
                errors.append(result)
            else:
                heroes.append(result)

        if errors and not heroes:
            raise errors[0]
        return heroes


__all__ = [
    "POPULAR_HERO_IDS",
    "HeroProvider",
    "SuperheroApiClient",
]
