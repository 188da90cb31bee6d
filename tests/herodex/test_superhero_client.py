"""Tests for the Superhero API client using ``httpx.MockTransport``."""

from __future__ import annotations

from collections.abc import Callable

import httpx
import pytest

from herodex.clients.superhero_api import SuperheroApiClient
from herodex.errors import HeroProviderError, HeroProviderNotFoundError
from tests.herodex.fakes import hero_payload

BASE_URL = "https://superhero.test/api"


def _client(handler: Callable[[httpx.Request], httpx.Response], *, max_hero_id: int = 731):
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SuperheroApiClient(
        api_key="secret",
        base_url=BASE_URL,
        max_hero_id=max_hero_id,
        http_client=http_client,
    )


@pytest.mark.asyncio
async def test_get_hero_embeds_key_in_path() -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.path)
        return httpx.Response(200, json=hero_payload("69", "Batman", full_name="Bruce Wayne"))

    client = _client(handler)
    hero = await client.get_hero("69")

    assert seen == ["/api/secret/69"]
    assert hero.name == "Batman"
    assert hero.biography.full_name == "Bruce Wayne"


@pytest.mark.asyncio
async def test_get_hero_error_response_is_not_found() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"response": "error", "error": "invalid id"})

    with pytest.raises(HeroProviderNotFoundError, match="invalid id"):
        await _client(handler).get_hero("0")


@pytest.mark.asyncio
async def test_get_hero_http_404_is_not_found() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404)

    with pytest.raises(HeroProviderNotFoundError):
        await _client(handler).get_hero("1000")


@pytest.mark.asyncio
async def test_get_hero_server_error_is_provider_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503)

    with pytest.raises(HeroProviderError) as excinfo:
        await _client(handler).get_hero("69")
    assert not isinstance(excinfo.value, HeroProviderNotFoundError)


@pytest.mark.asyncio
async def test_get_hero_network_error_is_provider_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(HeroProviderError):
        await _client(handler).get_hero("69")


@pytest.mark.asyncio
async def test_get_hero_invalid_json_is_provider_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"<html>maintenance</html>")

    with pytest.raises(HeroProviderError):
        await _client(handler).get_hero("69")


@pytest.mark.asyncio
async def test_search_parses_results_and_skips_malformed_items() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/secret/search/spider man"
        return httpx.Response(
            200,
            json={
                "response": "success",
                "results": [
                    hero_payload("620", "Spider-Man"),
                    {"id": "", "name": "Broken"},
                ],
            },
        )

    heroes = await _client(handler).search_heroes("spider man")

    assert [hero.id for hero in heroes] == ["620"]


@pytest.mark.asyncio
async def test_search_error_response_means_no_results() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        payload = {"response": "error", "error": "character with given name not found"}
        return httpx.Response(200, json=payload)

    assert await _client(handler).search_heroes("zzz") == []


@pytest.mark.asyncio
async def test_random_heroes_keep_successes() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        hero_id = request.url.path.rsplit("/", 1)[-1]
        if hero_id == "2":
            return httpx.Response(500)
        return httpx.Response(200, json=hero_payload(hero_id, f"Hero {hero_id}"))

    client = _client(handler)
    picks = iter(["1", "2", "3", "2"])
    client.random_hero_id = lambda: next(picks)

    heroes = await client.get_random_heroes(4)

    assert sorted(hero.id for hero in heroes) == ["1", "3"]


def test_random_hero_id_stays_in_range() -> None:
    client = _client(lambda request: httpx.Response(200), max_hero_id=3)
    picks = {client.random_hero_id() for _ in range(200)}

    assert picks <= {"1", "2", "3"}


@pytest.mark.asyncio
async def test_random_heroes_raise_when_every_request_fails() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500)

    with pytest.raises(HeroProviderError):
        await _client(handler).get_random_heroes(3)


@pytest.mark.asyncio
async def test_popular_heroes_request_each_popular_id() -> None:
    requested: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        hero_id = request.url.path.rsplit("/", 1)[-1]
        requested.append(hero_id)
        return httpx.Response(200, json=hero_payload(hero_id, f"Hero {hero_id}"))

    heroes = await _client(handler).get_popular_heroes()

    assert len(heroes) == 10
    assert "69" in requested and "720" in requested
