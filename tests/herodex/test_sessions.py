"""Tests for the server-side session store and flash messages."""

from __future__ import annotations

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from starlette.responses import Response

from herodex import cache
from herodex.schemas.account import SessionUser
from herodex.sessions import (
    FLASH_ERROR,
    FLASH_SUCCESS,
    SessionState,
    SessionStore,
    persist_session,
)
from herodex.settings import AppSettings

USER = SessionUser(id=1, username="bruce", email="bruce@example.com")


class MemoryCache:
    """In-memory cache double that mimics :class:`herodex.cache.CacheClient`."""

    def __init__(self) -> None:
        self.store: dict[str, object] = {}
        self.ttls: dict[str, int | None] = {}
        self.connected = True

    async def get_json(self, key: str) -> object | None:
        return self.store.get(key)

    async def set_json(self, key: str, value: object, ttl: int | None = None) -> None:
        self.store[key] = value
        self.ttls[key] = ttl

    async def delete(self, *keys: str) -> None:
        for key in keys:
            self.store.pop(key, None)


@pytest.fixture
def settings() -> AppSettings:
    return AppSettings(session_cookie_name="sid", session_ttl_seconds=3600)


def test_flashes_are_popped_once() -> None:
    state = SessionState("abc")
    state.flash(FLASH_SUCCESS, "Batman added to favorites!")
    state.flash(FLASH_ERROR, "Error updating favorites")

    assert state.pop_flashes() == {
        "success": "Batman added to favorites!",
        "error": "Error updating favorites",
    }
    assert state.pop_flashes() == {}


def test_login_marks_session_for_rotation() -> None:
    state = SessionState("old", {"flashes": {}})
    state.login(USER)

    assert state.user == USER
    assert state.modified and state.rotate


@pytest.mark.asyncio
async def test_store_uses_only_redis_while_it_is_reachable() -> None:
    redis_double = MemoryCache()
    store = SessionStore(redis_double, ttl_seconds=60)

    await store.save("abc", {"user": USER.model_dump()})

    assert redis_double.store[cache.session_key("abc")] == {"user": USER.model_dump()}
    assert redis_double.ttls[cache.session_key("abc")] == 60
    assert await cache.local_cache_get(cache.session_key("abc")) is None


@pytest.mark.asyncio
async def test_session_deleted_from_redis_elsewhere_stays_deleted() -> None:
    redis_double = MemoryCache()
    store = SessionStore(redis_double, ttl_seconds=60)
    await store.save("abc", {"user": USER.model_dump()})

    # Another worker logs the user out.
    await redis_double.delete(cache.session_key("abc"))

    assert await store.load("abc") is None


@pytest.mark.asyncio
async def test_store_falls_back_to_local_cache_without_redis() -> None:
    store = SessionStore(cache.CacheClient(None), ttl_seconds=60)

    await store.save("abc", {"user": USER.model_dump()})
    loaded = await store.load("abc")
    await store.delete("abc")

    assert loaded == {"user": USER.model_dump()}
    assert await store.load("abc") is None


@pytest.mark.asyncio
async def test_persist_new_session_sets_http_only_cookie(settings: AppSettings) -> None:
    store = SessionStore(cache.CacheClient(None), ttl_seconds=settings.session_ttl_seconds)
    state = SessionState(None)
    state.flash(FLASH_SUCCESS, "hello")
    response = Response()

    await persist_session(state, response, store, settings)

    assert state.session_id
    cookie = response.headers["set-cookie"]
    assert cookie.startswith(f"sid={state.session_id}")
    assert "HttpOnly" in cookie
    assert "Max-Age=3600" in cookie
    assert "SameSite=lax" in cookie
    assert await store.load(state.session_id) == {"flashes": {"success": "hello"}}


@pytest.mark.asyncio
async def test_persist_rotates_id_on_login(settings: AppSettings) -> None:
    store = SessionStore(cache.CacheClient(None), ttl_seconds=60)
    await store.save("old", {})
    state = SessionState("old", {})
    state.login(USER)

    await persist_session(state, Response(), store, settings)

    assert state.session_id != "old"
    assert await store.load("old") is None
    assert (await store.load(state.session_id))["user"]["username"] == "bruce"


@pytest.mark.asyncio
async def test_persist_unmodified_session_sets_no_cookie(settings: AppSettings) -> None:
    store = SessionStore(cache.CacheClient(None), ttl_seconds=60)
    response = Response()

    await persist_session(SessionState("abc", {}), response, store, settings)

    assert "set-cookie" not in response.headers


@pytest.mark.asyncio
async def test_logout_deletes_session_and_cookie(settings: AppSettings) -> None:
    store = SessionStore(cache.CacheClient(None), ttl_seconds=60)
    await store.save("abc", {"user": USER.model_dump()})
    state = SessionState("abc", {"user": USER.model_dump()})
    state.logout()
    response = Response()

    await persist_session(state, response, store, settings)

    assert await store.load("abc") is None
    assert response.headers["set-cookie"].startswith('sid=""')


class UnreachableRedis:
    """Redis double whose every command fails with a connection error."""

    async def get(self, key: str) -> str | None:
        raise RedisConnectionError("connection refused")

    async def set(self, key: str, value: str, ex: int | None = None) -> None:
        raise RedisConnectionError("connection refused")

    async def delete(self, *keys: str) -> None:
        raise RedisConnectionError("connection refused")


@pytest.mark.asyncio
async def test_store_switches_to_local_cache_after_redis_connection_error() -> None:
    client = cache.CacheClient(UnreachableRedis())
    store = SessionStore(client, ttl_seconds=60)

    await store.save("abc", {"user": USER.model_dump()})

    assert client.connected is False
    assert await store.load("abc") == {"user": USER.model_dump()}
