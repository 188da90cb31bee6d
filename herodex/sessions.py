"""Server-side sessions keyed by an opaque cookie.

The cookie only carries a random identifier. The payload (the logged-in
user snapshot and pending flash messages) is stored in Redis through
:class:`~herodex.cache.CacheClient`. While Redis is unreachable sessions live
in the in-process cache instead, and are lost on restart.
"""

from __future__ import annotations

import logging
import secrets
from typing import Any

from fastapi import Depends, Request
from starlette.responses import Response

from herodex import cache
from herodex.schemas.account import SessionUser
from herodex.settings import AppSettings, get_settings

logger = logging.getLogger(__name__)

FLASH_SUCCESS = "success"
FLASH_ERROR = "error"

_USER_KEY = "user"
_FLASHES_KEY = "flashes"


def new_session_id() -> str:
    return secrets.token_urlsafe(32)


class SessionStore:
    """Load, save, and delete session payloads.

    Redis is the only store while it is reachable; the in-process cache is
    read and written only when it is not.
    """

    def __init__(self, client: cache.CacheClient, *, ttl_seconds: int) -> None:
        self._client = client
        self._ttl_seconds = ttl_seconds

    async def load(self, session_id: str) -> dict[str, Any] | None:
        key = cache.session_key(session_id)
        payload = await self._client.get_json(key)
        if not self._client.connected:
            payload = await cache.local_cache_get(key)
        return payload if isinstance(payload, dict) else None

    async def save(self, session_id: str, payload: dict[str, Any]) -> None:
        key = cache.session_key(session_id)
        await self._client.set_json(key, payload, ttl=self._ttl_seconds)
        if not self._client.connected:
            await cache.local_cache_set(key, payload, ttl=self._ttl_seconds)

    async def delete(self, session_id: str) -> None:
        key = cache.session_key(session_id)
        await self._client.delete(key)
        await cache.local_cache_delete(key)


async def get_session_store() -> SessionStore:
    settings = get_settings()
    client = await cache.get_cache_client()
    return SessionStore(client, ttl_seconds=settings.session_ttl_seconds)


class SessionState:
    """Per-request view of one client's session.

    Handlers mutate it through :meth:`login`, :meth:`logout`, :meth:`flash`
    and :meth:`pop_flashes`; the middleware persists it once the response is
    ready.
    """

    def __init__(self, session_id: str | None, payload: dict[str, Any] | None = None) -> None:
        self.session_id = session_id
        self._payload: dict[str, Any] = dict(payload or {})
        self.modified = False
        self.destroyed = False
        self.rotate = False

    @property
    def payload(self) -> dict[str, Any]:
        return dict(self._payload)

    @property
    def user(self) -> SessionUser | None:
        raw = self._payload.get(_USER_KEY)
        if not raw:
            return None
        return SessionUser.model_validate(raw)

    def login(self, user: SessionUser) -> None:
        """Bind ``user`` to the session under a fresh identifier."""

        self._payload[_USER_KEY] = user.model_dump()
        self.modified = True
        self.rotate = True

    def logout(self) -> None:
        self._payload.clear()
        self.destroyed = True

    def flash(self, kind: str, message: str) -> None:
        flashes = dict(self._payload.get(_FLASHES_KEY) or {})
        flashes[kind] = message
        self._payload[_FLASHES_KEY] = flashes
        self.modified = True

    def pop_flashes(self) -> dict[str, str]:
        """Return pending flash messages and clear them."""

        flashes = self._payload.pop(_FLASHES_KEY, None) or {}
        if flashes:
            self.modified = True
        return dict(flashes)


async def persist_session(
    state: SessionState,
    response: Response,
    store: SessionStore,
    settings: AppSettings,
) -> None:
    """Write ``state`` back to the store and set or clear the cookie."""

    cookie_name = settings.session_cookie_name

    if state.destroyed:
        if state.session_id:
            await store.delete(state.session_id)
        response.delete_cookie(cookie_name)
        return

    if not state.modified:
        return

    if state.session_id is None or state.rotate:
        if state.session_id:
            await store.delete(state.session_id)
        state.session_id = new_session_id()

    await store.save(state.session_id, state.payload)
    response.set_cookie(
        cookie_name,
        state.session_id,
        max_age=settings.session_ttl_seconds,
        httponly=True,
        samesite="lax",
        secure=settings.session_cookie_secure,
    )


async def session_middleware(request: Request, call_next):
    """Attach a :class:`SessionState` to ``request.state`` for every request."""

    settings = get_settings()
    store = await get_session_store()

    session_id = request.cookies.get(settings.session_cookie_name)
    payload = await store.load(session_id) if session_id else None
    if payload is None:
        if session_id:
            logger.debug("Session cookie refers to an expired or unknown session")
        session_id = None

    state = SessionState(session_id, payload)
    request.state.session = state

    response = await call_next(request)
    await persist_session(state, response, store, settings)
    return response


def get_session_state(request: Request) -> SessionState:
    """FastAPI dependency returning the session attached by the middleware."""

    state = getattr(request.state, "session", None)
    if state is None:
        # Routers mounted without the middleware get a throwaway session.
        state = SessionState(None)
        request.state.session = state
    return state


def get_current_user(
    session: SessionState = Depends(get_session_state),
) -> SessionUser | None:
    return session.user


__all__ = [
    "FLASH_ERROR",
    "FLASH_SUCCESS",
    "SessionState",
    "SessionStore",
    "get_current_user",
    "get_session_state",
    "get_session_store",
    "new_session_id",
    "persist_session",
    "session_middleware",
]
