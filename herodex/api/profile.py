"""The logged-in user's profile and favorites management."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Form, Request
from starlette.responses import Response

from herodex.api.heroes import flash_toggle_result
from herodex.errors import PersistenceError
from herodex.schemas.account import SessionUser
from herodex.services.dependencies import get_favorites_service
from herodex.services.favorites_service import FavoritesService
from herodex.sessions import (
    FLASH_ERROR,
    FLASH_SUCCESS,
    SessionState,
    get_current_user,
    get_session_state,
)
from herodex.templating import redirect_to, render

router = APIRouter()


@router.get("")
async def profile(
    request: Request,
    user: SessionUser | None = Depends(get_current_user),
    favorites: FavoritesService = Depends(get_favorites_service),
) -> Response:
    if user is None:
        return redirect_to("/auth/login")

    entries = await favorites.list_favorites(user.id)
    return render(request, "profile.html", {"favorites": entries})


# Registered before the ``{hero_id}`` toggle so "reason" is not taken for an id.
@router.post("/favorite/reason")
async def update_reason(
    hero_id: str = Form(..., alias="heroId"),
    reason: str = Form(default=""),
    user: SessionUser | None = Depends(get_current_user),
    session: SessionState = Depends(get_session_state),
    favorites: FavoritesService = Depends(get_favorites_service),
) -> Response:
    try:
        updated = await favorites.update_reason(user, hero_id, reason)
    except PersistenceError as exc:
        session.flash(FLASH_ERROR, str(exc))
        return redirect_to("/profile")

    if updated:
        session.flash(FLASH_SUCCESS, "Reason updated")
    return redirect_to("/profile")


@router.post("/favorite/{hero_id}")
async def toggle_from_profile(
    hero_id: str,
    reason: str = Form(default=""),
    user: SessionUser | None = Depends(get_current_user),
    session: SessionState = Depends(get_session_state),
    favorites: FavoritesService = Depends(get_favorites_service),
) -> Response:
    try:
        result = await favorites.toggle_favorite(user, hero_id, reason)
    except PersistenceError as exc:
        session.flash(FLASH_ERROR, str(exc))
        return redirect_to("/profile")

    flash_toggle_result(session, result.hero.name, result.favorited)
    return redirect_to("/profile")


__all__ = ["router"]
