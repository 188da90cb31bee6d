"""Hero listing, search, detail, and favorite toggle pages.

``/{hero_id}`` matches any single path segment, so this router has to be
included after every other router.
"""

from __future__ import annotations


from fastapi import APIRouter, Depends, Form, Query, Request
from starlette.responses import Response

from herodex.errors import PersistenceError
from herodex.schemas.account import SessionUser
from herodex.services.dependencies import get_favorites_service, get_hero_service
from herodex.services.favorites_service import FavoritesService
from herodex.services.hero_service import HeroService
from herodex.sessions import (
    FLASH_ERROR,
    FLASH_SUCCESS,
    SessionState,
    get_current_user,
    get_session_state,
)
from herodex.settings import AppSettings, get_settings
from herodex.templating import redirect_to, render


router = APIRouter()


def parse_page(raw: str | None) -> int:
    """Coerce the ``page`` query value, treating anything invalid as page 1."""

    try:
        page = int(raw) if raw is not None else 1
    except ValueError:
        return 1
    return page if page >= 1 else 1


def favorite_redirect_target(
    hero_id: str, *, from_profile: str | None, from_home: str | None
) -> str:
    if from_profile:
        return "/profile"
    if from_home:
        return "/"
    return f"/{hero_id}"


def flash_toggle_result(session: SessionState, name: str, favorited: bool) -> None:
    if favorited:
        session.flash(FLASH_SUCCESS, f"{name} added to favorites!")
    else:
        session.flash(FLASH_SUCCESS, f"{name} removed from favorites")


@router.get("/")
async def home(
    request: Request,
    page: str | None = Query(default=None),
    user: SessionUser | None = Depends(get_current_user),
    heroes: HeroService = Depends(get_hero_service),
    favorites: FavoritesService = Depends(get_favorites_service),
    settings: AppSettings = Depends(get_settings),
) -> Response:
    """Paginated hero listing with the most favorited heroes alongside."""

    hero_page = await heroes.get_page(parse_page(page))
    top = await favorites.top_favorites(settings.top_favorites_limit)
    favorite_ids = await favorites.favorite_hero_ids(user.id) if user else set()

    return render(
        request,
        "index.html",
        {
            "heroes": hero_page.heroes,
            "pagination": hero_page.pagination,
            "error": hero_page.error,
            "top_favorites": top,
            "favorite_ids": favorite_ids,
        },
    )


@router.get("/search")
async def search(
    request: Request,
    q: str = Query(default=""),
    user: SessionUser | None = Depends(get_current_user),
    heroes: HeroService = Depends(get_hero_service),
    favorites: FavoritesService = Depends(get_favorites_service),
) -> Response:
    if not q.strip():
        return redirect_to("/")

    result = await heroes.search(q)
    favorite_ids = await favorites.favorite_hero_ids(user.id) if user else set()
    return render(
        request,
        "index.html",
        {
            "heroes": result.heroes,
            "search_query": result.query,
            "error": result.error,
            "pagination": None,
            "top_favorites": [],
            "favorite_ids": favorite_ids,
        },
    )


@router.get("/{hero_id}")
async def hero_detail(
    request: Request,
    hero_id: str,
    user: SessionUser | None = Depends(get_current_user),
    heroes: HeroService = Depends(get_hero_service),
    favorites: FavoritesService = Depends(get_favorites_service),
) -> Response:
    """Hero detail page; a hero that cannot be resolved renders the 404 page."""

    hero = await heroes.get_hero(hero_id)
    status = await favorites.favorite_status(user.id, hero.id) if user else None
    return render(
        request,
        "hero.html",
        {"hero": hero, "favorite": status},
    )


@router.post("/{hero_id}/favorite")
async def toggle_favorite(
    hero_id: str,
    reason: str = Form(default=""),
    from_profile: str | None = Form(default=None, alias="fromProfile"),
    from_home: str | None = Form(default=None, alias="fromHome"),
    user: SessionUser | None = Depends(get_current_user),
    session: SessionState = Depends(get_session_state),
    favorites: FavoritesService = Depends(get_favorites_service),
) -> Response:
    target = favorite_redirect_target(hero_id, from_profile=from_profile, from_home=from_home)

    try:
        result = await favorites.toggle_favorite(user, hero_id, reason)
    except PersistenceError as exc:
        session.flash(FLASH_ERROR, str(exc))
        return redirect_to(target)

    flash_toggle_result(session, result.hero.name, result.favorited)
    return redirect_to(target)


__all__ = ["favorite_redirect_target", "flash_toggle_result", "parse_page", "router"]
