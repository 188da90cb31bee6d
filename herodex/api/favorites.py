"""Community page ranking heroes by how many users favorited them."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from starlette.responses import Response

from herodex.services.dependencies import get_favorites_service
from herodex.services.favorites_service import FavoritesService
from herodex.settings import AppSettings, get_settings
from herodex.templating import render

router = APIRouter()


@router.get("")
async def top_favorites(
    request: Request,
    favorites: FavoritesService = Depends(get_favorites_service),
    settings: AppSettings = Depends(get_settings),
) -> Response:
    top = await favorites.top_favorites(settings.top_favorites_limit)
    return render(request, "favorites.html", {"top_favorites": top})


__all__ = ["router"]
