"""Pydantic schemas shared by services, routers, and templates."""

from .account import (
    FavoriteHero,
    FavoriteStatus,
    FavoriteToggleResult,
    SessionUser,
    TopFavorite,
)
from .hero import (
    Appearance,
    Biography,
    Connections,
    HeroPage,
    HeroRecord,
    HeroSearchResult,
    PaginationInfo,
    PowerStats,
    Work,
)

__all__ = [
    "Appearance",
    "Biography",
    "Connections",
    "FavoriteHero",
    "FavoriteStatus",
    "FavoriteToggleResult",
    "HeroPage",
    "HeroRecord",
    "HeroSearchResult",
    "PaginationInfo",
    "PowerStats",
    "SessionUser",
    "TopFavorite",
    "Work",
]
