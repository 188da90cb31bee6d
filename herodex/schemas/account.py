"""Schemas for accounts, session identity, and favorites views."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from herodex.schemas.hero import HeroRecord


class SessionUser(BaseModel):
    """Minimal identity snapshot stored in the server-side session."""

    id: int
    username: str
    email: str


class FavoriteStatus(BaseModel):
    hero_id: str
    reason: str = ""
    position: int = 0


class FavoriteHero(BaseModel):
    """A resolved favorite entry ready for the profile page."""

    hero: HeroRecord
    reason: str = ""
    added_at: datetime | None = None


class FavoriteToggleResult(BaseModel):
    hero: HeroRecord
    favorited: bool = Field(
        ..., description="True when the toggle created an entry, False when it removed one."
    )


class TopFavorite(BaseModel):
    hero: HeroRecord
    count: int


__all__ = [
    "FavoriteHero",
    "FavoriteStatus",
    "FavoriteToggleResult",
    "SessionUser",
    "TopFavorite",
]
