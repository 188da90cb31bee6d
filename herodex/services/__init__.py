"""Service layer coordinating the hero cache, accounts, and favorites."""

from herodex.services.auth_service import AuthService
from herodex.services.favorites_service import FavoritesService
from herodex.services.hero_service import HeroService

__all__ = ["AuthService", "FavoritesService", "HeroService"]
