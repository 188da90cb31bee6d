"""Repository package for the database access layer."""

from herodex.db.repositories.account_repository import AccountRepository
from herodex.db.repositories.hero_repository import HeroRepository

__all__ = ["AccountRepository", "HeroRepository"]
