"""Clients for third-party data sources."""

from herodex.clients.superhero_api import POPULAR_HERO_IDS, HeroProvider, SuperheroApiClient

__all__ = ["POPULAR_HERO_IDS", "HeroProvider", "SuperheroApiClient"]
