"""Domain exceptions shared by services, routers, and exception handlers.

Routers translate these into HTTP behaviour: provider and persistence
failures become flash messages, a failed single-hero lookup renders a 404
page, validation errors re-render forms, and missing authentication either
redirects to the login page or answers ``401``.
"""

from __future__ import annotations


class HeroProviderError(Exception):
    """Raised when the Superhero API cannot be reached or answers garbage."""


class HeroProviderNotFoundError(HeroProviderError):
    """Raised when the Superhero API reports that a hero does not exist."""

    def __init__(self, hero_id: str, message: str | None = None) -> None:
        super().__init__(message or f"Superhero with ID {hero_id} not found")
        self.hero_id = hero_id


class HeroNotFoundError(LookupError):
    """Raised when a hero is neither cached nor retrievable from the provider."""

    def __init__(self, hero_id: str) -> None:
        super().__init__(f"Superhero {hero_id} not found")
        self.hero_id = hero_id


class PersistenceError(Exception):
    """Raised after a failed database write has been rolled back."""


class AccountValidationError(ValueError):
    """Raised when registration or login input is rejected."""


class AuthenticationRequiredError(PermissionError):
    """Raised when an anonymous caller invokes an action that needs an account."""

    def __init__(self, message: str = "You must be logged in to do that") -> None:
        super().__init__(message)


__all__ = [
    "AccountValidationError",
    "AuthenticationRequiredError",
    "HeroNotFoundError",
    "HeroProviderError",
    "HeroProviderNotFoundError",
    "PersistenceError",
]
