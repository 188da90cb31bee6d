"""Centralized configuration management for the Herodex web application."""

from __future__ import annotations

import logging
from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load a local .env before the settings singleton is built so scripts and the
# web app observe the same environment.
load_dotenv()

# -- Application-wide constants -------------------------------------------------

DEFAULT_SQLITE_DATABASE_URL = "sqlite+aiosqlite:///./data/herodex.db"
SQLITE_ASYNC_PREFIX = "sqlite+aiosqlite://"
POSTGRES_ASYNC_PREFIX = "postgresql+psycopg://"
POSTGRES_SYNC_PREFIXES = ("postgres://", "postgresql://")
DEFAULT_REDIS_URL = "redis://localhost:6379/0"
DEFAULT_REDIS_RETRY_BACKOFF_SECONDS = 30.0
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_SUPERHERO_API_BASE_URL = "https://superheroapi.com/api"
DEFAULT_PROVIDER_MAX_HERO_ID = 731
DEFAULT_PAGE_SIZE = 20
DEFAULT_SEARCH_RESULT_LIMIT = 20
DEFAULT_TOP_FAVORITES_LIMIT = 10
DEFAULT_SESSION_COOKIE_NAME = "herodex_session"
DEFAULT_SESSION_TTL_SECONDS = 24 * 60 * 60


class AppSettings(BaseSettings):
    """Typed configuration surface built on top of ``pydantic-settings``.

    Values come from environment variables (or ``.env``). Derived helpers such
    as :attr:`resolved_database_url` keep URL normalisation in one place so
    the engine factory, the seed script and the tests agree on it.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    database_url: str | None = Field(
        default=None,
        alias="DATABASE_URL",
        description=(
            "SQLAlchemy database URL. Sync Postgres URLs (postgres:// or"
            " postgresql://) are coerced into the async psycopg driver string."
        ),
    )
    use_sqlite: bool = Field(
        default=False,
        alias="USE_SQLITE",
        description="Force the local SQLite database regardless of DATABASE_URL.",
    )
    redis_url: str | None = Field(
        default=None,
        alias="REDIS_URL",
        description=(
            "Redis connection string backing server-side sessions. Sessions"
            " fall back to an in-process store when Redis is unreachable."
        ),
    )
    redis_retry_backoff_seconds: float = Field(
        default=DEFAULT_REDIS_RETRY_BACKOFF_SECONDS,
        alias="REDIS_RETRY_BACKOFF_SECONDS",
        description="Cooldown applied after a Redis connection failure.",
    )
    superhero_api_key: str = Field(
        default="",
        alias="SUPERHERO_API_KEY",
        description="Access token embedded in every Superhero API request path.",
    )
    superhero_api_base_url: str = Field(
        default=DEFAULT_SUPERHERO_API_BASE_URL,
        alias="SUPERHERO_API_BASE_URL",
    )
    provider_timeout_seconds: float = Field(
        default=10.0,
        alias="PROVIDER_TIMEOUT_SECONDS",
        description="Per-request timeout for Superhero API calls.",
    )
    provider_max_hero_id: int = Field(
        default=DEFAULT_PROVIDER_MAX_HERO_ID,
        alias="PROVIDER_MAX_HERO_ID",
        description="Highest hero id served by the provider; random picks stay below it.",
    )
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, alias="PAGE_SIZE", ge=1)
    search_result_limit: int = Field(
        default=DEFAULT_SEARCH_RESULT_LIMIT, alias="SEARCH_RESULT_LIMIT", ge=1
    )
    top_favorites_limit: int = Field(
        default=DEFAULT_TOP_FAVORITES_LIMIT, alias="TOP_FAVORITES_LIMIT", ge=1
    )
    session_cookie_name: str = Field(
        default=DEFAULT_SESSION_COOKIE_NAME, alias="SESSION_COOKIE_NAME"
    )
    session_ttl_seconds: int = Field(
        default=DEFAULT_SESSION_TTL_SECONDS, alias="SESSION_TTL_SECONDS", ge=1
    )
    session_cookie_secure: bool = Field(
        default=False,
        alias="SESSION_COOKIE_SECURE",
        description="Only send the session cookie over HTTPS.",
    )
    log_level: str = Field(
        default=DEFAULT_LOG_LEVEL,
        alias="LOG_LEVEL",
        description="Root logging level (e.g. INFO, DEBUG, WARNING).",
    )

    @property
    def resolved_database_url(self) -> str:
        """Return the async-compatible database URL after applying fallbacks."""

        if self.use_sqlite or not self.database_url:
            return DEFAULT_SQLITE_DATABASE_URL

        url = self.database_url.strip()

        for prefix in POSTGRES_SYNC_PREFIXES:
            if url.startswith(prefix):
                return url.replace(prefix, POSTGRES_ASYNC_PREFIX, 1)

        if url.startswith(POSTGRES_ASYNC_PREFIX) or url.startswith(SQLITE_ASYNC_PREFIX):
            return url

        raise RuntimeError(
            f"Expected a PostgreSQL or SQLite (aiosqlite) connection string, received: {url}"
        )

    @property
    def database_type(self) -> str:
        """Return ``sqlite`` when using SQLite otherwise ``postgresql``."""

        if self.resolved_database_url.startswith("sqlite"):
            return "sqlite"
        return "postgresql"

    @property
    def resolved_redis_url(self) -> str:
        return self.redis_url or DEFAULT_REDIS_URL

    @property
    def log_level_numeric(self) -> int:
        """Translate ``log_level`` into the numeric constant expected by logging."""

        candidate = logging.getLevelName(self.log_level.upper())
        if isinstance(candidate, int):
            return candidate
        return logging.INFO

    def optional_config_warnings(self) -> list[str]:
        """Return human-readable warnings for unset optional configuration."""

        warnings: list[str] = []

        if not self.superhero_api_key:
            warnings.append(
                "SUPERHERO_API_KEY is not set - cache misses cannot be filled "
                "from the Superhero API"
            )

        if not self.redis_url:
            warnings.append(
                "REDIS_URL is not set - sessions will use the in-process store "
                "(sessions are lost on restart)"
            )

        return warnings


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    """Return a cached instance of :class:`AppSettings`."""

    return AppSettings()


__all__ = [
    "AppSettings",
    "DEFAULT_LOG_LEVEL",
    "DEFAULT_PAGE_SIZE",
    "DEFAULT_REDIS_URL",
    "DEFAULT_SESSION_TTL_SECONDS",
    "DEFAULT_SQLITE_DATABASE_URL",
    "POSTGRES_ASYNC_PREFIX",
    "POSTGRES_SYNC_PREFIXES",
    "get_settings",
]
