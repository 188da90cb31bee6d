import logging
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from sqlalchemy.exc import (
    DBAPIError,
    OperationalError,
    SQLAlchemyError,
)
from sqlalchemy.exc import (
    TimeoutError as SQLAlchemyTimeoutError,
)
from sqlalchemy.ext.asyncio import AsyncEngine

from herodex import __version__
from herodex.api import auth, favorites, heroes, profile
from herodex.cache import close_redis
from herodex.db.connection import (
    create_tables,
    dispose_engine,
    sanitize_database_url,
    verify_connection,
)
from herodex.db.connection import (
    get_database_type as _connection_get_database_type,
)
from herodex.db.connection import (
    get_database_url as _connection_get_database_url,
)
from herodex.db.connection import (
    get_engine as _connection_get_engine,
)
from herodex.errors import (
    AuthenticationRequiredError,
    HeroNotFoundError,
    PersistenceError,
)
from herodex.sessions import session_middleware
from herodex.settings import AppSettings, get_settings
from herodex.templating import render
from herodex.utils.request_context import RequestIdLogFilter, get_request_id, set_request_id

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] %(message)s"

GENERIC_ERROR_MESSAGE = "Something went wrong!"
HERO_NOT_FOUND_MESSAGE = "Superhero not found"


def configure_logging(level: int | str) -> None:
    """Configure root logging once and tag every record with the request id."""

    logging.basicConfig(level=level, format=LOG_FORMAT)
    request_filter = RequestIdLogFilter()
    for handler in logging.getLogger().handlers:
        if not any(isinstance(existing, RequestIdLogFilter) for existing in handler.filters):
            handler.addFilter(request_filter)


configure_logging(get_settings().log_level_numeric)
logger = logging.getLogger(__name__)


def validate_environment(active_settings: AppSettings | None = None) -> None:
    """Log warnings for optional configuration that is missing."""

    warnings = (active_settings or get_settings()).optional_config_warnings()
    if warnings:
        logger.warning("=" * 60)
        logger.warning("Environment Configuration Warnings:")
        for warning in warnings:
            logger.warning(f"  • {warning}")
        logger.warning("=" * 60)


def get_database_type() -> str:
    """Module-level proxy so tests can patch ``herodex.main.get_database_type``."""
    return _connection_get_database_type()


def get_database_url() -> str:
    return _connection_get_database_url()


def get_engine() -> AsyncEngine:
    return _connection_get_engine()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Check configuration and the database before serving, clean up after."""
    validate_environment()

    db_type = get_database_type()
    sanitized_url = sanitize_database_url(get_database_url())

    # Preflight logging
    logger.info("=" * 60)
    logger.info("Herodex - Database Preflight Check")
    logger.info("=" * 60)
    logger.info(f"Database Type: {db_type.upper()}")
    logger.info(f"Database URL: {sanitized_url}")
    logger.info("=" * 60)

    engine = get_engine()
    # A database that cannot be reached aborts startup; there is no retry loop.
    await verify_connection(engine)
    await create_tables(engine)
    logger.info("Database ready")

    yield

    logger.info("Shutting down Herodex")
    await close_redis()
    await dispose_engine()


def _log_request_failure(request: Request, label: str, exc: BaseException) -> None:
    logger.error(
        "%s for request %s to %s: %s",
        label,
        get_request_id(),
        request.url.path,
        str(exc),
    )


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(HeroNotFoundError)
    async def hero_not_found_handler(request: Request, exc: HeroNotFoundError):
        logger.info("Hero %s not found (request %s)", exc.hero_id, get_request_id())
        return render(
            request,
            "error.html",
            {"title": "Not Found", "message": HERO_NOT_FOUND_MESSAGE},
            status_code=status.HTTP_404_NOT_FOUND,
        )

    @app.exception_handler(AuthenticationRequiredError)
    async def authentication_required_handler(
        request: Request, exc: AuthenticationRequiredError
    ):
        logger.info(
            "Anonymous request %s to %s rejected", get_request_id(), request.url.path
        )
        return render(
            request,
            "error.html",
            {"title": "Login Required", "message": str(exc)},
            status_code=status.HTTP_401_UNAUTHORIZED,
        )

    @app.exception_handler(OperationalError)
    @app.exception_handler(DBAPIError)
    @app.exception_handler(SQLAlchemyTimeoutError)
    async def database_unavailable_handler(request: Request, exc: Exception):
        """Handle database connection and timeout errors."""
        _log_request_failure(request, "Database connection error", exc)
        return render(
            request,
            "error.html",
            {
                "title": "Service Unavailable",
                "message": "Unable to reach the database. Please try again later.",
            },
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    @app.exception_handler(SQLAlchemyError)
    @app.exception_handler(PersistenceError)
    async def database_error_handler(request: Request, exc: Exception):
        _log_request_failure(request, "Database error", exc)
        return render(
            request,
            "error.html",
            {"title": "Error", "message": GENERIC_ERROR_MESSAGE},
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        """Handle all other unhandled exceptions."""
        logger.exception(
            "Unhandled exception for request %s to %s: %s",
            get_request_id(),
            request.url.path,
            type(exc).__name__,
        )
        response = render(
            request,
            "error.html",
            {"title": "Error", "message": GENERIC_ERROR_MESSAGE},
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
        # ServerErrorMiddleware sits outside the request id middleware.
        response.headers["X-Request-ID"] = get_request_id()
        return response


def create_app() -> FastAPI:
    app = FastAPI(
        title="Herodex",
        version=__version__,
        description="Browse, search, and favorite superheroes from the Superhero API.",
        lifespan=lifespan,
        redirect_slashes=False,
    )

    # Registered first so it runs inside the request id middleware.
    app.middleware("http")(session_middleware)

    @app.middleware("http")
    async def add_request_id(request: Request, call_next):
        """Add unique request ID to each request for tracking."""
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        set_request_id(request_id)
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    register_exception_handlers(app)

    @app.get("/health", tags=["system"])
    async def healthcheck() -> dict[str, str]:
        """Simple health endpoint for readiness checks."""
        return {"status": "ok"}

    app.include_router(auth.router, prefix="/auth", tags=["auth"])
    app.include_router(profile.router, prefix="/profile", tags=["profile"])
    app.include_router(favorites.router, prefix="/favorites", tags=["favorites"])
    # Catch-all ``/{hero_id}`` routes go last.
    app.include_router(heroes.router, tags=["heroes"])
    return app


app = create_app()
