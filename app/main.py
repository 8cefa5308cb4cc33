import logging
from os import getenv
from typing import Optional

from app.config import Settings, load_env_file_fallback

# Load .env before anything reads the environment
if not getenv("DATABASE_URL") or not getenv("ADMIN_PASSWORD"):
    load_env_file_fallback()

from litestar import Litestar
from litestar.config.cors import CORSConfig
from litestar.datastructures import State
from litestar.exceptions import (
    HTTPException,
    NotAuthorizedException,
    NotFoundException,
    PermissionDeniedException,
    ValidationException,
)
from litestar.plugins.sqlalchemy import AsyncSessionConfig, SQLAlchemyAsyncConfig, SQLAlchemyInitPlugin

from app.models import Base
from app.routes import ROUTES
from app.utils.logging import set_debug
from app.utils.responses import (
    ApiError,
    handle_api_error,
    handle_http_exception,
    handle_not_authorized,
    handle_not_found,
    handle_permission_denied,
    handle_validation_error,
    log_exceptions,
)

DEBUG = getenv("APP_DEBUG", "false").lower() == "true"

logging.basicConfig(
    level=logging.DEBUG if DEBUG else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
)
logger = logging.getLogger("Selah")


def _redact_url(database_url: str) -> str:
    if "@" not in database_url:
        return database_url
    scheme, _, rest = database_url.partition("://")
    return f"{scheme}://***@{rest.split('@', 1)[1]}"


def create_app(settings: Optional[Settings] = None) -> Litestar:
    """Build the Litestar application for the given settings."""
    settings = settings or Settings.from_env()
    set_debug(settings.debug)

    logger.info(f"Starting app in {'DEBUG' if settings.debug else 'PRODUCTION'} mode")
    logger.info(f"Database URL: {_redact_url(settings.database_url)}")
    if not settings.admin_configured:
        logger.warning("ADMIN_PASSWORD is not set; admin endpoints will reject every request")

    # --- SQLAlchemy config
    db_config = SQLAlchemyAsyncConfig(
        connection_string=settings.database_url,
        session_dependency_key="session",
        session_config=AsyncSessionConfig(expire_on_commit=False),
        metadata=Base.metadata,
        create_all=settings.debug,  # Auto-create tables on startup (dev only)
    )

    return Litestar(
        route_handlers=ROUTES,
        debug=settings.debug,
        plugins=[SQLAlchemyInitPlugin(db_config)],
        cors_config=CORSConfig(allow_origins=settings.cors_allow_origins),
        state=State({"settings": settings}),
        exception_handlers={
            ApiError: handle_api_error,
            ValidationException: handle_validation_error,
            NotAuthorizedException: handle_not_authorized,
            PermissionDeniedException: handle_permission_denied,
            NotFoundException: handle_not_found,
            HTTPException: handle_http_exception,
            Exception: log_exceptions,
        },
    )


app = create_app()
