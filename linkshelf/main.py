"""Main FastAPI application."""

import logging
import re
import time
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import __version__
from . import models  # noqa: F401  (registers tables on Base.metadata)
from .api import collections_router, links_router, tree_router
from .core.config import ConfigurationError, Environment, settings
from .core.logging_config import setup_logging
from .database import DATABASE_URL, Base, engine, get_db, is_postgresql
from .exceptions import LinkshelfException
from .middleware.exception_handler import linkshelf_exception_handler
from .middleware.request_context import RequestContextMiddleware

setup_logging(log_level=settings.log_level, log_format=settings.log_format)
logger = logging.getLogger(__name__)


def _mask_url(url: str) -> str:
    """Mask the password in a database URL for safe logging."""
    return re.sub(r'://([^:]+):([^@]+)@', r'://\1:***@', url)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle for the Linkshelf API."""
    logger.info(f"Environment: {settings.environment.value}")
    try:
        settings.validate_production_config()
    except ConfigurationError as e:
        logger.critical(f"STARTUP BLOCKED: {e}")
        raise SystemExit(1) from e

    if settings.environment == Environment.DEVELOPMENT:
        logger.warning(
            "SECURITY: identity is read from the %s header without verification. "
            "Run behind an authenticating gateway outside development.",
            settings.user_id_header,
        )

    logger.info(f"Connecting to database: {_mask_url(DATABASE_URL)}")
    try:
        Base.metadata.create_all(bind=engine)
    except SQLAlchemyError as e:
        logger.critical(f"Database initialisation failed: {e}")
        raise SystemExit(1) from e

    yield


app = FastAPI(
    title="Linkshelf API",
    description=(
        "Shared link collections organised as a tree. Collections inherit "
        "member grants from their ancestors; the owner always has full rights.\n\n"
        "**Identity:** every `/api` endpoint expects the acting user's id in the "
        "`X-User-ID` header (configurable with `USER_ID_HEADER`)."
    ),
    version=__version__,
    lifespan=lifespan,
)

# Middleware stack (outermost first: CORS wraps request context).
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", settings.user_id_header],
)
app.add_middleware(RequestContextMiddleware)

app.add_exception_handler(LinkshelfException, linkshelf_exception_handler)

logger.info(
    "Linkshelf API started | env=%s | db=%s | identity_header=%s | cors=%s",
    settings.environment.value,
    "PostgreSQL" if is_postgresql() else "SQLite",
    settings.user_id_header,
    ",".join(settings.get_cors_origins()),
)

app.include_router(collections_router)
app.include_router(links_router)
app.include_router(tree_router)


@app.get("/")
def root():
    """Root endpoint."""
    return {
        "name": "Linkshelf API",
        "version": __version__,
        "status": "running"
    }


_startup_time = time.monotonic()


@app.get("/health")
def health_check(db: Session = Depends(get_db)):
    """Health check returning database status and uptime.

    Never raises: a database failure yields a degraded status instead of a 5xx.
    """
    db_status = "ok"
    collection_count = 0
    try:
        db.execute(text("SELECT 1"))
        collection_count = db.execute(text("SELECT COUNT(*) FROM collections")).scalar() or 0
    except SQLAlchemyError:
        db_status = "error"

    return {
        "status": "healthy" if db_status == "ok" else "degraded",
        "db": db_status,
        "uptime_seconds": round(time.monotonic() - _startup_time),
        "version": __version__,
        "collection_count": collection_count,
    }
