"""
Timesheet access core - Main Application Entry Point
"""
import logging
from urllib.parse import urlparse, urlunparse

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError

from app.api.router import api_router
from app.core.config import settings
from app.core.errors import (
    http_exception_handler,
    access_error_handler,
    validation_exception_handler,
    generic_exception_handler
)
from app.core.exceptions import AccessError
from app.core.logging import setup_logging
from app.db.init_db import init_db
from app.db.session import SessionLocal

# Setup logging first
setup_logging()
logger = logging.getLogger(__name__)


def _mask_database_url(url: str) -> str:
    """Mask password in DATABASE_URL for safe logging; show full path for sqlite."""
    parsed = urlparse(url)
    if parsed.scheme.startswith("sqlite"):
        return url
    if parsed.password:
        netloc = f"{parsed.username}:****@{parsed.hostname or ''}"
        if parsed.port:
            netloc += f":{parsed.port}"
        return urlunparse(parsed._replace(netloc=netloc))
    return url


# Create FastAPI app
app = FastAPI(
    title="Timesheet Access Core",
    description="Role-based row access, self-modification guard and audit trail for timesheets",
    version=settings.VERSION or "1.0.0"
)

# Configure CORS - must be before other middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register exception handlers
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(AccessError, access_error_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)

# Include all API routes under /api/v1
app.include_router(api_router, prefix="/api/v1")


def _is_no_such_table(err: BaseException) -> bool:
    msg = str(err).lower()
    return "no such table" in msg or "does not exist" in msg


async def _handle_operational_error(request, exc: OperationalError):
    if _is_no_such_table(exc):
        return JSONResponse(
            status_code=500,
            content={"detail": "Run alembic upgrade head"},
        )
    return await generic_exception_handler(request, exc)


app.add_exception_handler(OperationalError, _handle_operational_error)


@app.on_event("startup")
def startup_log_config() -> None:
    """Log DATABASE_URL at startup so it can be verified against Alembic."""
    logger.info("DATABASE_URL (app): %s", _mask_database_url(settings.DATABASE_URL))


@app.on_event("startup")
def bootstrap_initial_admin() -> None:
    """Create the initial super admin if the database has none"""
    db = SessionLocal()
    try:
        init_db(db)
    except OperationalError as e:
        db.rollback()
        if _is_no_such_table(e):
            logger.warning("Database tables not ready yet, skipping initial bootstrap")
        else:
            logger.error("Database error during admin bootstrap: %s", e)
    finally:
        db.close()
