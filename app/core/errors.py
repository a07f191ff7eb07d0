"""
Central error handling for the Timesheet access core
"""
import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi import HTTPException

from app.core.config import settings
from app.core.exceptions import AccessError, AuditWriteFailed

logger = logging.getLogger(__name__)


def _error_body(request: Request, status_code: int, detail, **extra) -> dict:
    body = {
        "error": True,
        "status_code": status_code,
        "detail": detail,
        "path": str(request.url.path),
    }
    body.update(extra)
    return body


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """
    Handle HTTPException with consistent JSON response format

    Args:
        request: FastAPI request object
        exc: HTTPException instance

    Returns:
        JSONResponse with error details
    """
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(request, exc.status_code, exc.detail),
        headers=getattr(exc, "headers", None),
    )


async def access_error_handler(request: Request, exc: AccessError) -> JSONResponse:
    """
    Render typed access-core errors (Forbidden, NotFound, SelfModificationDenied,
    ConstraintViolation, AuditWriteFailed) in the common envelope.

    Only the error's safe detail is exposed; AuditWriteFailed is logged as an
    internal error since the caller can only retry.
    """
    if isinstance(exc, AuditWriteFailed):
        logger.error("Audit write failed on %s: %s", request.url.path, exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(request, exc.status_code, exc.detail),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Handle RequestValidationError with consistent JSON response format

    Does not leak internal validation details in production.
    """
    if settings.APP_ENV == "prod":
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=_error_body(request, 422, "Validation error: Invalid request data"),
        )

    # In development/staging, return detailed errors (sanitize ctx values for JSON)
    errors = []
    for e in exc.errors():
        err = dict(e)
        if "ctx" in err and isinstance(err["ctx"], dict):
            err["ctx"] = {
                k: (str(v) if not isinstance(v, (str, int, float, bool, type(None))) else v)
                for k, v in err["ctx"].items()
            }
        errors.append(err)
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=_error_body(request, 422, "Validation error", errors=errors),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle unexpected exceptions with consistent JSON response format

    Does not leak internal error details in production.
    """
    logger.error("Unhandled exception: %s", exc, exc_info=True)

    if settings.APP_ENV == "prod":
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body(request, 500, "Internal server error"),
        )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body(request, 500, str(exc)),
    )
