import logging
import traceback

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, OperationalError

from app.core.config import is_development
from app.core.exceptions import AppException, ConflictError, InternalError

logger = logging.getLogger(__name__)


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.__class__.__name__,
            "message": exc.message,
            "detail": exc.detail,
        },
    )


async def sqlalchemy_integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    """Unique and foreign-key violations surface as conflicts."""
    error_message = str(exc.orig) if exc.orig is not None else str(exc)
    logger.warning("Integrity error on %s %s: %s", request.method, request.url.path, error_message)

    if "unique" in error_message.lower() or "duplicate" in error_message.lower():
        app_exc = ConflictError(message="Resource conflict", detail=f"Resource already exists: {error_message}")
    else:
        app_exc = ConflictError(message="Database integrity error", detail=error_message)
    return await app_exception_handler(request, app_exc)


async def sqlalchemy_operational_error_handler(request: Request, exc: OperationalError) -> JSONResponse:
    logger.error("Database operation failed on %s %s", request.method, request.url.path, exc_info=exc)
    error_message = str(exc.orig) if exc.orig is not None else str(exc)
    app_exc = InternalError(
        message="Database operation failed",
        detail=error_message if is_development() else "Database operation failed",
    )
    return await app_exception_handler(request, app_exc)


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    app_exc = InternalError(
        message="Internal server error",
        detail=str(exc) if is_development() else "An unexpected error occurred",
    )
    if is_development():
        app_exc.detail = f"{app_exc.detail}\n\nTraceback:\n{''.join(traceback.format_exception(exc))}"
    return await app_exception_handler(request, app_exc)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(IntegrityError, sqlalchemy_integrity_error_handler)
    app.add_exception_handler(OperationalError, sqlalchemy_operational_error_handler)
    app.add_exception_handler(Exception, general_exception_handler)
