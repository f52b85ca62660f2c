"""
Exception handlers: typed engine errors -> ``{"error": code, "message": ...}``.

Unhandled exceptions are logged and returned as a bare ``{"error": ...}``
500 without a traceback.
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from club_kernel.exceptions import (
    ClubFinanceError,
    DuesCycleError,
    ExternalIOError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from club_kernel.logging_config import get_logger

logger = get_logger("api.errors")

# Most specific first.
_STATUS_BY_ERROR: tuple[tuple[type[ClubFinanceError], int], ...] = (
    (ForbiddenError, 403),
    (NotFoundError, 404),
    (InvalidTransitionError, 409),
    (DuesCycleError, 409),
    (ValidationError, 400),
    (ExternalIOError, 502),
)


def status_for(exc: ClubFinanceError) -> int:
    for error_type, status in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status
    return 500


async def _club_error_handler(request: Request, exc: ClubFinanceError) -> JSONResponse:
    status = status_for(exc)
    logger.warning(
        "api_request_rejected",
        extra={"path": request.url.path, "status": status, "error_code": exc.code},
    )
    return JSONResponse(status_code=status, content={"error": exc.code, "message": str(exc)})


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("api_unhandled_error", extra={"path": request.url.path}, exc_info=exc)
    return JSONResponse(status_code=500, content={"error": str(exc) or type(exc).__name__})


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ClubFinanceError, _club_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
