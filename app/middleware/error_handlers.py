"""
Exception handlers rendering every error as {"error": str, "code": str}.

Usage:
    from app.middleware.error_handlers import register_error_handlers

    register_error_handlers(app)
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.db.helpers import DatabaseError
from app.errors import AppError
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

HTTP_STATUS_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    429: "QUOTA_EXCEEDED",
}


def _error_response(status_code: int, message: str, code: str, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code, content={"error": message, "code": code}, headers=headers
    )


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        "Request failed",
        path=request.url.path,
        status_code=exc.status_code,
        code=exc.code,
        error=exc.message,
        request_id=_request_id(request),
    )
    return _error_response(exc.status_code, exc.message, exc.code)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = HTTP_STATUS_CODES.get(exc.status_code, "HTTP_ERROR")
    return _error_response(exc.status_code, str(exc.detail), code, getattr(exc, "headers", None))


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    if location:
        message = f"{location}: {message}"
    return _error_response(400, message, "VALIDATION_ERROR")


async def database_error_handler(request: Request, exc: DatabaseError) -> JSONResponse:
    logger.error(
        "Database error",
        path=request.url.path,
        operation=exc.operation,
        error=str(exc),
        request_id=_request_id(request),
    )
    return _error_response(500, "Internal server error", "INTERNAL_ERROR")


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "Unhandled exception",
        path=request.url.path,
        error_type=type(exc).__name__,
        request_id=_request_id(request),
    )
    return _error_response(500, "Internal server error", "INTERNAL_ERROR")


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(DatabaseError, database_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
