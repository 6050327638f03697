"""
Error taxonomy and the JSON error envelope.

Every error leaves the service as::

    {"error": {"code": "...", "message": "...", "status": 403}}

Stack traces, SQL and hash internals are only ever attached in development.
"""

from __future__ import annotations

import traceback
from typing import Any, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from teamkick.core.config import Settings

log = structlog.get_logger()


class AppError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"
    message: str = "Internal Server Error"

    def __init__(
        self,
        code: Optional[str] = None,
        message: Optional[str] = None,
        *,
        status_code: Optional[int] = None,
        details: Any = None,
    ):
        self.code = code or self.code
        self.message = message or self.message
        if status_code is not None:
            self.status_code = status_code
        self.details = details
        super().__init__(self.message)


class AuthenticationError(AppError):
    status_code = 401
    code = "UNAUTHENTICATED"
    message = "Authentication required"


class AuthorizationError(AppError):
    status_code = 403
    code = "FORBIDDEN"
    message = "You do not have permission to access this resource"


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"
    message = "Resource not found"


class ConflictError(AppError):
    status_code = 409
    code = "CONFLICT"
    message = "Resource already exists"


class ValidationError(AppError):
    status_code = 400
    code = "VALIDATION_ERROR"
    message = "Invalid request"


class RateLimitError(AppError):
    status_code = 429
    code = "RATE_LIMITED"
    message = "Too many requests, please try again later"


class InternalError(AppError):
    status_code = 500
    code = "INTERNAL_ERROR"
    message = "Internal Server Error"


def error_body(
    status: int, code: str, message: str, details: Any = None
) -> dict:
    body: dict = {"code": code, "message": message, "status": status}
    if details is not None:
        body["details"] = details
    return {"error": body}


def _client_ip(request: Request) -> Optional[str]:
    return request.client.host if request.client else None


def register_exception_handlers(app: FastAPI, settings: Settings) -> None:
    """Install the handlers that render :class:`AppError` and friends."""

    async def handle_app_error(request: Request, exc: AppError) -> JSONResponse:
        log_method = log.error if exc.status_code >= 500 else log.info
        log_method(
            "http.error",
            status=exc.status_code,
            code=exc.code,
            path=request.url.path,
            method=request.method,
            ip=_client_ip(request),
        )
        message = exc.message
        details = exc.details
        if settings.is_production:
            details = None
            if exc.status_code >= 500:
                message = "Internal Server Error"
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.status_code, exc.code, message, details),
        )

    async def handle_validation_error(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        details = None
        if not settings.is_production:
            details = [
                {"loc": list(err.get("loc", ())), "msg": err.get("msg")}
                for err in exc.errors()
            ]
        return JSONResponse(
            status_code=400,
            content=error_body(400, "VALIDATION_ERROR", "Invalid request", details),
        )

    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        log.error(
            "http.unhandled_exception",
            path=request.url.path,
            method=request.method,
            ip=_client_ip(request),
            exc_info=not settings.is_production,
        )
        details = None
        if not settings.is_production:
            details = {
                "exception": type(exc).__name__,
                "stack": traceback.format_exception(exc),
            }
        return JSONResponse(
            status_code=500,
            content=error_body(500, "INTERNAL_ERROR", "Internal Server Error", details),
        )

    app.add_exception_handler(AppError, handle_app_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected)
