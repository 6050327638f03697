"""
Security middleware: security headers, CSRF protection, rate limiting.
"""

from __future__ import annotations

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from teamkick.core.config import Settings
from teamkick.core.csrf import verify_token
from teamkick.core.errors import RateLimitError, error_body

log = structlog.get_logger()

SAFE_METHODS = {"GET", "HEAD", "OPTIONS"}

# Credential-establishing routes; there is no session to protect yet.
CSRF_EXEMPT_PATHS = {
    "/api/login",
    "/api/register",
    "/api/password-reset/request",
    "/api/password-reset/confirm",
}


def client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


# ---------------------------------------------------------------------------
# Security Headers
# ---------------------------------------------------------------------------

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "X-XSS-Protection": "0",
    "Referrer-Policy": "no-referrer",
    "Permissions-Policy": "camera=(), microphone=(), geolocation=()",
    "Cross-Origin-Opener-Policy": "same-origin",
    "Content-Security-Policy": (
        "default-src 'self'; "
        "img-src 'self' data: https:; "
        "style-src 'self' 'unsafe-inline'; "
        "object-src 'none'; "
        "frame-ancestors 'self';"
    ),
}

HSTS_HEADER = "max-age=15552000; includeSubDomains"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Attach security headers to every response."""

    def __init__(self, app, settings: Settings):
        super().__init__(app)
        self.settings = settings

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        for header, value in SECURITY_HEADERS.items():
            response.headers[header] = value
        if self.settings.is_production:
            response.headers["Strict-Transport-Security"] = HSTS_HEADER
        return response


# ---------------------------------------------------------------------------
# CSRF Protection (Double-Submit Cookie)
# ---------------------------------------------------------------------------

class CSRFMiddleware(BaseHTTPMiddleware):
    """
    Double-submit cookie CSRF protection.

    Skipped for:
    - Safe HTTP methods (GET, HEAD, OPTIONS)
    - Requests with an Authorization header (not cookie-based)
    - Requests without a session cookie (nothing to ride on)
    - Login and registration
    """

    def __init__(self, app, settings: Settings):
        super().__init__(app)
        self.settings = settings

    async def dispatch(self, request: Request, call_next) -> Response:
        if not self.settings.csrf_enforced:
            return await call_next(request)

        if request.method in SAFE_METHODS:
            return await call_next(request)

        if request.headers.get("Authorization"):
            return await call_next(request)

        if self.settings.session_cookie_name not in request.cookies:
            return await call_next(request)

        if request.url.path in CSRF_EXEMPT_PATHS:
            return await call_next(request)

        cookie_token = request.cookies.get(self.settings.csrf_cookie_name)
        header_token = request.headers.get(self.settings.csrf_header_name)

        if not verify_token(header_token, cookie_token):
            log.warning(
                "security.csrf_rejected",
                event_type="security_event",
                path=request.url.path,
                method=request.method,
                ip=client_ip(request),
                user_agent=request.headers.get("user-agent"),
            )
            return JSONResponse(
                status_code=403,
                content=error_body(
                    403, "CSRF_VALIDATION_FAILED", "Invalid or missing CSRF token."
                ),
            )

        return await call_next(request)


# ---------------------------------------------------------------------------
# Rate Limiting
# ---------------------------------------------------------------------------

class RateLimitMiddleware(BaseHTTPMiddleware):
    """Per-IP fixed-window limit on ``/api/`` routes."""

    async def dispatch(self, request: Request, call_next) -> Response:
        limiter = getattr(request.app.state, "rate_limiter", None)
        if limiter is None or not request.url.path.startswith("/api/"):
            return await call_next(request)

        ip = client_ip(request)
        result = await limiter.hit(ip)
        headers = {
            "RateLimit-Limit": str(result.limit),
            "RateLimit-Remaining": str(result.remaining),
            "RateLimit-Reset": str(result.reset_seconds),
        }
        if not result.allowed:
            log.warning(
                "security.rate_limited",
                event_type="security_event",
                path=request.url.path,
                method=request.method,
                ip=ip,
                user_agent=request.headers.get("user-agent"),
            )
            headers["Retry-After"] = str(result.reset_seconds)
            return JSONResponse(
                status_code=RateLimitError.status_code,
                content=error_body(
                    RateLimitError.status_code, RateLimitError.code, RateLimitError.message
                ),
                headers=headers,
            )

        response = await call_next(request)
        for header, value in headers.items():
            response.headers[header] = value
        return response
