"""
CSRF tokens (double-submit cookie).

The token is set in a cookie readable by the frontend, which echoes it back
in the ``X-CSRF-Token`` header on mutating requests. A cross-site attacker
can make the browser send the cookie but cannot read it to forge the header.
"""

from __future__ import annotations

import hmac
import secrets
from typing import Optional

from fastapi import Response

from teamkick.core.config import Settings


def issue_token() -> str:
    """Generate a random CSRF token."""
    return secrets.token_urlsafe(32)


def verify_token(header_token: Optional[str], cookie_token: Optional[str]) -> bool:
    if not header_token or not cookie_token:
        return False
    return hmac.compare_digest(header_token.encode(), cookie_token.encode())


def set_csrf_cookie(response: Response, settings: Settings, token: Optional[str] = None) -> str:
    """Issue a token (unless one is given) and set it as the CSRF cookie."""
    token = token or issue_token()
    response.set_cookie(
        key=settings.csrf_cookie_name,
        value=token,
        max_age=settings.session_ttl_seconds,
        httponly=False,  # the frontend must read it
        secure=settings.secure_cookies,
        samesite="lax",
        path="/",
    )
    return token
