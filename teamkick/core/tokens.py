"""
Single-use tokens sent by email (password reset, email verification).

Only a SHA-256 digest is stored, so a database leak does not hand out live
reset links. The digest is deterministic, which keeps the lookup a plain
indexed equality match.
"""

from __future__ import annotations

import hashlib
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional


def generate_token() -> str:
    return secrets.token_urlsafe(32)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def expiry(ttl_seconds: int, now: Optional[datetime] = None) -> datetime:
    return (now or datetime.now(timezone.utc)) + timedelta(seconds=ttl_seconds)


def is_expired(expires_at: Optional[datetime], now: Optional[datetime] = None) -> bool:
    if expires_at is None:
        return True
    if expires_at.tzinfo is None:
        # SQLite drops the offset; stored values are always UTC.
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    return expires_at <= (now or datetime.now(timezone.utc))
