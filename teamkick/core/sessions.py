"""
Server-side sessions.

Session records live in Redis under ``session:<sid>`` with a TTL equal to the
session lifetime. The browser only ever holds a signed JWT carrying the
session id, so a cookie cannot be forged and a destroyed session cannot be
replayed: once the Redis key is gone the cookie resolves to nobody.

The user record is re-read from the database on every resolution, so role
changes take effect on the next request.
"""

from __future__ import annotations

import json
import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
import redis.asyncio as redis
import structlog
from argon2.exceptions import HashingError
from fastapi import Request, Response
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from teamkick.core.config import Settings
from teamkick.core.passwords import (
    classify_hash,
    dummy_hash,
    hash_password_async,
    needs_rehash,
    verify_password_async,
)
from teamkick.models.team_member import TeamMember
from teamkick.models.user import User
from teamkick.services.users import get_user, get_user_by_username

log = structlog.get_logger()

SESSION_KEY_PREFIX = "session:"
JWT_ALGORITHM = "HS256"


@dataclass(frozen=True)
class SessionRecord:
    session_id: str
    user_id: uuid.UUID
    created_at: datetime
    expires_at: datetime


# ---------------------------------------------------------------------------
# Redis session store
# ---------------------------------------------------------------------------

class SessionStore:
    """Session records in Redis, one key per session."""

    def __init__(self, client: redis.Redis, ttl_seconds: int):
        self.client = client
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def _key(session_id: str) -> str:
        return f"{SESSION_KEY_PREFIX}{session_id}"

    async def create(self, user_id: uuid.UUID) -> SessionRecord:
        now = datetime.now(timezone.utc)
        record = SessionRecord(
            session_id=secrets.token_urlsafe(32),
            user_id=user_id,
            created_at=now,
            expires_at=now + timedelta(seconds=self.ttl_seconds),
        )
        payload = json.dumps({
            "user_id": str(record.user_id),
            "created_at": record.created_at.isoformat(),
            "expires_at": record.expires_at.isoformat(),
        })
        await self.client.setex(self._key(record.session_id), self.ttl_seconds, payload)
        return record

    async def get(self, session_id: str) -> Optional[SessionRecord]:
        raw = await self.client.get(self._key(session_id))
        if raw is None:
            return None
        try:
            data = json.loads(raw)
            record = SessionRecord(
                session_id=session_id,
                user_id=uuid.UUID(data["user_id"]),
                created_at=datetime.fromisoformat(data["created_at"]),
                expires_at=datetime.fromisoformat(data["expires_at"]),
            )
        except (ValueError, KeyError, TypeError):
            log.warning("session.corrupt_record")
            await self.destroy(session_id)
            return None
        if record.expires_at <= datetime.now(timezone.utc):
            await self.destroy(session_id)
            return None
        return record

    async def destroy(self, session_id: str) -> None:
        await self.client.delete(self._key(session_id))


# ---------------------------------------------------------------------------
# Principal
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Principal:
    """The authenticated user behind a request.

    ``membership`` is filled in by the authorization guard for team-scoped
    routes; a new instance is built per request and never mutated.
    """

    user: User
    session_id: str
    membership: Optional[TeamMember] = None

    @property
    def user_id(self) -> uuid.UUID:
        return self.user.id


# ---------------------------------------------------------------------------
# Session manager
# ---------------------------------------------------------------------------

class SessionManager:
    """Login, logout and request-to-user resolution."""

    def __init__(self, settings: Settings, store: SessionStore):
        self.settings = settings
        self.store = store

    # -- cookie encoding ----------------------------------------------------

    def encode_cookie(self, record: SessionRecord) -> str:
        payload = {
            "sid": record.session_id,
            "iat": record.created_at,
            "exp": record.expires_at,
        }
        return jwt.encode(payload, self.settings.session_secret, algorithm=JWT_ALGORITHM)

    def decode_cookie(self, token: str) -> Optional[str]:
        """Return the session id from a signed cookie, or None if invalid."""
        try:
            payload = jwt.decode(
                token, self.settings.session_secret, algorithms=[JWT_ALGORITHM]
            )
        except jwt.PyJWTError:
            return None
        sid = payload.get("sid")
        return sid if isinstance(sid, str) and sid else None

    def set_session_cookie(self, response: Response, record: SessionRecord) -> None:
        response.set_cookie(
            key=self.settings.session_cookie_name,
            value=self.encode_cookie(record),
            max_age=self.settings.session_ttl_seconds,
            httponly=True,
            secure=self.settings.secure_cookies,
            samesite="lax",
            path="/",
        )

    # -- login / logout -----------------------------------------------------

    async def authenticate(
        self, username: str, password: str, session: AsyncSession
    ) -> Optional[User]:
        """Verify credentials, upgrading the stored hash when it is outdated.

        Unknown usernames still pay for one argon2 verification so response
        timing does not reveal which usernames exist.
        """
        user = await get_user_by_username(username, session)
        if user is None:
            await verify_password_async(password, dummy_hash())
            log.warning("auth.login_failure", reason="unknown_user")
            return None

        if not await verify_password_async(password, user.password_hash):
            log.warning("auth.login_failure", reason="bad_password", user_id=str(user.id))
            return None

        if needs_rehash(user.password_hash):
            await self._upgrade_hash(user, password, session)
        return user

    async def _upgrade_hash(self, user: User, password: str, session: AsyncSession) -> None:
        previous_format = classify_hash(user.password_hash).value
        try:
            user.password_hash = await hash_password_async(password)
            session.add(user)
            await session.flush()
        except (HashingError, SQLAlchemyError):
            # Login proceeds; the upgrade is retried at the next login.
            log.error("auth.hash_upgrade_failed", user_id=str(user.id), exc_info=True)
            await session.rollback()
            await session.refresh(user)
            return
        log.info("auth.hash_upgraded", user_id=str(user.id), from_format=previous_format)

    async def start_session(
        self,
        user: User,
        response: Response,
        session: AsyncSession,
        request: Optional[Request] = None,
    ) -> SessionRecord:
        """Issue a new session for ``user``, ending any session ``request`` carried."""
        if request is not None:
            await self.end_session(request)
        user.last_login_at = datetime.now(timezone.utc)
        session.add(user)
        await session.flush()
        record = await self.store.create(user.id)
        self.set_session_cookie(response, record)
        log.info("auth.session_created", user_id=str(user.id))
        return record

    async def login(
        self,
        username: str,
        password: str,
        response: Response,
        session: AsyncSession,
        request: Optional[Request] = None,
    ) -> Optional[User]:
        user = await self.authenticate(username, password, session)
        if user is None:
            return None
        await self.start_session(user, response, session, request)
        log.info("auth.login_success", user_id=str(user.id))
        return user

    async def end_session(self, request: Request) -> bool:
        """Destroy the session named by the request cookie, if there is one."""
        token = request.cookies.get(self.settings.session_cookie_name)
        sid = self.decode_cookie(token) if token else None
        if not sid:
            return False
        await self.store.destroy(sid)
        return True

    async def logout(self, request: Request, response: Response) -> None:
        """Destroy the session (if any) and clear both auth cookies."""
        if await self.end_session(request):
            log.info("auth.logout")
        response.delete_cookie(
            self.settings.session_cookie_name,
            path="/",
            httponly=True,
            secure=self.settings.secure_cookies,
            samesite="lax",
        )
        response.delete_cookie(
            self.settings.csrf_cookie_name,
            path="/",
            secure=self.settings.secure_cookies,
            samesite="lax",
        )

    # -- resolution ---------------------------------------------------------

    async def resolve(self, token: Optional[str], session: AsyncSession) -> Optional[Principal]:
        """Map a session cookie to a principal, or None when unauthenticated."""
        if not token:
            return None
        sid = self.decode_cookie(token)
        if sid is None:
            return None
        record = await self.store.get(sid)
        if record is None:
            return None
        user = await get_user(record.user_id, session)
        if user is None:
            await self.store.destroy(sid)
            return None
        return Principal(user=user, session_id=sid)
