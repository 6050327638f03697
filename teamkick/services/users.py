"""
User service: account lookup, creation and password storage.
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from teamkick.core.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from teamkick.core.passwords import hash_password_async
from teamkick.core.roles import UserRole
from teamkick.core.tokens import expiry, generate_token, hash_token, is_expired
from teamkick.models.user import User

log = structlog.get_logger()

# Fields a user may change on their own profile.
PROFILE_FIELDS = (
    "full_name",
    "email",
    "phone_number",
    "profile_picture",
    "position",
    "jersey_number",
    "bio",
)


async def get_user(user_id: uuid.UUID, session: AsyncSession) -> Optional[User]:
    return await session.get(User, user_id)


async def get_user_by_username(username: str, session: AsyncSession) -> Optional[User]:
    """Exact-match lookup. Usernames are case sensitive."""
    result = await session.execute(select(User).where(User.username == username))
    return result.scalar_one_or_none()


async def create_user(
    username: str,
    password: str,
    session: AsyncSession,
    *,
    role: UserRole = UserRole.PLAYER,
    full_name: Optional[str] = None,
    email: Optional[str] = None,
) -> User:
    """Create a user with an argon2id password hash.

    Raises ``ConflictError`` (400 ``USERNAME_TAKEN``) if the username exists.
    """
    if await get_user_by_username(username, session) is not None:
        raise ConflictError("USERNAME_TAKEN", "Username already exists", status_code=400)

    user = User(
        username=username,
        password_hash=await hash_password_async(password),
        role=role.value,
        full_name=full_name,
        email=email,
    )
    session.add(user)
    try:
        await session.flush()
    except IntegrityError:
        # Lost a race with a concurrent registration of the same name.
        raise ConflictError("USERNAME_TAKEN", "Username already exists", status_code=400)
    log.info("user.created", user_id=str(user.id), role=user.role)
    return user


async def set_password(user: User, password: str, session: AsyncSession) -> User:
    """Replace a user's stored hash with a fresh argon2id hash."""
    user.password_hash = await hash_password_async(password)
    session.add(user)
    await session.flush()
    return user


async def update_profile(user: User, changes: dict, session: AsyncSession) -> User:
    if "email" in changes and changes["email"] != user.email:
        # A new address has to be verified again.
        user.email_verified = False
        user.verification_token_hash = None
        user.verification_token_expires_at = None
    for field, value in changes.items():
        if field in PROFILE_FIELDS:
            setattr(user, field, value)
    session.add(user)
    await session.flush()
    return user


async def set_global_role(
    user_id: uuid.UUID, role: UserRole, session: AsyncSession
) -> User:
    user = await get_user(user_id, session)
    if user is None:
        raise NotFoundError("USER_NOT_FOUND", "User not found")
    previous = user.role
    user.role = role.value
    session.add(user)
    await session.flush()
    log.info("user.role_changed", user_id=str(user.id), old_role=previous, new_role=user.role)
    return user


async def list_users(session: AsyncSession) -> list[User]:
    result = await session.execute(select(User).order_by(User.created_at))
    return list(result.scalars().all())


async def delete_user(user_id: uuid.UUID, actor: User, session: AsyncSession) -> None:
    """Delete an account. Memberships go with it; owned teams are kept.

    Superuser accounts cannot be deleted this way; demote them first.
    """
    user = await get_user(user_id, session)
    if user is None:
        raise NotFoundError("USER_NOT_FOUND", "User not found")
    if user.role == UserRole.SUPERUSER.value:
        raise AuthorizationError("CANNOT_DELETE_SUPERUSER", "Superuser accounts cannot be deleted")
    await session.delete(user)
    await session.flush()
    log.info("user.deleted", user_id=str(user_id), deleted_by=str(actor.id))


# ---------------------------------------------------------------------------
# Password reset & email verification
# ---------------------------------------------------------------------------

async def get_user_by_email(email: str, session: AsyncSession) -> Optional[User]:
    """Oldest account registered with ``email``. Emails are not unique."""
    result = await session.execute(
        select(User).where(User.email == email).order_by(User.created_at).limit(1)
    )
    return result.scalars().first()


async def _get_user_by_token(column, token: str, session: AsyncSession) -> Optional[User]:
    result = await session.execute(select(User).where(column == hash_token(token)))
    return result.scalar_one_or_none()


async def start_password_reset(
    email: str, session: AsyncSession, *, ttl_seconds: int
) -> Optional[tuple[User, str]]:
    """Issue a reset token for the account behind ``email``.

    Returns ``(user, token)``, or None when no account uses the address.
    Callers must answer both cases identically. A new request replaces any
    token issued before.
    """
    user = await get_user_by_email(email, session)
    if user is None:
        log.info("auth.password_reset_requested", matched=False)
        return None
    token = generate_token()
    user.reset_token_hash = hash_token(token)
    user.reset_token_expires_at = expiry(ttl_seconds)
    session.add(user)
    await session.flush()
    log.info("auth.password_reset_requested", matched=True, user_id=str(user.id))
    return user, token


async def reset_password(token: str, new_password: str, session: AsyncSession) -> User:
    user = await _get_user_by_token(User.reset_token_hash, token, session)
    if user is None:
        raise ValidationError("INVALID_TOKEN", "Invalid or already used token")
    if is_expired(user.reset_token_expires_at):
        raise ValidationError("TOKEN_EXPIRED", "Reset token has expired")

    user.reset_token_hash = None
    user.reset_token_expires_at = None
    await set_password(user, new_password, session)
    log.info("auth.password_reset", user_id=str(user.id))
    return user


async def start_email_verification(
    user: User, session: AsyncSession, *, ttl_seconds: int
) -> str:
    if user.email_verified:
        raise ValidationError("EMAIL_ALREADY_VERIFIED", "Email is already verified")
    if not user.email:
        raise ValidationError("EMAIL_MISSING", "User has no email address")
    token = generate_token()
    user.verification_token_hash = hash_token(token)
    user.verification_token_expires_at = expiry(ttl_seconds)
    session.add(user)
    await session.flush()
    log.info("auth.verification_requested", user_id=str(user.id))
    return token


async def verify_email(token: str, session: AsyncSession) -> User:
    user = await _get_user_by_token(User.verification_token_hash, token, session)
    if user is None:
        raise ValidationError("INVALID_TOKEN", "Invalid or already used token")
    if is_expired(user.verification_token_expires_at):
        raise ValidationError("TOKEN_EXPIRED", "Verification token has expired")

    user.email_verified = True
    user.verification_token_hash = None
    user.verification_token_expires_at = None
    session.add(user)
    await session.flush()
    log.info("user.email_verified", user_id=str(user.id))
    return user
