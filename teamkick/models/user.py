"""User model."""

from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class User(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "users"

    username: str = Field(unique=True, index=True, nullable=False)
    # Written only by the password hasher; never serialized to clients.
    password_hash: Optional[str] = Field(default=None)
    role: str = Field(default="player", nullable=False)  # player | coach | admin | superuser
    full_name: Optional[str] = None
    email: Optional[str] = Field(default=None, index=True)
    phone_number: Optional[str] = None
    profile_picture: Optional[str] = None
    position: Optional[str] = None
    jersey_number: Optional[int] = None
    bio: Optional[str] = None
    last_login_at: Optional[datetime] = Field(
        default=None, sa_type=sa.DateTime(timezone=True)
    )

    # Email verification and password reset. Tokens are stored as SHA-256
    # digests; see teamkick.core.tokens.
    email_verified: bool = Field(default=False, nullable=False)
    verification_token_hash: Optional[str] = Field(default=None, index=True)
    verification_token_expires_at: Optional[datetime] = Field(
        default=None, sa_type=sa.DateTime(timezone=True)
    )
    reset_token_hash: Optional[str] = Field(default=None, index=True)
    reset_token_expires_at: Optional[datetime] = Field(
        default=None, sa_type=sa.DateTime(timezone=True)
    )
