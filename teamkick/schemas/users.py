"""User and authentication schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, UUID4

from teamkick.core.roles import UserRole


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class RegisterRequest(BaseModel):
    username: str = Field(min_length=3, max_length=50)
    password: str = Field(min_length=8, max_length=1024)
    full_name: Optional[str] = Field(default=None, max_length=200)
    email: Optional[EmailStr] = None
    join_code: Optional[str] = Field(default=None, max_length=32)


class LoginRequest(BaseModel):
    username: str = Field(min_length=1, max_length=50)
    password: str = Field(max_length=1024)


class PasswordChangeRequest(BaseModel):
    current_password: str = Field(max_length=1024)
    new_password: str = Field(min_length=8, max_length=1024)


class ProfileUpdateRequest(BaseModel):
    full_name: Optional[str] = Field(default=None, max_length=200)
    email: Optional[EmailStr] = None
    phone_number: Optional[str] = Field(default=None, max_length=50)
    profile_picture: Optional[str] = Field(default=None, max_length=500)
    position: Optional[str] = Field(default=None, max_length=50)
    jersey_number: Optional[int] = Field(default=None, ge=0, le=999)
    bio: Optional[str] = Field(default=None, max_length=2000)


class PasswordResetRequest(BaseModel):
    email: EmailStr


class PasswordResetConfirmRequest(BaseModel):
    token: str = Field(min_length=1, max_length=200)
    new_password: str = Field(min_length=8, max_length=1024)


class AdminUserCreateRequest(BaseModel):
    username: str = Field(min_length=3, max_length=50)
    password: str = Field(min_length=8, max_length=1024)
    role: UserRole = UserRole.PLAYER
    full_name: Optional[str] = Field(default=None, max_length=200)
    email: Optional[EmailStr] = None


class UserRoleUpdateRequest(BaseModel):
    """Change a user's global role (superuser only)."""
    role: UserRole


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class UserResponse(BaseModel):
    """A user as seen by clients. Never carries the password hash."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID4
    username: str
    role: UserRole
    full_name: Optional[str] = None
    email: Optional[str] = None
    phone_number: Optional[str] = None
    profile_picture: Optional[str] = None
    position: Optional[str] = None
    jersey_number: Optional[int] = None
    bio: Optional[str] = None
    email_verified: bool = False
    last_login_at: Optional[datetime] = None
    created_at: datetime


class UserListResponse(BaseModel):
    data: List[UserResponse]


class CsrfTokenResponse(BaseModel):
    csrf_token: str


class MessageResponse(BaseModel):
    message: str
