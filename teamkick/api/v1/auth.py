"""
Authentication endpoints.

POST /api/register       - Create an account (optionally joining a team by code)
POST /api/login          - Username/password login
POST /api/logout         - End the session
GET  /api/user           - Current user
PATCH /api/user          - Update own profile
POST /api/user/password  - Change password
GET  /api/csrf-token     - Issue a fresh CSRF token

POST /api/password-reset/request  - Email a reset link (never reveals whether the email exists)
POST /api/password-reset/confirm  - Set a new password with a reset token
POST /api/verify-email/request    - Email a verification link to the current user
GET  /api/verify-email/{token}    - Confirm an email address
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from teamkick.core.auth import get_session_manager, require_principal
from teamkick.core.csrf import set_csrf_cookie
from teamkick.core.database import get_session
from teamkick.core.errors import AuthenticationError, ValidationError
from teamkick.core.mail import (
    LogMailer,
    get_mailer,
    password_reset_message,
    verification_message,
)
from teamkick.core.passwords import verify_password_async
from teamkick.core.roles import TeamRole, UserRole
from teamkick.core.sessions import Principal, SessionManager
from teamkick.schemas.users import (
    CsrfTokenResponse,
    LoginRequest,
    MessageResponse,
    PasswordChangeRequest,
    PasswordResetConfirmRequest,
    PasswordResetRequest,
    ProfileUpdateRequest,
    RegisterRequest,
    UserResponse,
)
from teamkick.services import teams as team_service
from teamkick.services import users as user_service

log = structlog.get_logger()
router = APIRouter()


# ---------------------------------------------------------------------------
# Registration & login
# ---------------------------------------------------------------------------

@router.post("/register", response_model=UserResponse, status_code=201)
async def register(
    body: RegisterRequest,
    request: Request,
    response: Response,
    session: AsyncSession = Depends(get_session),
    manager: SessionManager = Depends(get_session_manager),
):
    """Create a player account and log it in."""
    team = None
    if body.join_code:
        code = team_service.normalize_join_code(body.join_code)
        if team_service.is_well_formed_join_code(code):
            team = await team_service.get_team_by_join_code(code, session)
        if team is None:
            raise ValidationError("INVALID_JOIN_CODE", "Invalid join code")

    user = await user_service.create_user(
        body.username,
        body.password,
        session,
        role=UserRole.PLAYER,
        full_name=body.full_name,
        email=body.email,
    )
    if team is not None:
        await team_service.create_membership(
            team.id, user.id, TeamRole.PLAYER, session, full_name=user.full_name
        )

    await manager.start_session(user, response, session, request)
    set_csrf_cookie(response, manager.settings)
    log.info("auth.registered", user_id=str(user.id), joined_team=team is not None)
    return user


@router.post("/login", response_model=UserResponse)
async def login(
    body: LoginRequest,
    request: Request,
    response: Response,
    session: AsyncSession = Depends(get_session),
    manager: SessionManager = Depends(get_session_manager),
):
    user = await manager.login(body.username, body.password, response, session, request)
    if user is None:
        raise AuthenticationError("INVALID_CREDENTIALS", "Invalid username or password")
    set_csrf_cookie(response, manager.settings)
    return user


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    response: Response,
    manager: SessionManager = Depends(get_session_manager),
):
    await manager.logout(request, response)
    return MessageResponse(message="Logged out")


# ---------------------------------------------------------------------------
# Current user
# ---------------------------------------------------------------------------

@router.get("/user", response_model=UserResponse)
async def current_user(principal: Principal = Depends(require_principal)):
    return principal.user


@router.patch("/user", response_model=UserResponse)
async def update_current_user(
    body: ProfileUpdateRequest,
    principal: Principal = Depends(require_principal),
    session: AsyncSession = Depends(get_session),
):
    return await user_service.update_profile(
        principal.user, body.model_dump(exclude_unset=True), session
    )


@router.post("/user/password", response_model=MessageResponse)
async def change_password(
    body: PasswordChangeRequest,
    principal: Principal = Depends(require_principal),
    session: AsyncSession = Depends(get_session),
):
    if not await verify_password_async(body.current_password, principal.user.password_hash):
        raise ValidationError("INVALID_CURRENT_PASSWORD", "Current password is incorrect")
    await user_service.set_password(principal.user, body.new_password, session)
    log.info("auth.password_changed", user_id=str(principal.user_id))
    return MessageResponse(message="Password updated")


@router.get("/csrf-token", response_model=CsrfTokenResponse)
async def csrf_token(
    response: Response,
    principal: Principal = Depends(require_principal),
    manager: SessionManager = Depends(get_session_manager),
):
    token = set_csrf_cookie(response, manager.settings)
    return CsrfTokenResponse(csrf_token=token)


# ---------------------------------------------------------------------------
# Password reset & email verification
# ---------------------------------------------------------------------------

RESET_REQUESTED = "If that email is registered, reset instructions are on their way"


@router.post("/password-reset/request", response_model=MessageResponse)
async def request_password_reset(
    body: PasswordResetRequest,
    session: AsyncSession = Depends(get_session),
    manager: SessionManager = Depends(get_session_manager),
    mailer: LogMailer = Depends(get_mailer),
):
    """Same answer whether or not the address belongs to an account."""
    settings = manager.settings
    issued = await user_service.start_password_reset(
        body.email, session, ttl_seconds=settings.password_reset_ttl_seconds
    )
    if issued is not None:
        user, token = issued
        link = f"{settings.public_base_url}/reset-password?token={token}"
        await mailer.send(
            password_reset_message(
                user.email, user.username, link, settings.password_reset_ttl_seconds
            )
        )
    return MessageResponse(message=RESET_REQUESTED)


@router.post("/password-reset/confirm", response_model=MessageResponse)
async def confirm_password_reset(
    body: PasswordResetConfirmRequest,
    session: AsyncSession = Depends(get_session),
):
    await user_service.reset_password(body.token, body.new_password, session)
    return MessageResponse(message="Password has been reset")


@router.post("/verify-email/request", response_model=MessageResponse)
async def request_email_verification(
    principal: Principal = Depends(require_principal),
    session: AsyncSession = Depends(get_session),
    manager: SessionManager = Depends(get_session_manager),
    mailer: LogMailer = Depends(get_mailer),
):
    settings = manager.settings
    user = principal.user
    token = await user_service.start_email_verification(
        user, session, ttl_seconds=settings.email_verification_ttl_seconds
    )
    link = f"{settings.public_base_url}/verify-email?token={token}"
    await mailer.send(
        verification_message(
            user.email, user.username, link, settings.email_verification_ttl_seconds
        )
    )
    return MessageResponse(message="Verification email sent")


@router.get("/verify-email/{token}", response_model=MessageResponse)
async def confirm_email(token: str, session: AsyncSession = Depends(get_session)):
    await user_service.verify_email(token, session)
    return MessageResponse(message="Email verified")
