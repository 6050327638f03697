"""
Cross-team administration. Global superusers only.

Per-team changes (settings, members, matches) go through the regular team
routes, where a superuser acts as an admin of every team.
"""

from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from teamkick.core.auth import require_superuser
from teamkick.core.database import get_session
from teamkick.core.sessions import Principal
from teamkick.schemas.feedback import (
    FeedbackListResponse,
    FeedbackResponse,
    FeedbackStatus,
    FeedbackStatusUpdateRequest,
)
from teamkick.schemas.teams import TeamListResponse, TeamResponse
from teamkick.schemas.users import (
    AdminUserCreateRequest,
    UserListResponse,
    UserResponse,
    UserRoleUpdateRequest,
)
from teamkick.services import feedback as feedback_service
from teamkick.services import teams as team_service
from teamkick.services import users as user_service

router = APIRouter()


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

@router.get("/users", response_model=UserListResponse)
async def list_users(
    principal: Principal = Depends(require_superuser),
    session: AsyncSession = Depends(get_session),
):
    users = await user_service.list_users(session)
    return UserListResponse(data=[UserResponse.model_validate(u) for u in users])


@router.post("/users", response_model=UserResponse, status_code=201)
async def create_user(
    body: AdminUserCreateRequest,
    principal: Principal = Depends(require_superuser),
    session: AsyncSession = Depends(get_session),
):
    return await user_service.create_user(
        body.username,
        body.password,
        session,
        role=body.role,
        full_name=body.full_name,
        email=body.email,
    )


@router.patch("/users/{user_id}/role", response_model=UserResponse)
async def change_user_role(
    user_id: uuid.UUID,
    body: UserRoleUpdateRequest,
    principal: Principal = Depends(require_superuser),
    session: AsyncSession = Depends(get_session),
):
    """Change a user's global role. Applies from the user's next request."""
    return await user_service.set_global_role(user_id, body.role, session)


@router.delete("/users/{user_id}", status_code=204)
async def delete_user(
    user_id: uuid.UUID,
    principal: Principal = Depends(require_superuser),
    session: AsyncSession = Depends(get_session),
):
    await user_service.delete_user(user_id, principal.user, session)


# ---------------------------------------------------------------------------
# Teams
# ---------------------------------------------------------------------------

@router.get("/teams", response_model=TeamListResponse)
async def list_teams(
    principal: Principal = Depends(require_superuser),
    session: AsyncSession = Depends(get_session),
):
    teams = await team_service.list_teams(session)
    return TeamListResponse(data=[TeamResponse.model_validate(t) for t in teams])


@router.delete("/teams/{team_id}", status_code=204)
async def delete_team(
    team_id: uuid.UUID,
    principal: Principal = Depends(require_superuser),
    session: AsyncSession = Depends(get_session),
):
    await team_service.delete_team(team_id, principal.user_id, session)


# ---------------------------------------------------------------------------
# Feedback triage
# ---------------------------------------------------------------------------

@router.get("/feedback", response_model=FeedbackListResponse)
async def list_feedback(
    status: Optional[FeedbackStatus] = None,
    principal: Principal = Depends(require_superuser),
    session: AsyncSession = Depends(get_session),
):
    items = await feedback_service.list_feedback(
        session, status.value if status is not None else None
    )
    return FeedbackListResponse(data=[FeedbackResponse.model_validate(f) for f in items])


@router.patch("/feedback/{feedback_id}", response_model=FeedbackResponse)
async def update_feedback_status(
    feedback_id: uuid.UUID,
    body: FeedbackStatusUpdateRequest,
    principal: Principal = Depends(require_superuser),
    session: AsyncSession = Depends(get_session),
):
    return await feedback_service.set_feedback_status(feedback_id, body.status.value, session)
