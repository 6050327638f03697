"""
Team member management.

GET    /api/teams/{team_id}/members             - List members (member)
POST   /api/teams/{team_id}/members             - Add a user (admin)
PATCH  /api/teams/{team_id}/members/{user_id}   - Change team role (admin)
DELETE /api/teams/{team_id}/members/{user_id}   - Remove a member (admin)
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from teamkick.core.auth import require_team_action
from teamkick.core.database import get_session
from teamkick.core.errors import NotFoundError
from teamkick.core.roles import Action
from teamkick.core.sessions import Principal
from teamkick.schemas.teams import (
    MemberAddRequest,
    MemberListResponse,
    MemberResponse,
    MemberUpdateRequest,
)
from teamkick.services import teams as team_service
from teamkick.services import users as user_service

router = APIRouter()


@router.get("", response_model=MemberListResponse)
async def list_members(
    team_id: uuid.UUID,
    principal: Principal = Depends(require_team_action(Action.READ)),
    session: AsyncSession = Depends(get_session),
):
    members = await team_service.list_members(team_id, session)
    return MemberListResponse(data=[MemberResponse.model_validate(m) for m in members])


@router.post("", response_model=MemberResponse, status_code=201)
async def add_member(
    team_id: uuid.UUID,
    body: MemberAddRequest,
    principal: Principal = Depends(require_team_action(Action.MANAGE_TEAM)),
    session: AsyncSession = Depends(get_session),
):
    user = await user_service.get_user(body.user_id, session)
    if user is None:
        raise NotFoundError("USER_NOT_FOUND", "User not found")
    return await team_service.create_membership(
        team_id,
        user.id,
        body.role,
        session,
        full_name=body.full_name or user.full_name,
        added_by_id=principal.user_id,
    )


@router.patch("/{user_id}", response_model=MemberResponse)
async def update_member(
    team_id: uuid.UUID,
    user_id: uuid.UUID,
    body: MemberUpdateRequest,
    principal: Principal = Depends(require_team_action(Action.MANAGE_TEAM)),
    session: AsyncSession = Depends(get_session),
):
    return await team_service.update_member_role(team_id, user_id, body.role, session)


@router.delete("/{user_id}", status_code=204)
async def remove_member(
    team_id: uuid.UUID,
    user_id: uuid.UUID,
    principal: Principal = Depends(require_team_action(Action.MANAGE_TEAM)),
    session: AsyncSession = Depends(get_session),
):
    await team_service.remove_member(team_id, user_id, session)
