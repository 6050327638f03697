"""
Team endpoints.

POST  /api/teams                       - Create a team (caller becomes admin)
GET   /api/teams                       - Teams the caller belongs to
POST  /api/teams/join                  - Join a team by code
GET   /api/teams/{team_id}             - Team details (member)
PATCH /api/teams/{team_id}             - Update team settings (admin)
POST  /api/teams/{team_id}/join-code   - Regenerate the join code (admin)
GET   /api/validate-join-code/{code}   - Public join code lookup
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from teamkick.core.auth import require_principal, require_team_action, team_role_of
from teamkick.core.database import get_session
from teamkick.core.errors import NotFoundError
from teamkick.core.roles import Action, TeamRole
from teamkick.core.sessions import Principal
from teamkick.models.team import Team
from teamkick.schemas.teams import (
    JoinCodeResponse,
    JoinCodeValidationResponse,
    JoinTeamRequest,
    MyTeamListResponse,
    MyTeamResponse,
    PublicTeam,
    TeamCreateRequest,
    TeamResponse,
    TeamUpdateRequest,
)
from teamkick.services import teams as team_service

router = APIRouter()


def _team_response(team: Team, role: str) -> TeamResponse:
    data = TeamResponse.model_validate(team)
    if role != TeamRole.ADMIN.value:
        data.join_code = None
    return data


@router.post("/teams", response_model=MyTeamResponse, status_code=201)
async def create_team(
    body: TeamCreateRequest,
    principal: Principal = Depends(require_principal),
    session: AsyncSession = Depends(get_session),
):
    team, member = await team_service.create_team(principal.user, body.model_dump(), session)
    return MyTeamResponse(team=_team_response(team, member.role), role=member.role)


@router.get("/teams", response_model=MyTeamListResponse)
async def list_my_teams(
    principal: Principal = Depends(require_principal),
    session: AsyncSession = Depends(get_session),
):
    rows = await team_service.list_user_teams(principal.user_id, session)
    return MyTeamListResponse(
        data=[
            MyTeamResponse(team=_team_response(team, member.role), role=member.role)
            for team, member in rows
        ]
    )


@router.post("/teams/join", response_model=MyTeamResponse, status_code=201)
async def join_team(
    body: JoinTeamRequest,
    principal: Principal = Depends(require_principal),
    session: AsyncSession = Depends(get_session),
):
    team, member = await team_service.join_team(body.code, principal.user, session)
    return MyTeamResponse(team=_team_response(team, member.role), role=member.role)


@router.get("/teams/{team_id}", response_model=TeamResponse)
async def get_team(
    team_id: uuid.UUID,
    principal: Principal = Depends(require_team_action(Action.READ)),
    session: AsyncSession = Depends(get_session),
):
    team = await team_service.get_team(team_id, session)
    if team is None:
        raise NotFoundError("TEAM_NOT_FOUND", "Team not found")
    return _team_response(team, team_role_of(principal))


@router.patch("/teams/{team_id}", response_model=TeamResponse)
async def update_team(
    team_id: uuid.UUID,
    body: TeamUpdateRequest,
    principal: Principal = Depends(require_team_action(Action.MANAGE_TEAM)),
    session: AsyncSession = Depends(get_session),
):
    team = await team_service.get_team(team_id, session)
    if team is None:
        raise NotFoundError("TEAM_NOT_FOUND", "Team not found")
    team = await team_service.update_team(team, body.model_dump(exclude_unset=True), session)
    return _team_response(team, team_role_of(principal))


@router.post("/teams/{team_id}/join-code", response_model=JoinCodeResponse)
async def regenerate_join_code(
    team_id: uuid.UUID,
    principal: Principal = Depends(require_team_action(Action.MANAGE_TEAM)),
    session: AsyncSession = Depends(get_session),
):
    code = await team_service.regenerate_join_code(team_id, session)
    return JoinCodeResponse(join_code=code, message="Join code regenerated")


@router.get("/validate-join-code/{code}", response_model=JoinCodeValidationResponse)
async def validate_join_code(
    code: str,
    session: AsyncSession = Depends(get_session),
):
    """Public: resolve a join code to the team's name and logo."""
    team = await team_service.validate_join_code(code, session)
    if team is None:
        return JoinCodeValidationResponse(valid=False, message="Invalid join code")
    return JoinCodeValidationResponse(valid=True, team=PublicTeam(**team))
