"""
Match endpoints. Reads need membership; writes need coach or admin.

A match id that belongs to another team is answered with 404.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from teamkick.core.auth import ensure_same_team, require_team_action
from teamkick.core.database import get_session
from teamkick.core.roles import Action
from teamkick.core.sessions import Principal
from teamkick.schemas.matches import (
    MatchCreateRequest,
    MatchListResponse,
    MatchResponse,
    MatchUpdateRequest,
)
from teamkick.services import matches as match_service

router = APIRouter()


def _fields(body, *, exclude_unset: bool = False) -> dict:
    fields = body.model_dump(exclude_unset=exclude_unset)
    if fields.get("status") is not None:
        fields["status"] = fields["status"].value
    return fields


@router.get("", response_model=MatchListResponse)
async def list_matches(
    team_id: uuid.UUID,
    principal: Principal = Depends(require_team_action(Action.READ)),
    session: AsyncSession = Depends(get_session),
):
    matches = await match_service.list_matches(team_id, session)
    return MatchListResponse(data=[MatchResponse.model_validate(m) for m in matches])


@router.post("", response_model=MatchResponse, status_code=201)
async def create_match(
    team_id: uuid.UUID,
    body: MatchCreateRequest,
    principal: Principal = Depends(require_team_action(Action.MANAGE_CONTENT)),
    session: AsyncSession = Depends(get_session),
):
    return await match_service.create_match(team_id, _fields(body), session)


@router.get("/{match_id}", response_model=MatchResponse)
async def get_match(
    team_id: uuid.UUID,
    match_id: uuid.UUID,
    principal: Principal = Depends(require_team_action(Action.READ)),
    session: AsyncSession = Depends(get_session),
):
    return ensure_same_team(await match_service.get_match(match_id, session), team_id)


@router.patch("/{match_id}", response_model=MatchResponse)
async def update_match(
    team_id: uuid.UUID,
    match_id: uuid.UUID,
    body: MatchUpdateRequest,
    principal: Principal = Depends(require_team_action(Action.MANAGE_CONTENT)),
    session: AsyncSession = Depends(get_session),
):
    match = ensure_same_team(await match_service.get_match(match_id, session), team_id)
    return await match_service.update_match(
        match, _fields(body, exclude_unset=True), session
    )


@router.delete("/{match_id}", status_code=204)
async def delete_match(
    team_id: uuid.UUID,
    match_id: uuid.UUID,
    principal: Principal = Depends(require_team_action(Action.MANAGE_CONTENT)),
    session: AsyncSession = Depends(get_session),
):
    match = ensure_same_team(await match_service.get_match(match_id, session), team_id)
    await match_service.delete_match(match, session)
