"""Match service. Every query is scoped to a single team."""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from teamkick.models.match import Match

log = structlog.get_logger()


async def list_matches(team_id: uuid.UUID, session: AsyncSession) -> list[Match]:
    result = await session.execute(
        select(Match).where(Match.team_id == team_id).order_by(Match.match_date)
    )
    return list(result.scalars().all())


async def get_match(match_id: uuid.UUID, session: AsyncSession) -> Optional[Match]:
    """Fetch by id only. Callers must check ``team_id`` themselves."""
    return await session.get(Match, match_id)


async def create_match(team_id: uuid.UUID, fields: dict, session: AsyncSession) -> Match:
    match = Match(team_id=team_id, **fields)
    session.add(match)
    await session.flush()
    log.info("match.created", team_id=str(team_id), match_id=str(match.id))
    return match


async def update_match(match: Match, changes: dict, session: AsyncSession) -> Match:
    for field, value in changes.items():
        if field not in ("id", "team_id"):
            setattr(match, field, value)
    session.add(match)
    await session.flush()
    return match


async def delete_match(match: Match, session: AsyncSession) -> None:
    await session.delete(match)
    await session.flush()
    log.info("match.deleted", team_id=str(match.team_id), match_id=str(match.id))
