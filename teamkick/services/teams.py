"""
Team registry: teams, join codes and memberships.

Join codes are six characters drawn from an alphabet without the easily
confused ``0``, ``O``, ``1`` and ``I``. They are unique across all teams;
the unique index on ``teams.join_code`` is the final arbiter, the retry loop
in :func:`generate_unique_join_code` just keeps collisions from reaching it.
"""

from __future__ import annotations

import secrets
import uuid
from typing import Callable, Optional

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from teamkick.core.errors import ConflictError, NotFoundError
from teamkick.core.roles import TeamRole
from teamkick.models.team import Team
from teamkick.models.team_member import TeamMember
from teamkick.models.user import User

log = structlog.get_logger()

JOIN_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
JOIN_CODE_LENGTH = 6
JOIN_CODE_MAX_ATTEMPTS = 10

TEAM_FIELDS = ("name", "logo", "division", "season_year", "team_type", "category")


# ---------------------------------------------------------------------------
# Join codes
# ---------------------------------------------------------------------------

def generate_join_code() -> str:
    return "".join(secrets.choice(JOIN_CODE_ALPHABET) for _ in range(JOIN_CODE_LENGTH))


def normalize_join_code(code: str) -> str:
    return code.strip().upper()


def is_well_formed_join_code(code: str) -> bool:
    return len(code) == JOIN_CODE_LENGTH and all(c in JOIN_CODE_ALPHABET for c in code)


async def generate_unique_join_code(
    session: AsyncSession,
    *,
    generate: Callable[[], str] = generate_join_code,
    max_attempts: int = JOIN_CODE_MAX_ATTEMPTS,
) -> str:
    """Draw codes until one is not held by any team."""
    for attempt in range(1, max_attempts + 1):
        code = generate()
        if await get_team_by_join_code(code, session) is None:
            return code
        log.info("team.join_code_collision", attempt=attempt)
    raise ConflictError("JOIN_CODE_EXHAUSTED", "Could not allocate a unique join code")


# ---------------------------------------------------------------------------
# Teams
# ---------------------------------------------------------------------------

async def get_team(team_id: uuid.UUID, session: AsyncSession) -> Optional[Team]:
    return await session.get(Team, team_id)


async def get_team_by_join_code(code: str, session: AsyncSession) -> Optional[Team]:
    result = await session.execute(select(Team).where(Team.join_code == code))
    return result.scalar_one_or_none()


async def create_team(
    owner: User, fields: dict, session: AsyncSession
) -> tuple[Team, TeamMember]:
    """Create a team and enrol ``owner`` as its admin.

    The team row and the admin membership are written as two separate steps;
    they commit together only because they share the caller's transaction.
    """
    team = Team(
        **{k: v for k, v in fields.items() if k in TEAM_FIELDS and v is not None},
        join_code=await generate_unique_join_code(session),
        owner_id=owner.id,
        created_by_id=owner.id,
    )
    session.add(team)
    try:
        await session.flush()
    except IntegrityError:
        raise ConflictError("JOIN_CODE_CONFLICT", "Join code already in use")

    membership = await create_membership(
        team.id, owner.id, TeamRole.ADMIN, session,
        full_name=owner.full_name, added_by_id=owner.id,
    )
    log.info("team.created", team_id=str(team.id), owner_id=str(owner.id))
    return team, membership


async def update_team(team: Team, changes: dict, session: AsyncSession) -> Team:
    for field, value in changes.items():
        if field in TEAM_FIELDS:
            setattr(team, field, value)
    session.add(team)
    await session.flush()
    return team


async def list_teams(session: AsyncSession) -> list[Team]:
    result = await session.execute(select(Team).order_by(Team.created_at))
    return list(result.scalars().all())


async def list_user_teams(
    user_id: uuid.UUID, session: AsyncSession
) -> list[tuple[Team, TeamMember]]:
    """Teams the user belongs to, with the user's membership in each."""
    result = await session.execute(
        select(Team, TeamMember)
        .join(TeamMember, TeamMember.team_id == Team.id)
        .where(TeamMember.user_id == user_id)
        .order_by(TeamMember.joined_at)
    )
    return [(team, member) for team, member in result.all()]


async def validate_join_code(code: str, session: AsyncSession) -> Optional[dict]:
    """Resolve a join code to the team's public fields, or None."""
    normalized = normalize_join_code(code)
    if not is_well_formed_join_code(normalized):
        return None
    team = await get_team_by_join_code(normalized, session)
    if team is None:
        return None
    return {"id": team.id, "name": team.name, "logo": team.logo}


async def regenerate_join_code(team_id: uuid.UUID, session: AsyncSession) -> str:
    """Give the team a new code. The previous one stops resolving immediately."""
    team = await get_team(team_id, session)
    if team is None:
        raise NotFoundError("TEAM_NOT_FOUND", "Team not found")
    team.join_code = await generate_unique_join_code(session)
    session.add(team)
    try:
        await session.flush()
    except IntegrityError:
        raise ConflictError("JOIN_CODE_CONFLICT", "Join code already in use")
    log.info("team.join_code_regenerated", team_id=str(team.id))
    return team.join_code


# ---------------------------------------------------------------------------
# Memberships
# ---------------------------------------------------------------------------

async def get_team_member(
    team_id: uuid.UUID, user_id: uuid.UUID, session: AsyncSession
) -> Optional[TeamMember]:
    return await session.get(TeamMember, (team_id, user_id))


async def create_membership(
    team_id: uuid.UUID,
    user_id: uuid.UUID,
    role: TeamRole,
    session: AsyncSession,
    *,
    full_name: Optional[str] = None,
    added_by_id: Optional[uuid.UUID] = None,
) -> TeamMember:
    """Add a user to a team. A user holds at most one membership per team."""
    if await get_team_member(team_id, user_id, session) is not None:
        raise ConflictError("ALREADY_MEMBER", "User is already a member of this team")

    member = TeamMember(
        team_id=team_id,
        user_id=user_id,
        role=role.value,
        full_name=full_name,
        added_by_id=added_by_id,
    )
    session.add(member)
    try:
        await session.flush()
    except IntegrityError:
        raise ConflictError("ALREADY_MEMBER", "User is already a member of this team")
    log.info("team.member_added", team_id=str(team_id), user_id=str(user_id), role=member.role)
    return member


async def join_team(code: str, user: User, session: AsyncSession) -> tuple[Team, TeamMember]:
    """Enrol ``user`` as a player of the team holding ``code``."""
    normalized = normalize_join_code(code)
    team = None
    if is_well_formed_join_code(normalized):
        team = await get_team_by_join_code(normalized, session)
    if team is None:
        raise NotFoundError("INVALID_JOIN_CODE", "Invalid join code")
    member = await create_membership(
        team.id, user.id, TeamRole.PLAYER, session, full_name=user.full_name
    )
    return team, member


async def list_members(team_id: uuid.UUID, session: AsyncSession) -> list[TeamMember]:
    result = await session.execute(
        select(TeamMember)
        .where(TeamMember.team_id == team_id)
        .order_by(TeamMember.joined_at)
    )
    return list(result.scalars().all())


async def update_member_role(
    team_id: uuid.UUID, user_id: uuid.UUID, role: TeamRole, session: AsyncSession
) -> TeamMember:
    member = await get_team_member(team_id, user_id, session)
    if member is None:
        raise NotFoundError("MEMBER_NOT_FOUND", "Member not found")
    previous = member.role
    member.role = role.value
    session.add(member)
    await session.flush()
    log.info(
        "team.member_role_changed",
        team_id=str(team_id), user_id=str(user_id), old_role=previous, new_role=member.role,
    )
    return member


async def remove_member(
    team_id: uuid.UUID, user_id: uuid.UUID, session: AsyncSession
) -> None:
    member = await get_team_member(team_id, user_id, session)
    if member is None:
        raise NotFoundError("MEMBER_NOT_FOUND", "Member not found")
    await session.delete(member)
    await session.flush()
    log.info("team.member_removed", team_id=str(team_id), user_id=str(user_id))


async def delete_team(team_id: uuid.UUID, actor_id: uuid.UUID, session: AsyncSession) -> None:
    """Delete a team. Memberships and matches cascade in the database."""
    team = await get_team(team_id, session)
    if team is None:
        raise NotFoundError("TEAM_NOT_FOUND", "Team not found")
    await session.delete(team)
    await session.flush()
    log.info("team.deleted", team_id=str(team_id), deleted_by=str(actor_id))
