"""
Authorization guard.

Every protected route composes the same chain::

    authenticated -> member of the team in the path -> role allowed

The decision itself is the pure function :func:`decide`; the FastAPI
dependencies below only gather its inputs and translate its outcome into an
:class:`~teamkick.core.errors.AppError`. Role policy lives in
:mod:`teamkick.core.roles` and nowhere else.
"""

from __future__ import annotations

import dataclasses
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Optional

import structlog
from fastapi import Depends, Request
from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from teamkick.core.database import get_session
from teamkick.core.errors import (
    AuthenticationError,
    AuthorizationError,
    InternalError,
    NotFoundError,
)
from teamkick.core.roles import Action, TeamRole, is_superuser, roles_for
from teamkick.core.sessions import Principal, SessionManager
from teamkick.models.team_member import TeamMember
from teamkick.services.teams import get_team, get_team_member

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Decision
# ---------------------------------------------------------------------------

class Outcome(str, Enum):
    AUTHORIZED = "authorized"
    UNAUTHENTICATED = "unauthenticated"
    NOT_A_MEMBER = "not_a_member"
    INSUFFICIENT_ROLE = "insufficient_role"


@dataclass(frozen=True)
class Decision:
    outcome: Outcome
    effective_role: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.outcome is Outcome.AUTHORIZED


def effective_role(
    principal: Principal, membership: Optional[TeamMember], team_scoped: bool
) -> Optional[str]:
    """The role that governs this request.

    Inside a team the membership role applies; a global superuser acts as a
    team admin everywhere. Outside a team the global role applies.
    """
    if not team_scoped:
        return principal.user.role
    if is_superuser(principal.user.role):
        return TeamRole.ADMIN.value
    return membership.role if membership is not None else None


def decide(
    principal: Optional[Principal],
    membership: Optional[TeamMember],
    *,
    team_scoped: bool,
    allowed_roles: Optional[Iterable[str]] = None,
) -> Decision:
    if principal is None:
        return Decision(Outcome.UNAUTHENTICATED)

    role = effective_role(principal, membership, team_scoped)
    if team_scoped and role is None:
        return Decision(Outcome.NOT_A_MEMBER)

    if allowed_roles is not None and role not in set(allowed_roles):
        return Decision(Outcome.INSUFFICIENT_ROLE, role)
    return Decision(Outcome.AUTHORIZED, role)


def raise_for(decision: Decision) -> None:
    """Translate a refusal into the matching HTTP error."""
    if decision.outcome is Outcome.UNAUTHENTICATED:
        raise AuthenticationError()
    if decision.outcome is Outcome.NOT_A_MEMBER:
        raise AuthorizationError("NOT_A_MEMBER", "You are not a member of this team")
    if decision.outcome is Outcome.INSUFFICIENT_ROLE:
        raise AuthorizationError(
            "INSUFFICIENT_ROLE", "Your role does not allow this action"
        )


# ---------------------------------------------------------------------------
# Principal resolution
# ---------------------------------------------------------------------------

def get_session_manager(request: Request) -> SessionManager:
    return request.app.state.session_manager


async def get_principal(
    request: Request,
    session: AsyncSession = Depends(get_session),
    manager: SessionManager = Depends(get_session_manager),
) -> Optional[Principal]:
    """Resolve the caller, or None when anonymous.

    A storage failure also yields None; it is remembered on the request so
    routes that need a caller answer 500 rather than 401.
    """
    token = request.cookies.get(manager.settings.session_cookie_name)
    if not token:
        return None
    try:
        principal = await manager.resolve(token, session)
    except (RedisError, SQLAlchemyError, OSError):
        log.error("auth.session_lookup_failed", path=request.url.path, exc_info=True)
        request.state.auth_storage_error = True
        return None
    return principal


async def require_principal(
    request: Request,
    principal: Optional[Principal] = Depends(get_principal),
) -> Principal:
    if principal is None:
        if getattr(request.state, "auth_storage_error", False):
            raise InternalError("SESSION_STORE_UNAVAILABLE", "Session storage unavailable")
        raise AuthenticationError()
    return principal


async def require_superuser(
    principal: Principal = Depends(require_principal),
) -> Principal:
    raise_for(decide(
        principal, None, team_scoped=False, allowed_roles=roles_for(Action.ADMINISTER)
    ))
    return principal


# ---------------------------------------------------------------------------
# Team-scoped guards
# ---------------------------------------------------------------------------

def require_team_role(*roles: str):
    """Dependency factory: caller must hold one of ``roles`` in ``team_id``.

    With no roles given any member passes. Resolves to a :class:`Principal`
    whose ``membership`` is the caller's row for the team (None for a
    superuser acting without one).
    """
    allowed = frozenset(r.value if isinstance(r, Enum) else r for r in roles) or None

    async def dependency(
        team_id: uuid.UUID,
        principal: Principal = Depends(require_principal),
        session: AsyncSession = Depends(get_session),
    ) -> Principal:
        membership = await get_team_member(team_id, principal.user_id, session)
        decision = decide(principal, membership, team_scoped=True, allowed_roles=allowed)
        if not decision.allowed:
            log.info(
                "auth.access_denied",
                team_id=str(team_id),
                outcome=decision.outcome.value,
                role=decision.effective_role,
            )
            raise_for(decision)
        if membership is None and await get_team(team_id, session) is None:
            # Only reachable by a superuser; everyone else stopped at NOT_A_MEMBER.
            raise NotFoundError("TEAM_NOT_FOUND", "Team not found")
        return dataclasses.replace(principal, membership=membership)

    return dependency


def require_team_action(action: Action):
    return require_team_role(*roles_for(action))


def team_role_of(principal: Principal) -> str:
    """The caller's effective role in the team its membership belongs to."""
    return effective_role(principal, principal.membership, team_scoped=True)


def ensure_same_team(resource: Any, team_id: uuid.UUID) -> Any:
    """Return ``resource`` if it belongs to ``team_id``; otherwise 404.

    A resource from another team is reported exactly like a missing one.
    """
    if resource is None or getattr(resource, "team_id", None) != team_id:
        raise NotFoundError()
    return resource
