"""
Role definitions and the access rule table.

Global roles (``User.role``) decide cross-team capabilities; team roles
(``TeamMember.role``) decide what a member may do inside one team. This
module is the single place role policy lives.
"""

from __future__ import annotations

from enum import Enum


class UserRole(str, Enum):
    SUPERUSER = "superuser"
    ADMIN = "admin"
    COACH = "coach"
    PLAYER = "player"


class TeamRole(str, Enum):
    ADMIN = "admin"
    COACH = "coach"
    PLAYER = "player"


class Action(str, Enum):
    """Action classes a route can require."""

    READ = "read"                      # matches, events, announcements, stats
    MANAGE_CONTENT = "manage_content"  # create/update/delete matches, events, lineups
    MANAGE_TEAM = "manage_team"        # members, team settings, join code
    ADMINISTER = "administer"          # cross-team administration


TEAM_ACTION_ROLES: dict[Action, frozenset[str]] = {
    Action.READ: frozenset({TeamRole.PLAYER.value, TeamRole.COACH.value, TeamRole.ADMIN.value}),
    Action.MANAGE_CONTENT: frozenset({TeamRole.COACH.value, TeamRole.ADMIN.value}),
    Action.MANAGE_TEAM: frozenset({TeamRole.ADMIN.value}),
}

GLOBAL_ACTION_ROLES: dict[Action, frozenset[str]] = {
    Action.ADMINISTER: frozenset({UserRole.SUPERUSER.value}),
}


def roles_for(action: Action) -> frozenset[str]:
    if action in TEAM_ACTION_ROLES:
        return TEAM_ACTION_ROLES[action]
    return GLOBAL_ACTION_ROLES[action]


def is_superuser(role: str | None) -> bool:
    return role == UserRole.SUPERUSER.value
