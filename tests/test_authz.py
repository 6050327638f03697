"""
Tests for the authorization guard: the pure decision function and the
membership/role matrix over HTTP.
"""

from __future__ import annotations

import uuid

import pytest

from teamkick.core.auth import Outcome, decide, effective_role, ensure_same_team
from teamkick.core.errors import NotFoundError
from teamkick.core.roles import Action, UserRole, roles_for
from teamkick.core.sessions import Principal
from teamkick.models.match import Match
from teamkick.models.team_member import TeamMember
from teamkick.models.user import User
from teamkick.services import users as user_service

PASSWORD = "Secret123!"

MATCH = {
    "opponent_name": "City",
    "match_date": "2026-11-01T15:00:00Z",
    "location": "Riverside Park",
}


def principal(role: str = "player") -> Principal:
    return Principal(user=User(username="u", role=role), session_id="sid")


def member(role: str) -> TeamMember:
    return TeamMember(team_id=uuid.uuid4(), user_id=uuid.uuid4(), role=role)


# ---------------------------------------------------------------------------
# Unit Tests: decide()
# ---------------------------------------------------------------------------

class TestDecide:
    def test_no_principal_is_unauthenticated(self):
        d = decide(None, None, team_scoped=True, allowed_roles=roles_for(Action.READ))
        assert d.outcome is Outcome.UNAUTHENTICATED

    def test_non_member_is_refused_before_role_check(self):
        d = decide(principal("admin"), None, team_scoped=True)
        assert d.outcome is Outcome.NOT_A_MEMBER

    @pytest.mark.parametrize(
        "action, role, allowed",
        [
            (Action.READ, "player", True),
            (Action.READ, "coach", True),
            (Action.READ, "admin", True),
            (Action.MANAGE_CONTENT, "player", False),
            (Action.MANAGE_CONTENT, "coach", True),
            (Action.MANAGE_CONTENT, "admin", True),
            (Action.MANAGE_TEAM, "player", False),
            (Action.MANAGE_TEAM, "coach", False),
            (Action.MANAGE_TEAM, "admin", True),
        ],
    )
    def test_team_rule_table(self, action, role, allowed):
        d = decide(principal(), member(role), team_scoped=True, allowed_roles=roles_for(action))
        expected = Outcome.AUTHORIZED if allowed else Outcome.INSUFFICIENT_ROLE
        assert d.outcome is expected
        assert d.effective_role == role

    def test_team_role_wins_over_global_role(self):
        # A global coach who is only a player in this team.
        d = decide(
            principal("coach"), member("player"),
            team_scoped=True, allowed_roles=roles_for(Action.MANAGE_CONTENT),
        )
        assert d.outcome is Outcome.INSUFFICIENT_ROLE

    def test_superuser_acts_as_team_admin(self):
        p = principal(UserRole.SUPERUSER.value)
        assert effective_role(p, None, team_scoped=True) == "admin"
        d = decide(p, None, team_scoped=True, allowed_roles=roles_for(Action.MANAGE_TEAM))
        assert d.allowed

    def test_global_admin_gets_no_bypass(self):
        d = decide(principal("admin"), None, team_scoped=True, allowed_roles=roles_for(Action.READ))
        assert d.outcome is Outcome.NOT_A_MEMBER

    @pytest.mark.parametrize("role, allowed", [
        ("superuser", True), ("admin", False), ("coach", False), ("player", False),
    ])
    def test_cross_team_administration(self, role, allowed):
        d = decide(
            principal(role), None,
            team_scoped=False, allowed_roles=roles_for(Action.ADMINISTER),
        )
        assert d.allowed is allowed


class TestEnsureSameTeam:
    def test_matching_team(self):
        team_id = uuid.uuid4()
        match = Match(team_id=team_id, opponent_name="x", location="y", match_date=None)
        assert ensure_same_team(match, team_id) is match

    def test_other_team_is_not_found(self):
        match = Match(team_id=uuid.uuid4(), opponent_name="x", location="y", match_date=None)
        with pytest.raises(NotFoundError):
            ensure_same_team(match, uuid.uuid4())

    def test_missing_is_not_found(self):
        with pytest.raises(NotFoundError):
            ensure_same_team(None, uuid.uuid4())


# ---------------------------------------------------------------------------
# Integration: role matrix over HTTP
# ---------------------------------------------------------------------------

@pytest.fixture
async def roster(make_client, signup, create_team):
    """Team A with an admin, a coach and a player; team B with its own admin and a match."""
    admin, coach, player, outsider, rival = (make_client() for _ in range(5))
    await signup(admin, "admin1")
    coach_user = await signup(coach, "coach1")
    await signup(player, "player1")
    await signup(outsider, "outsider")
    await signup(rival, "rival_admin")

    team_a = await create_team(admin, "Team A")
    for client in (coach, player):
        r = await client.post("/api/teams/join", json={"code": team_a["join_code"]})
        assert r.status_code == 201, r.text
    r = await admin.patch(
        f"/api/teams/{team_a['id']}/members/{coach_user['id']}", json={"role": "coach"}
    )
    assert r.status_code == 200, r.text

    team_b = await create_team(rival, "Team B")
    r = await rival.post(f"/api/teams/{team_b['id']}/matches", json=MATCH)
    assert r.status_code == 201, r.text

    return {
        "admin": admin,
        "coach": coach,
        "player": player,
        "outsider": outsider,
        "team_a": team_a["id"],
        "team_b": team_b["id"],
        "match_b": r.json()["id"],
    }


@pytest.mark.asyncio
async def test_player_cannot_create_match(roster):
    r = await roster["player"].post(f"/api/teams/{roster['team_a']}/matches", json=MATCH)
    assert r.status_code == 403
    assert r.json()["error"]["code"] == "INSUFFICIENT_ROLE"


@pytest.mark.asyncio
async def test_coach_can_create_match(roster):
    r = await roster["coach"].post(f"/api/teams/{roster['team_a']}/matches", json=MATCH)
    assert r.status_code == 201
    assert r.json()["team_id"] == roster["team_a"]


@pytest.mark.asyncio
async def test_player_can_read_matches(roster):
    await roster["coach"].post(f"/api/teams/{roster['team_a']}/matches", json=MATCH)
    r = await roster["player"].get(f"/api/teams/{roster['team_a']}/matches")
    assert r.status_code == 200
    assert len(r.json()["data"]) == 1


@pytest.mark.asyncio
async def test_cross_team_match_is_not_found_even_for_admin(roster):
    url = f"/api/teams/{roster['team_a']}/matches/{roster['match_b']}"
    r = await roster["admin"].get(url)
    assert r.status_code == 404
    r = await roster["admin"].delete(url)
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_non_member_is_forbidden(roster):
    r = await roster["outsider"].get(f"/api/teams/{roster['team_a']}/matches")
    assert r.status_code == 403
    assert r.json()["error"]["code"] == "NOT_A_MEMBER"


@pytest.mark.asyncio
async def test_anonymous_is_unauthenticated(roster, make_client):
    r = await make_client().get(f"/api/teams/{roster['team_a']}/matches")
    assert r.status_code == 401
    assert r.json()["error"] == {
        "code": "UNAUTHENTICATED",
        "message": "Authentication required",
        "status": 401,
    }


@pytest.mark.asyncio
async def test_coach_cannot_manage_members(roster):
    r = await roster["coach"].get(f"/api/teams/{roster['team_a']}/members")
    assert r.status_code == 200
    r = await roster["coach"].post(f"/api/teams/{roster['team_a']}/join-code")
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_demotion_applies_on_next_request(roster):
    coach = roster["coach"]
    r = await coach.post(f"/api/teams/{roster['team_a']}/matches", json=MATCH)
    assert r.status_code == 201

    members = (await roster["admin"].get(f"/api/teams/{roster['team_a']}/members")).json()
    coach_id = next(m["user_id"] for m in members["data"] if m["role"] == "coach")
    r = await roster["admin"].patch(
        f"/api/teams/{roster['team_a']}/members/{coach_id}", json={"role": "player"}
    )
    assert r.status_code == 200

    r = await coach.post(f"/api/teams/{roster['team_a']}/matches", json=MATCH)
    assert r.status_code == 403


# ---------------------------------------------------------------------------
# Integration: superuser and admin panel
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_superuser_manages_any_team(roster, superuser_client):
    r = await superuser_client.post(f"/api/teams/{roster['team_a']}/matches", json=MATCH)
    assert r.status_code == 201
    r = await superuser_client.post(f"/api/teams/{roster['team_a']}/join-code")
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_superuser_unknown_team_is_not_found(superuser_client):
    r = await superuser_client.get(f"/api/teams/{uuid.uuid4()}/matches")
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_global_admin_is_not_a_superuser(make_client, login, session_factory, roster):
    async with session_factory() as session:
        await user_service.create_user("globaladmin", PASSWORD, session, role=UserRole.ADMIN)
        await session.commit()
    client = make_client()
    await login(client, "globaladmin")

    r = await client.get(f"/api/teams/{roster['team_a']}/matches")
    assert r.status_code == 403
    r = await client.get("/api/admin/users")
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_admin_panel_requires_superuser(roster, superuser_client):
    r = await roster["admin"].get("/api/admin/users")
    assert r.status_code == 403

    r = await superuser_client.get("/api/admin/users")
    assert r.status_code == 200
    usernames = {u["username"] for u in r.json()["data"]}
    assert {"admin1", "coach1", "player1", "root"} <= usernames
    assert all("password_hash" not in u for u in r.json()["data"])

    r = await superuser_client.get("/api/admin/teams")
    assert {t["name"] for t in r.json()["data"]} == {"Team A", "Team B"}


@pytest.mark.asyncio
async def test_global_role_change_applies_on_next_request(roster, superuser_client):
    outsider = roster["outsider"]
    me = (await outsider.get("/api/user")).json()
    assert (await outsider.get("/api/admin/users")).status_code == 403

    r = await superuser_client.patch(
        f"/api/admin/users/{me['id']}/role", json={"role": "superuser"}
    )
    assert r.status_code == 200

    assert (await outsider.get("/api/admin/users")).status_code == 200
    assert (await outsider.get("/api/user")).json()["role"] == "superuser"
