"""
Tests for team, join code and membership endpoints.
"""

from __future__ import annotations

import pytest


@pytest.mark.asyncio
async def test_creator_becomes_admin(client, signup):
    await signup(client, "coach")
    r = await client.post("/api/teams", json={"name": "Rovers", "division": "Div 2"})
    assert r.status_code == 201
    body = r.json()
    assert body["role"] == "admin"
    assert body["team"]["name"] == "Rovers"
    assert len(body["team"]["join_code"]) == 6

    r = await client.get(f"/api/teams/{body['team']['id']}/members")
    [member] = r.json()["data"]
    assert member["role"] == "admin"


@pytest.mark.asyncio
async def test_join_code_hidden_from_players(make_client, signup, create_team):
    admin, player = make_client(), make_client()
    await signup(admin, "admin")
    await signup(player, "player")
    team = await create_team(admin)

    r = await player.post("/api/teams/join", json={"code": team["join_code"]})
    assert r.status_code == 201
    assert r.json()["role"] == "player"
    assert r.json()["team"]["join_code"] is None

    r = await player.get(f"/api/teams/{team['id']}")
    assert r.status_code == 200
    assert r.json()["join_code"] is None

    r = await admin.get(f"/api/teams/{team['id']}")
    assert r.json()["join_code"] == team["join_code"]


@pytest.mark.asyncio
async def test_join_twice_conflicts(make_client, signup, create_team):
    admin, player = make_client(), make_client()
    await signup(admin, "admin")
    await signup(player, "player")
    team = await create_team(admin)

    await player.post("/api/teams/join", json={"code": team["join_code"]})
    r = await player.post("/api/teams/join", json={"code": team["join_code"]})
    assert r.status_code == 409
    assert r.json()["error"]["code"] == "ALREADY_MEMBER"


@pytest.mark.asyncio
async def test_join_invalid_code(client, signup):
    await signup(client, "player")
    r = await client.post("/api/teams/join", json={"code": "ZZZZZZ"})
    assert r.status_code == 404
    assert r.json()["error"]["code"] == "INVALID_JOIN_CODE"


@pytest.mark.asyncio
async def test_validate_join_code_is_public(make_client, signup, create_team):
    admin = make_client()
    await signup(admin, "admin")
    team = await create_team(admin, "Rovers")

    anonymous = make_client()
    r = await anonymous.get(f"/api/validate-join-code/{team['join_code'].lower()}")
    assert r.status_code == 200
    body = r.json()
    assert body["valid"] is True
    assert body["team"] == {"id": team["id"], "name": "Rovers", "logo": None}

    r = await anonymous.get("/api/validate-join-code/ZZZZZZ")
    assert r.status_code == 200
    assert r.json()["valid"] is False
    assert r.json()["team"] is None


@pytest.mark.asyncio
async def test_regenerate_join_code(make_client, signup, create_team):
    admin, player = make_client(), make_client()
    await signup(admin, "admin")
    await signup(player, "player")
    team = await create_team(admin)
    await player.post("/api/teams/join", json={"code": team["join_code"]})

    r = await player.post(f"/api/teams/{team['id']}/join-code")
    assert r.status_code == 403

    r = await admin.post(f"/api/teams/{team['id']}/join-code")
    assert r.status_code == 200
    new_code = r.json()["join_code"]
    assert new_code != team["join_code"]

    old = await admin.get(f"/api/validate-join-code/{team['join_code']}")
    assert old.json()["valid"] is False
    new = await admin.get(f"/api/validate-join-code/{new_code}")
    assert new.json()["valid"] is True


@pytest.mark.asyncio
async def test_list_my_teams(make_client, signup, create_team):
    admin, player = make_client(), make_client()
    await signup(admin, "admin")
    await signup(player, "player")
    team_a = await create_team(admin, "A")
    await create_team(admin, "B")
    await player.post("/api/teams/join", json={"code": team_a["join_code"]})

    r = await admin.get("/api/teams")
    assert {t["team"]["name"] for t in r.json()["data"]} == {"A", "B"}
    r = await player.get("/api/teams")
    assert [(t["team"]["name"], t["role"]) for t in r.json()["data"]] == [("A", "player")]


@pytest.mark.asyncio
async def test_update_team_requires_admin(make_client, signup, create_team):
    admin, player = make_client(), make_client()
    await signup(admin, "admin")
    await signup(player, "player")
    team = await create_team(admin)
    await player.post("/api/teams/join", json={"code": team["join_code"]})

    r = await player.patch(f"/api/teams/{team['id']}", json={"name": "Hijacked"})
    assert r.status_code == 403
    r = await admin.patch(f"/api/teams/{team['id']}", json={"name": "Renamed"})
    assert r.status_code == 200
    assert r.json()["name"] == "Renamed"


@pytest.mark.asyncio
async def test_member_management(make_client, signup, create_team):
    admin, other = make_client(), make_client()
    await signup(admin, "admin")
    other_user = await signup(other, "other")
    team = await create_team(admin)
    members_url = f"/api/teams/{team['id']}/members"

    r = await admin.post(members_url, json={"user_id": other_user["id"], "role": "coach"})
    assert r.status_code == 201
    assert r.json()["role"] == "coach"

    r = await admin.post(members_url, json={"user_id": other_user["id"]})
    assert r.status_code == 409

    r = await other.delete(f"{members_url}/{other_user['id']}")
    assert r.status_code == 403

    r = await admin.delete(f"{members_url}/{other_user['id']}")
    assert r.status_code == 204
    r = await other.get(members_url)
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_add_unknown_user(client, signup, create_team):
    await signup(client, "admin")
    team = await create_team(client)
    r = await client.post(
        f"/api/teams/{team['id']}/members",
        json={"user_id": "5f0c6a0e-8d4b-4c1e-9a52-1b2f3c4d5e6f"},
    )
    assert r.status_code == 404


@pytest.mark.asyncio
@pytest.mark.parametrize("field", ["name", "team_type", "category"])
async def test_update_team_rejects_null_for_required_field(client, signup, create_team, field):
    await signup(client, "admin")
    team = await create_team(client)

    r = await client.patch(f"/api/teams/{team['id']}", json={field: None})
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "VALIDATION_ERROR"

    r = await client.get(f"/api/teams/{team['id']}")
    assert r.json()[field] == team[field]


@pytest.mark.asyncio
async def test_update_team_can_clear_optional_field(client, signup, create_team):
    await signup(client, "admin")
    team = await create_team(client)
    await client.patch(f"/api/teams/{team['id']}", json={"division": "Premier"})

    r = await client.patch(f"/api/teams/{team['id']}", json={"division": None})
    assert r.status_code == 200
    assert r.json()["division"] is None
