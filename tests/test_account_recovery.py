"""
Tests for password reset and email verification.
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone

import pytest
from structlog.testing import capture_logs

from teamkick.core.mail import EmailMessage, LogMailer
from teamkick.core.tokens import hash_token
from teamkick.services import users as user_service

PASSWORD = "Secret123!"
NEW_PASSWORD = "BrandNew456!"
EMAIL = "alice@teamkick.org"


def token_from(message) -> str:
    return re.search(r"token=([\w-]+)", message.body).group(1)


async def expire_tokens(session_factory, username: str) -> None:
    past = datetime.now(timezone.utc) - timedelta(minutes=1)
    async with session_factory() as session:
        user = await user_service.get_user_by_username(username, session)
        user.reset_token_expires_at = past
        user.verification_token_expires_at = past
        session.add(user)
        await session.commit()


# ---------------------------------------------------------------------------
# Password reset
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_password_reset_flow(make_client, signup, login, outbox):
    await signup(make_client(), "alice", email=EMAIL)
    anonymous = make_client()

    r = await anonymous.post("/api/password-reset/request", json={"email": EMAIL})
    assert r.status_code == 200
    assert len(outbox) == 1
    assert outbox[0].to == EMAIL
    assert "/reset-password?token=" in outbox[0].body

    r = await anonymous.post(
        "/api/password-reset/confirm",
        json={"token": token_from(outbox[0]), "new_password": NEW_PASSWORD},
    )
    assert r.status_code == 200

    assert (await login(make_client(), "alice", NEW_PASSWORD)).status_code == 200
    assert (await login(make_client(), "alice", PASSWORD)).status_code == 401


@pytest.mark.asyncio
async def test_unknown_email_gets_the_same_answer(make_client, signup, outbox):
    await signup(make_client(), "alice", email=EMAIL)
    anonymous = make_client()

    known = await anonymous.post("/api/password-reset/request", json={"email": EMAIL})
    unknown = await anonymous.post(
        "/api/password-reset/request", json={"email": "nobody@teamkick.org"}
    )
    assert unknown.status_code == known.status_code == 200
    assert unknown.json() == known.json()
    assert len(outbox) == 1


@pytest.mark.asyncio
async def test_reset_token_is_single_use(make_client, signup, outbox):
    await signup(make_client(), "alice", email=EMAIL)
    anonymous = make_client()
    await anonymous.post("/api/password-reset/request", json={"email": EMAIL})
    token = token_from(outbox[0])

    body = {"token": token, "new_password": NEW_PASSWORD}
    assert (await anonymous.post("/api/password-reset/confirm", json=body)).status_code == 200

    body["new_password"] = "Another789!"
    r = await anonymous.post("/api/password-reset/confirm", json=body)
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "INVALID_TOKEN"


@pytest.mark.asyncio
async def test_expired_reset_token_is_refused(make_client, signup, login, outbox, session_factory):
    await signup(make_client(), "alice", email=EMAIL)
    anonymous = make_client()
    await anonymous.post("/api/password-reset/request", json={"email": EMAIL})
    await expire_tokens(session_factory, "alice")

    r = await anonymous.post(
        "/api/password-reset/confirm",
        json={"token": token_from(outbox[0]), "new_password": NEW_PASSWORD},
    )
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "TOKEN_EXPIRED"
    assert (await login(make_client(), "alice", PASSWORD)).status_code == 200


@pytest.mark.asyncio
async def test_new_request_replaces_earlier_token(make_client, signup, outbox):
    await signup(make_client(), "alice", email=EMAIL)
    anonymous = make_client()
    await anonymous.post("/api/password-reset/request", json={"email": EMAIL})
    await anonymous.post("/api/password-reset/request", json={"email": EMAIL})
    first, second = token_from(outbox[0]), token_from(outbox[1])

    r = await anonymous.post(
        "/api/password-reset/confirm", json={"token": first, "new_password": NEW_PASSWORD}
    )
    assert r.status_code == 400
    r = await anonymous.post(
        "/api/password-reset/confirm", json={"token": second, "new_password": NEW_PASSWORD}
    )
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_only_token_digest_is_stored(make_client, signup, outbox, session_factory):
    await signup(make_client(), "alice", email=EMAIL)
    await make_client().post("/api/password-reset/request", json={"email": EMAIL})
    token = token_from(outbox[0])

    async with session_factory() as session:
        user = await user_service.get_user_by_username("alice", session)
    assert user.reset_token_hash == hash_token(token)
    assert token not in user.reset_token_hash


@pytest.mark.asyncio
async def test_reset_confirm_validates_new_password(client):
    r = await client.post(
        "/api/password-reset/confirm", json={"token": "whatever", "new_password": "short"}
    )
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "VALIDATION_ERROR"


# ---------------------------------------------------------------------------
# Email verification
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_email_verification_flow(client, make_client, signup, outbox):
    await signup(client, "alice", email=EMAIL)
    assert (await client.get("/api/user")).json()["email_verified"] is False

    r = await client.post("/api/verify-email/request")
    assert r.status_code == 200
    token = token_from(outbox[0])

    r = await make_client().get(f"/api/verify-email/{token}")
    assert r.status_code == 200
    assert (await client.get("/api/user")).json()["email_verified"] is True

    r = await make_client().get(f"/api/verify-email/{token}")
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "INVALID_TOKEN"

    r = await client.post("/api/verify-email/request")
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "EMAIL_ALREADY_VERIFIED"


@pytest.mark.asyncio
async def test_expired_verification_token_is_refused(client, signup, outbox, session_factory):
    await signup(client, "alice", email=EMAIL)
    await client.post("/api/verify-email/request")
    await expire_tokens(session_factory, "alice")

    r = await client.get(f"/api/verify-email/{token_from(outbox[0])}")
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "TOKEN_EXPIRED"
    assert (await client.get("/api/user")).json()["email_verified"] is False


@pytest.mark.asyncio
async def test_verification_needs_an_email_address(client, signup, outbox):
    await signup(client, "alice")
    r = await client.post("/api/verify-email/request")
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "EMAIL_MISSING"
    assert outbox == []


@pytest.mark.asyncio
async def test_verification_requires_login(client):
    assert (await client.post("/api/verify-email/request")).status_code == 401


@pytest.mark.asyncio
async def test_changing_email_clears_verification(client, signup, outbox):
    await signup(client, "alice", email=EMAIL)
    await client.post("/api/verify-email/request")
    await client.get(f"/api/verify-email/{token_from(outbox[0])}")

    r = await client.patch("/api/user", json={"email": "alice@rovers.org"})
    assert r.status_code == 200
    assert r.json()["email_verified"] is False


# ---------------------------------------------------------------------------
# Mailer
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_log_mailer_never_logs_the_body():
    message = EmailMessage(to=EMAIL, subject="Reset your password", body="token=s3cr3t")
    with capture_logs() as logs:
        await LogMailer().send(message)
    assert logs == [
        {"event": "mail.sent", "log_level": "info", "to": EMAIL, "subject": "Reset your password"}
    ]
