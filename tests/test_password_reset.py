"""Password reset flow tests.

Learn: Tests cover:
1. Requesting a reset stores a token and emails a link
2. Completing a reset changes the password and burns the token
3. A second request invalidates the first token
4. Expired and unknown tokens fail the same way
5. A failed email doesn't fail the request
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select
from structlog.testing import capture_logs

from scribe.db.models import User
from scribe.errors import InvalidOrExpiredToken, NotFound
from scribe.services.password_reset import PasswordResetService, hash_token


async def _request(client, email):
    r = await client.post("/api/v1/users/forgot-password", json={"email": email})
    assert r.status_code == 200, r.text
    return r


async def _complete(client, token, new_password="brand_new_password"):
    return await client.post(
        f"/api/v1/users/forgot-password/{token}", json={"new_password": new_password}
    )


async def _login(client, user, password):
    return await client.post(
        "/api/v1/users/login", json={"username": user["username"], "password": password}
    )


async def _load_user(session_factory, user_id) -> User:
    async with session_factory() as s:
        return await s.get(User, user_id)


# ═══════════════════════════════════════════════════════════
# Request
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_request_reset_sends_email(client, make_user, mailer, session_factory):
    user = await make_user()
    r = await _request(client, user["email"])
    assert r.json()["message"] == "A reset link has been sent."

    assert len(mailer.sent) == 1
    assert mailer.sent[0]["to"] == user["email"]
    token = mailer.last_token()
    assert len(token) >= 43  # 32 random bytes, base64url

    row = await _load_user(session_factory, user["id"])
    assert row.reset_token_hash == hash_token(token)
    assert row.reset_token_expires_at is not None


@pytest.mark.asyncio
async def test_request_reset_unknown_email(client, mailer):
    r = await client.post(
        "/api/v1/users/forgot-password", json={"email": "nobody@example.com"}
    )
    assert r.status_code == 404
    assert mailer.sent == []


@pytest.mark.asyncio
async def test_request_reset_survives_mail_failure(client, make_user, mailer, session_factory):
    user = await make_user()
    mailer.fail = True

    with capture_logs() as logs:
        r = await client.post("/api/v1/users/forgot-password", json={"email": user["email"]})
    assert r.status_code == 200

    failures = [e for e in logs if e["event"] == "password_reset.email_failed"]
    assert len(failures) == 1
    assert failures[0]["log_level"] == "error"
    assert failures[0]["user_id"] == user["id"]

    row = await _load_user(session_factory, user["id"])
    assert row.reset_token_hash is not None


# ═══════════════════════════════════════════════════════════
# Complete
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_complete_reset_changes_password(client, make_user, mailer, session_factory):
    user = await make_user()
    await _request(client, user["email"])

    r = await _complete(client, mailer.last_token())
    assert r.status_code == 200

    assert (await _login(client, user, user["password"])).status_code == 401
    assert (await _login(client, user, "brand_new_password")).status_code == 200

    row = await _load_user(session_factory, user["id"])
    assert row.reset_token_hash is None
    assert row.reset_token_expires_at is None


@pytest.mark.asyncio
async def test_token_cannot_be_reused(client, make_user, mailer):
    user = await make_user()
    await _request(client, user["email"])
    token = mailer.last_token()

    assert (await _complete(client, token)).status_code == 200
    r = await _complete(client, token, new_password="another_password")
    assert r.status_code == 400
    assert r.json()["code"] == "invalid_or_expired_token"
    assert (await _login(client, user, "brand_new_password")).status_code == 200


@pytest.mark.asyncio
async def test_second_request_invalidates_first(client, make_user, mailer):
    user = await make_user()
    await _request(client, user["email"])
    first = mailer.last_token()
    await _request(client, user["email"])
    second = mailer.last_token()
    assert first != second

    r = await _complete(client, first)
    assert r.status_code == 400
    assert r.json()["code"] == "invalid_or_expired_token"

    assert (await _complete(client, second)).status_code == 200


@pytest.mark.asyncio
async def test_unknown_token(client, make_user):
    await make_user()
    r = await _complete(client, "not-a-real-token")
    assert r.status_code == 400
    assert r.json()["code"] == "invalid_or_expired_token"


@pytest.mark.asyncio
async def test_new_password_validated(client, make_user, mailer):
    user = await make_user()
    await _request(client, user["email"])
    r = await _complete(client, mailer.last_token(), new_password="short")
    assert r.status_code == 400
    assert r.json()["code"] == "validation_error"


@pytest.mark.asyncio
async def test_wrong_and_expired_look_the_same(client, make_user, mailer, session_factory):
    user = await make_user()
    await _request(client, user["email"])
    token = mailer.last_token()

    async with session_factory() as s:
        row = await s.get(User, user["id"])
        row.reset_token_expires_at = datetime.now(timezone.utc) - timedelta(minutes=1)
        await s.commit()

    expired = await _complete(client, token)
    wrong = await _complete(client, token + "x")
    assert expired.status_code == wrong.status_code == 400
    assert expired.json() == wrong.json()


# ═══════════════════════════════════════════════════════════
# Service-level: clock injection
# ═══════════════════════════════════════════════════════════


async def _add_user(db_session) -> User:
    user = User(username="frank", email="frank@example.com", password_hash="x")
    db_session.add(user)
    await db_session.commit()
    return user


@pytest.mark.asyncio
async def test_expiry_is_ten_minutes(db_session, mailer):
    now = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
    user = await _add_user(db_session)

    svc = PasswordResetService(db_session, mailer, "http://app.test", clock=lambda: now)
    await svc.request_reset(user.email)

    result = await db_session.execute(select(User.reset_token_expires_at).where(User.id == user.id))
    expires_at = result.scalar_one()
    assert expires_at.replace(tzinfo=timezone.utc) == now + timedelta(minutes=10)
    assert mailer.sent[0]["body"].count("http://app.test/reset-password/") == 1


@pytest.mark.asyncio
async def test_expired_token_rejected(db_session, mailer):
    user = await _add_user(db_session)
    requested_at = datetime.now(timezone.utc) - timedelta(minutes=11)

    await PasswordResetService(
        db_session, mailer, "http://app.test", clock=lambda: requested_at
    ).request_reset(user.email)

    svc = PasswordResetService(db_session, mailer, "http://app.test")
    with pytest.raises(InvalidOrExpiredToken):
        await svc.reset_password(mailer.last_token(), "brand_new_password")


@pytest.mark.asyncio
async def test_token_valid_within_window(db_session, mailer):
    user = await _add_user(db_session)
    requested_at = datetime.now(timezone.utc) - timedelta(minutes=9)

    await PasswordResetService(
        db_session, mailer, "http://app.test", clock=lambda: requested_at
    ).request_reset(user.email)

    svc = PasswordResetService(db_session, mailer, "http://app.test")
    await svc.reset_password(mailer.last_token(), "brand_new_password")


@pytest.mark.asyncio
async def test_unknown_email_raises_not_found(db_session, mailer):
    svc = PasswordResetService(db_session, mailer, "http://app.test")
    with pytest.raises(NotFound):
        await svc.request_reset("missing@example.com")


def test_reset_link_strips_trailing_slash(mailer):
    svc = PasswordResetService(None, mailer, "http://app.test/")
    assert svc.reset_link("abc") == "http://app.test/reset-password/abc"
