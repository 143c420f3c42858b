"""Error envelope tests: every failure is {"detail", "code"}."""

import pytest
from httpx import ASGITransport, AsyncClient

from scribe.errors import ConflictError, Forbidden, NotFound, ScribeError


@pytest.mark.asyncio
async def test_unknown_route(client):
    r = await client.get("/api/v1/nope")
    assert r.status_code == 404
    assert r.json() == {"detail": "Not Found", "code": "not_found"}


@pytest.mark.asyncio
async def test_method_not_allowed(client):
    r = await client.put("/api/v1/users/login", json={})
    assert r.status_code == 405
    assert r.json()["code"] == "method_not_allowed"


@pytest.mark.asyncio
async def test_malformed_json_is_validation_error(client):
    r = await client.post(
        "/api/v1/users",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )
    assert r.status_code == 400
    assert r.json()["code"] == "validation_error"


@pytest.mark.asyncio
async def test_validation_message_names_field(client):
    r = await client.post(
        "/api/v1/users", json={"username": "x", "email": "x@example.com"}
    )
    assert r.status_code == 400
    assert "password" in r.json()["detail"]


@pytest.mark.asyncio
async def test_unexpected_error_is_generic_500():
    """Internals never leak; the client only sees a generic message."""
    from scribe.main import create_app

    app = create_app()

    @app.get("/boom")
    async def boom():
        raise RuntimeError("database password is hunter2")

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        r = await ac.get("/boom")

    assert r.status_code == 500
    assert r.json() == {"detail": "Internal server error", "code": "internal_error"}
    assert "hunter2" not in r.text


def test_error_defaults():
    assert NotFound().status_code == 404
    assert Forbidden().status_code == 403
    assert ConflictError().status_code == 400
    assert NotFound("No post with id 3 was found").message == "No post with id 3 was found"
    assert issubclass(ConflictError, ScribeError)
