"""
Test Suite: Authentication API
==============================

End-to-end flows through the HTTP surface: the refresh cookie, session
rotation, logout, generic 401s and the audit entries each step leaves.
"""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import httpx
import pytest

from campeiro.gateway.app import create_app

from conftest import (
    ANA,
    BRUNO,
    audit_entries,
    bearer,
    cookie_expires,
    make_settings,
    refresh_cookie,
    set_cookie_header,
    with_cookie,
)


async def _register(client, profile=ANA) -> tuple[dict, str]:
    response = await client.post("/api/auth/register", json=profile)
    assert response.status_code == 201, response.text
    return response.json(), refresh_cookie(response)


async def _auth_reasons(store) -> list[str]:
    return [e["message"]["extra"]["reason"] for e in await audit_entries(store, "AUTH_ERROR")]


class TestFullFlow:
    """register -> refresh -> stale refresh -> logout -> logout."""

    @pytest.mark.asyncio
    async def test_session_lifecycle(self, client, store):
        body, first_cookie = await _register(client)
        assert body["user"]["email"] == "ana@example.com"
        assert body["user"]["role"] == "client"
        assert first_cookie

        refreshed = await client.post("/api/auth/refresh", headers=with_cookie(first_cookie))
        assert refreshed.status_code == 200
        second_cookie = refresh_cookie(refreshed)
        assert second_cookie and second_cookie != first_cookie
        assert refreshed.json()["session_id"] != body["session_id"]

        # The rotated-away token is dead
        stale = await client.post("/api/auth/refresh", headers=with_cookie(first_cookie))
        assert stale.status_code == 401

        logout = await client.post("/api/auth/logout", headers=with_cookie(second_cookie))
        assert logout.status_code == 204

        again = await client.post("/api/auth/logout", headers=with_cookie(second_cookie))
        assert again.status_code == 204

        after = await client.post("/api/auth/refresh", headers=with_cookie(second_cookie))
        assert after.status_code == 401

        assert await _auth_reasons(store) == ["session_revoked", "session_revoked"]
        sessions = await store.sessions.find_many({"user_id": body["user"]["id"]})
        assert len(sessions) == 2
        assert all(s["is_revoked"] for s in sessions)

    @pytest.mark.asyncio
    async def test_login_then_me(self, client):
        await _register(client)

        login = await client.post(
            "/api/auth/login", json={"email": "ANA@example.com", "password": ANA["password"]}
        )
        assert login.status_code == 200
        token = login.json()["access_token"]

        me = await client.get("/api/auth/me", headers=bearer(token))
        assert me.status_code == 200
        assert me.json()["email"] == "ana@example.com"
        assert "password_hash" not in me.text


class TestRefreshCookie:

    @pytest.mark.asyncio
    async def test_cookie_attributes(self, client):
        response = await client.post("/api/auth/register", json=ANA)
        header = set_cookie_header(response).lower()

        assert "httponly" in header
        assert "samesite=lax" in header
        assert "path=/api/auth" in header
        assert "domain=localhost" in header
        assert "expires=" in header
        assert "secure" not in header

    @pytest.mark.asyncio
    async def test_cookie_expiry_follows_session_across_rotation(self, client, store):
        body, cookie = await _register(client)
        original = await store.sessions.get({"id": body["session_id"]})

        refreshed = await client.post("/api/auth/refresh", headers=with_cookie(cookie))
        successor = await store.sessions.get({"id": refreshed.json()["session_id"]})

        assert successor["expires_at"] == original["expires_at"]
        assert cookie_expires(refreshed) == original["expires_at"].replace(microsecond=0)

    @pytest.mark.asyncio
    async def test_register_cookie_expires_with_session(self, client, store):
        response = await client.post("/api/auth/register", json=ANA)
        session = await store.sessions.get({"id": response.json()["session_id"]})

        assert cookie_expires(response) == session["expires_at"].replace(microsecond=0)

    @pytest.mark.asyncio
    async def test_cookie_is_secure_in_production(self, store):
        app = create_app(make_settings("production"), store)
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
            response = await client.post("/api/auth/register", json=ANA)

        assert "secure" in set_cookie_header(response).lower()

    @pytest.mark.asyncio
    async def test_refresh_token_never_in_body(self, client):
        response = await client.post("/api/auth/register", json=ANA)

        assert refresh_cookie(response) not in response.text
        assert "refresh_token" not in response.json()

    @pytest.mark.asyncio
    async def test_logout_clears_cookie(self, client):
        _, cookie = await _register(client)

        response = await client.post("/api/auth/logout", headers=with_cookie(cookie))

        header = set_cookie_header(response).lower()
        assert refresh_cookie(response) == ""
        assert "max-age=0" in header
        assert "path=/api/auth" in header


class TestGenericFailures:
    """401 bodies never reveal why authentication failed."""

    @pytest.mark.asyncio
    async def test_wrong_password_and_unknown_user(self, client, store):
        await _register(client)

        wrong = await client.post(
            "/api/auth/login", json={"email": ANA["email"], "password": "not-it"}
        )
        unknown = await client.post(
            "/api/auth/login", json={"email": "ghost@example.com", "password": "not-it"}
        )

        assert wrong.status_code == unknown.status_code == 401
        strip = lambda body: {k: v for k, v in body.items() if k != "request_id"}  # noqa: E731
        assert strip(wrong.json()) == strip(unknown.json())
        assert wrong.json()["error"] == "Authentication failed"
        assert wrong.headers["WWW-Authenticate"] == "Bearer"

        assert await _auth_reasons(store) == ["password_mismatch", "user_not_found"]

    @pytest.mark.asyncio
    async def test_refresh_without_cookie(self, client, store):
        response = await client.post("/api/auth/refresh")

        assert response.status_code == 401
        assert await _auth_reasons(store) == ["refresh_missing"]

    @pytest.mark.asyncio
    async def test_expired_and_revoked_are_told_apart_in_audit(self, app, client, store):
        body, cookie = await _register(client)
        service = app.state.auth_service
        expired = await service.sessions.create(
            body["user"]["id"], expires_at=datetime.now(UTC) - timedelta(minutes=1)
        )
        expired_token = service.tokens.issue_refresh(body["user"]["id"], expired.id)
        await client.post("/api/auth/logout", headers=with_cookie(cookie))

        first = await client.post("/api/auth/refresh", headers=with_cookie(expired_token))
        second = await client.post("/api/auth/refresh", headers=with_cookie(cookie))

        assert first.status_code == second.status_code == 401
        assert first.json()["error"] == second.json()["error"]
        assert await _auth_reasons(store) == ["session_expired", "session_revoked"]

    @pytest.mark.asyncio
    async def test_refresh_with_someone_elses_session(self, app, client, store):
        ana, ana_cookie = await _register(client, ANA)
        bruno, _ = await _register(client, BRUNO)
        forged = app.state.auth_service.tokens.issue_refresh(bruno["user"]["id"], ana["session_id"])

        response = await client.post("/api/auth/refresh", headers=with_cookie(forged))

        assert response.status_code == 401
        assert await _auth_reasons(store) == ["session_owner_mismatch"]
        # Ana can still refresh
        ok = await client.post("/api/auth/refresh", headers=with_cookie(ana_cookie))
        assert ok.status_code == 200

    @pytest.mark.asyncio
    async def test_me_requires_bearer(self, client, store):
        missing = await client.get("/api/auth/me")
        malformed = await client.get("/api/auth/me", headers={"Authorization": "Token abc"})
        invalid = await client.get("/api/auth/me", headers=bearer("abc"))

        assert {missing.status_code, malformed.status_code, invalid.status_code} == {401}
        assert await _auth_reasons(store) == [
            "authorization_missing",
            "authorization_malformed",
            "token_invalid",
        ]

    @pytest.mark.asyncio
    async def test_inconsistent_session_store_is_a_500(self, client, store):
        _, cookie = await _register(client)
        store.sessions.update_many = AsyncMock(return_value=2)

        response = await client.post("/api/auth/refresh", headers=with_cookie(cookie))

        assert response.status_code == 500
        assert response.json()["error"] == "Internal server error"
        (entry,) = await audit_entries(store, "HTTP_ERROR")
        assert entry["level"] == "error"
        assert entry["message"]["extra"]["error"] == "InternalError"


class TestRegistrationErrors:

    @pytest.mark.asyncio
    async def test_duplicate_email_is_conflict(self, client):
        await _register(client)

        response = await client.post("/api/auth/register", json={**BRUNO, "email": ANA["email"]})

        assert response.status_code == 409
        assert response.json()["error"] == "E-mail already registered"

    @pytest.mark.asyncio
    async def test_duplicate_cpf_is_conflict(self, client):
        await _register(client)

        response = await client.post("/api/auth/register", json={**BRUNO, "cpf": ANA["cpf"]})

        assert response.status_code == 409
        assert response.json()["error"] == "CPF already registered"

    @pytest.mark.asyncio
    async def test_invalid_fields_are_reported(self, client, store):
        response = await client.post(
            "/api/auth/register", json={**ANA, "cpf": "123", "email": "not-an-email"}
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Validation failed"
        assert {"cpf", "email"} <= set(body["errors"])
        assert len(await audit_entries(store, "VALIDATION_ERROR")) == 1
        assert await store.users.count() == 0


class TestAuditTrail:

    @pytest.mark.asyncio
    async def test_registration_write_is_redacted(self, client, store):
        body, _ = await _register(client)

        (write,) = await audit_entries(store, "DB_WRITE")
        extra = write["message"]["extra"]
        assert extra["model"] == "users"
        assert extra["action"] == "create"
        assert extra["result_id"] == body["user"]["id"]
        assert extra["data"]["password_hash"] == "***"
        assert extra["data"]["cpf"] == "***"
        assert ANA["cpf"] not in str(write)

    @pytest.mark.asyncio
    async def test_session_writes_are_not_audited(self, client, store):
        _, cookie = await _register(client)
        await client.post("/api/auth/refresh", headers=with_cookie(cookie))

        models = {e["message"]["extra"]["model"] for e in await audit_entries(store, "DB_WRITE")}
        assert models == {"users"}


class TestSessionManagement:

    @pytest.mark.asyncio
    async def test_list_and_revoke_all(self, client):
        body, cookie = await _register(client)
        await client.post(
            "/api/auth/login", json={"email": ANA["email"], "password": ANA["password"]}
        )
        headers = {**bearer(body["access_token"]), **with_cookie(cookie)}

        listed = await client.get("/api/auth/sessions", headers=headers)
        assert listed.status_code == 200
        sessions = listed.json()
        assert len(sessions) == 2
        current = [s for s in sessions if s["is_current"]]
        assert [s["session_id"] for s in current] == [body["session_id"]]

        revoked = await client.post("/api/auth/sessions/revoke-all", headers=headers)
        assert revoked.status_code == 204

        assert (await client.get("/api/auth/sessions", headers=headers)).json() == []
        refresh = await client.post("/api/auth/refresh", headers=with_cookie(cookie))
        assert refresh.status_code == 401


class TestTestIdentityHeaders:
    """X-Test-User-Id only works when the environment is "test"."""

    @pytest.mark.asyncio
    async def test_honoured_in_test_environment(self, client):
        response = await client.get("/api/logs", headers={"X-Test-User-Id": "admin-1"})
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_ignored_elsewhere(self, store):
        app = create_app(make_settings("development"), store)
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
            response = await client.get(
                "/api/logs", headers={"X-Test-User-Id": "admin-1", "X-Test-Role": "admin"}
            )

        assert response.status_code == 401
