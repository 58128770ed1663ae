"""
Stratus Backend: Auth API Tests
================================

What:  /api/auth endpoints and the session guard, through the real app.
How:   test_client (ASGITransport) with the user repository swapped for
       the in-memory fake; bcrypt runs at cost 4.

What we test:
    ✅ register → verify → login → /me over HTTP
    ✅ Error body shape and status mapping (400 / 401 / 409)
    ✅ Guard: missing, expired, foreign-signed and garbage tokens → 401
    ✅ forgot-password answers the same for known and unknown emails
"""

import os
import uuid
from datetime import timedelta
from unittest.mock import patch

import pytest

from stratus.security.sessions import issue_session_token

TEST_SECRET = os.environ["JWT_SECRET"]


async def _register(client, email="a@x.com", password="GoodPass1"):
    response = await client.post(
        "/api/auth/register", json={"email": email, "password": password}
    )
    assert response.status_code == 201, response.text
    return response.json()


async def _verified_login(client, email="a@x.com", password="GoodPass1"):
    body = await _register(client, email, password)
    await client.post("/api/auth/verify-email", json={"token": body["verification_token"]})
    response = await client.post("/api/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return response.json()


class TestRegister:

    @pytest.mark.asyncio
    async def test_created(self, test_client, fake_users):
        body = await _register(test_client)
        assert body["message"] == "User registered successfully"
        assert len(body["verification_token"]) == 64
        assert uuid.UUID(body["user_id"]) in fake_users.rows

    @pytest.mark.asyncio
    async def test_duplicate_is_409(self, test_client):
        await _register(test_client)
        response = await test_client.post(
            "/api/auth/register", json={"email": "A@X.COM", "password": "Other1Pass"}
        )
        assert response.status_code == 409
        body = response.json()
        assert body["error"] == "conflict"
        assert body["message"] == "User already exists"
        assert "request_id" in body

    @pytest.mark.asyncio
    async def test_invalid_email_is_400(self, test_client):
        response = await test_client.post(
            "/api/auth/register", json={"email": "test.example.com", "password": "GoodPass1"}
        )
        assert response.status_code == 400
        assert response.json()["error"] == "invalid_email"

    @pytest.mark.asyncio
    async def test_weak_password_lists_reasons(self, test_client):
        response = await test_client.post(
            "/api/auth/register", json={"email": "a@x.com", "password": "password"}
        )
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "weak_password"
        assert len(body["details"]["reasons"]) == 2

    @pytest.mark.asyncio
    async def test_missing_field_is_422(self, test_client):
        response = await test_client.post("/api/auth/register", json={"email": "a@x.com"})
        assert response.status_code == 422


class TestLogin:

    @pytest.mark.asyncio
    async def test_unverified_is_401(self, test_client):
        await _register(test_client)
        response = await test_client.post(
            "/api/auth/login", json={"email": "a@x.com", "password": "GoodPass1"}
        )
        assert response.status_code == 401
        assert response.json()["error"] == "unverified_account"
        assert response.json()["message"] == "Please verify your email first"

    @pytest.mark.asyncio
    async def test_unknown_and_wrong_password_look_alike(self, test_client):
        await _verified_login(test_client)
        unknown = await test_client.post(
            "/api/auth/login", json={"email": "nobody@x.com", "password": "GoodPass1"}
        )
        wrong = await test_client.post(
            "/api/auth/login", json={"email": "a@x.com", "password": "WrongPass1"}
        )
        assert unknown.status_code == wrong.status_code == 401
        assert unknown.json()["error"] == wrong.json()["error"] == "invalid_credentials"
        assert unknown.json()["message"] == wrong.json()["message"]

    @pytest.mark.asyncio
    async def test_success_body(self, test_client):
        body = await _verified_login(test_client)
        assert body["token_type"] == "bearer"
        assert body["expires_in"] > 0
        assert body["user"]["email"] == "a@x.com"
        assert body["user"]["is_verified"] is True
        assert "password_hash" not in body["user"]
        assert "verification_token" not in body["user"]


class TestVerifyEmail:

    @pytest.mark.asyncio
    async def test_bad_token_is_400(self, test_client):
        response = await test_client.post("/api/auth/verify-email", json={"token": "0" * 64})
        assert response.status_code == 400
        assert response.json()["error"] == "invalid_or_expired_token"


class TestSessionGuard:

    @pytest.mark.asyncio
    async def test_me_with_valid_token(self, test_client):
        login = await _verified_login(test_client)
        response = await test_client.get(
            "/api/auth/me", headers={"Authorization": f"Bearer {login['token']}"}
        )
        assert response.status_code == 200
        assert response.json()["id"] == login["user"]["id"]

    @pytest.mark.asyncio
    async def test_missing_header(self, test_client):
        response = await test_client.get("/api/auth/me")
        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"
        assert response.json()["error"] == "unauthorized"

    @pytest.mark.asyncio
    async def test_expired_token(self, test_client):
        token = issue_session_token(
            {"sub": str(uuid.uuid4())}, TEST_SECRET, timedelta(seconds=-1)
        )
        response = await test_client.get(
            "/api/auth/me", headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 401
        assert response.json()["error"] == "session_expired"

    @pytest.mark.asyncio
    async def test_foreign_secret(self, test_client):
        token = issue_session_token(
            {"sub": str(uuid.uuid4())}, "someone-elses-secret", timedelta(minutes=5)
        )
        response = await test_client.get(
            "/api/auth/me", headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 401
        assert response.json()["error"] == "invalid_signature"

    @pytest.mark.asyncio
    async def test_garbage_token(self, test_client):
        response = await test_client.get(
            "/api/auth/me", headers={"Authorization": "Bearer not-a-token"}
        )
        assert response.status_code == 401
        assert response.json()["error"] == "malformed_token"

    @pytest.mark.asyncio
    async def test_deleted_user_is_404(self, test_client):
        token = issue_session_token({"sub": str(uuid.uuid4())}, TEST_SECRET, timedelta(minutes=5))
        response = await test_client.get(
            "/api/auth/me", headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 404


class TestPasswordReset:

    @pytest.mark.asyncio
    async def test_same_answer_for_unknown_email(self, test_client):
        await _register(test_client)
        known = await test_client.post("/api/auth/forgot-password", json={"email": "a@x.com"})
        unknown = await test_client.post("/api/auth/forgot-password", json={"email": "b@x.com"})
        assert known.status_code == unknown.status_code == 200
        assert known.json() == unknown.json()
        assert known.json()["reset_token"] is None

    @pytest.mark.asyncio
    async def test_reset_flow_with_exposed_token(self, test_client):
        await _verified_login(test_client)
        with patch("stratus.routes.auth.settings.expose_reset_tokens", True):
            forgot = await test_client.post(
                "/api/auth/forgot-password", json={"email": "a@x.com"}
            )
        token = forgot.json()["reset_token"]
        assert len(token) == 64

        reset = await test_client.post(
            "/api/auth/reset-password", json={"token": token, "password": "NewPass99"}
        )
        assert reset.status_code == 200

        old = await test_client.post(
            "/api/auth/login", json={"email": "a@x.com", "password": "GoodPass1"}
        )
        new = await test_client.post(
            "/api/auth/login", json={"email": "a@x.com", "password": "NewPass99"}
        )
        assert old.status_code == 401
        assert new.status_code == 200


class TestRequestId:

    @pytest.mark.asyncio
    async def test_error_body_carries_request_id(self, test_client):
        response = await test_client.get(
            "/api/auth/me", headers={"X-Request-ID": "trace-123"}
        )
        assert response.headers["X-Request-ID"] == "trace-123"
        assert response.json()["request_id"] == "trace-123"
