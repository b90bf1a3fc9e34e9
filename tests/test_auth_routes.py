"""
Mosaic Backend — Auth and Health Endpoint Tests
=================================================

How:  HTTPX AsyncClient over ASGITransport against a fresh app and SQLite schema.
"""

import pytest


class TestRegister:

    @pytest.mark.asyncio
    async def test_register_returns_201(self, test_client):
        response = await test_client.post(
            "/auth/register", json={"email": "Ada@Example.com ", "password": "hunter22"}
        )

        assert response.status_code == 201
        body = response.json()
        assert body["email"] == "ada@example.com"
        assert isinstance(body["id"], int)
        assert "password" not in body
        assert "password_hash" not in body

    @pytest.mark.asyncio
    async def test_duplicate_email_conflicts(self, test_client):
        payload = {"email": "ada@example.com", "password": "hunter22"}
        await test_client.post("/auth/register", json=payload)

        response = await test_client.post("/auth/register", json=payload)

        assert response.status_code == 409
        assert response.json()["error"] == "conflict"

    @pytest.mark.asyncio
    async def test_short_password_is_rejected(self, test_client):
        response = await test_client.post(
            "/auth/register", json={"email": "ada@example.com", "password": "123"}
        )
        assert response.status_code == 422


class TestLogin:

    @pytest.mark.asyncio
    async def test_login_returns_token(self, test_client):
        payload = {"email": "ada@example.com", "password": "hunter22"}
        await test_client.post("/auth/register", json=payload)

        response = await test_client.post("/auth/login", json=payload)

        assert response.status_code == 200
        assert response.json()["token"].count(".") == 2

    @pytest.mark.asyncio
    async def test_wrong_password_is_401(self, test_client):
        await test_client.post(
            "/auth/register", json={"email": "ada@example.com", "password": "hunter22"}
        )

        response = await test_client.post(
            "/auth/login", json={"email": "ada@example.com", "password": "nope-nope"}
        )

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid email or password"


class TestProtectedRoutes:

    @pytest.mark.asyncio
    async def test_missing_token_is_401(self, test_client):
        response = await test_client.get("/collections")

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"
        assert response.json()["error"] == "unauthorized"

    @pytest.mark.asyncio
    async def test_invalid_token_is_401(self, test_client):
        response = await test_client.get(
            "/collections/owned", headers={"Authorization": "Bearer not.a.token"}
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_non_bearer_scheme_is_401(self, test_client):
        response = await test_client.get(
            "/collections", headers={"Authorization": "Basic dXNlcjpwYXNz"}
        )
        assert response.status_code == 401


class TestHealth:

    @pytest.mark.asyncio
    async def test_health_reports_database_and_storage(self, test_client):
        response = await test_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert body["storage"] == "local: available"

    @pytest.mark.asyncio
    async def test_request_id_header_is_echoed(self, test_client):
        response = await test_client.get("/health", headers={"X-Request-ID": "abc12345"})
        assert response.headers["X-Request-ID"] == "abc12345"
