"""Tests for authenticated account routes."""

import pytest
from httpx import AsyncClient

PASSWORD = "testpassword123"


@pytest.mark.asyncio
async def test_get_me(client: AsyncClient, auth_headers: dict):
    resp = await client.get("/auth/me", headers=auth_headers)
    assert resp.status_code == 200
    data = resp.json()
    assert data["success"] is True
    assert data["user"]["email"] == "test@example.com"
    assert data["user"]["firstName"] == "Test"
    assert "id" in data["user"]


@pytest.mark.asyncio
async def test_me_unauthenticated(client: AsyncClient):
    resp = await client.get("/auth/me")
    assert resp.status_code == 401
    assert resp.json() == {"success": False, "message": "Not authorized to access this route"}


@pytest.mark.asyncio
async def test_me_invalid_token(client: AsyncClient):
    resp = await client.get("/auth/me", headers={"Authorization": "Bearer garbage.token.here"})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_change_password(client: AsyncClient, auth_headers: dict):
    resp = await client.put("/auth/change-password", json={
        "currentPassword": PASSWORD,
        "newPassword": "newpassword456",
    }, headers=auth_headers)
    assert resp.status_code == 200

    resp = await client.post("/auth/login", json={
        "email": "test@example.com",
        "password": "newpassword456",
    })
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_change_password_wrong_current(client: AsyncClient, auth_headers: dict):
    resp = await client.put("/auth/change-password", json={
        "currentPassword": "wrongpassword",
        "newPassword": "newpassword456",
    }, headers=auth_headers)
    assert resp.status_code == 401

    # Old password still works
    resp = await client.post("/auth/login", json={
        "email": "test@example.com",
        "password": PASSWORD,
    })
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_change_password_too_short(client: AsyncClient, auth_headers: dict):
    resp = await client.put("/auth/change-password", json={
        "currentPassword": PASSWORD,
        "newPassword": "short",
    }, headers=auth_headers)
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_change_password_oversized(client: AsyncClient, auth_headers: dict):
    resp = await client.put("/auth/change-password", json={
        "currentPassword": PASSWORD,
        "newPassword": "p" * 5000,
    }, headers=auth_headers)
    assert resp.status_code == 400

    resp = await client.put("/auth/change-password", json={
        "currentPassword": "p" * 5000,
        "newPassword": "newpassword456",
    }, headers=auth_headers)
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_change_password_same_as_current_is_allowed(client: AsyncClient, auth_headers: dict):
    resp = await client.put("/auth/change-password", json={
        "currentPassword": PASSWORD,
        "newPassword": PASSWORD,
    }, headers=auth_headers)
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_change_password_requires_token(client: AsyncClient):
    resp = await client.put("/auth/change-password", json={
        "currentPassword": PASSWORD,
        "newPassword": "newpassword456",
    })
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_delete_account(client: AsyncClient, auth_headers: dict):
    resp = await client.request("DELETE", "/auth/delete-account", json={
        "password": PASSWORD,
    }, headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["success"] is True

    # Can't login anymore
    resp = await client.post("/auth/login", json={
        "email": "test@example.com",
        "password": PASSWORD,
    })
    assert resp.status_code == 401

    # Token now names a missing account
    resp = await client.get("/auth/me", headers=auth_headers)
    assert resp.status_code == 404
    assert resp.json()["message"] == "User not found"


@pytest.mark.asyncio
async def test_delete_account_wrong_password(client: AsyncClient, auth_headers: dict):
    resp = await client.request("DELETE", "/auth/delete-account", json={
        "password": "wrongpassword",
    }, headers=auth_headers)
    assert resp.status_code == 401

    resp = await client.get("/auth/me", headers=auth_headers)
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_delete_account_oversized_password(client: AsyncClient, auth_headers: dict):
    resp = await client.request("DELETE", "/auth/delete-account", json={
        "password": "p" * 5000,
    }, headers=auth_headers)
    assert resp.status_code == 401
    assert resp.json()["success"] is False


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"
