import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_login_success(client: AsyncClient, test_user):
    """Login returns 200 with access_token for a valid user."""
    login_payload = {"email": test_user.email, "password": "password123"}
    response = await client.post("/profile/login", json=login_payload)

    assert response.status_code == 200
    data = response.json()
    assert "access_token" in data
    assert data["token_type"] == "bearer"
    assert isinstance(data["access_token"], str)
    assert len(data["access_token"]) > 20


@pytest.mark.asyncio
async def test_login_invalid_password(client: AsyncClient, test_user):
    """Login returns 401 for an invalid password."""
    login_payload = {"email": test_user.email, "password": "wrongpass"}
    response = await client.post("/profile/login", json=login_payload)

    assert response.status_code == 401
    assert response.json()["detail"] == "Incorrect password"


@pytest.mark.asyncio
async def test_login_unknown_user(client: AsyncClient):
    """Login returns 404 for a missing user."""
    login_payload = {"email": "missing@example.com", "password": "password123"}
    response = await client.post("/profile/login", json=login_payload)

    assert response.status_code == 404
    assert response.json()["detail"] == "User does not exists"


@pytest.mark.asyncio
async def test_register_then_login(client: AsyncClient):
    payload = {"email": "New@Example.com", "username": "newbie", "password": "secret123"}
    response = await client.post("/profile/register", json=payload)

    assert response.status_code == 201
    user = response.json()
    assert user["email"] == "new@example.com"
    assert user["username"] == "newbie"
    assert "password" not in user
    assert "createdAt" in user

    login = await client.post(
        "/profile/login", json={"email": "new@example.com", "password": "secret123"}
    )
    assert login.status_code == 200


@pytest.mark.asyncio
async def test_register_duplicate_email(client: AsyncClient, test_user):
    payload = {"email": test_user.email, "username": "again", "password": "secret123"}
    response = await client.post("/profile/register", json=payload)

    assert response.status_code == 409
    assert response.json()["detail"] == "Email already registered"


@pytest.mark.asyncio
async def test_register_rejects_short_password(client: AsyncClient):
    payload = {"email": "short@example.com", "username": "short", "password": "123"}
    response = await client.post("/profile/register", json=payload)

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_me(client: AsyncClient, test_user, auth_headers_user):
    response = await client.get("/profile/me", headers=auth_headers_user)

    assert response.status_code == 200
    assert response.json()["id"] == test_user.id


@pytest.mark.asyncio
async def test_me_requires_token(client: AsyncClient):
    response = await client.get("/profile/me")
    assert response.status_code == 401

    response = await client.get(
        "/profile/me", headers={"Authorization": "Bearer not-a-token"}
    )
    assert response.status_code == 401
    assert response.json()["detail"] == "Token is not valid"
