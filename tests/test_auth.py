"""Tests for registration, login and token handling."""

from datetime import timedelta

import pytest
from httpx import AsyncClient

from app.core.security import create_access_token, decode_access_token


@pytest.mark.asyncio
async def test_register_and_me(client: AsyncClient, db_session) -> None:
    response = await client.post(
        "/api/v1/auth/register",
        json={
            "email": "New.Patient@Example.com",
            "password": "s3cure-pass",
            "first_name": "Nora",
            "last_name": "Nunez",
            "phone": "+5491100000000",
        },
    )
    assert response.status_code == 201
    data = response.json()
    assert data["token_type"] == "bearer"
    assert data["user"]["email"] == "new.patient@example.com"
    assert data["user"]["role"] == "patient"

    me = await client.get(
        "/api/v1/auth/me",
        headers={"Authorization": f"Bearer {data['access_token']}"},
    )
    assert me.status_code == 200
    assert me.json()["id"] == data["user"]["id"]


@pytest.mark.asyncio
async def test_register_duplicate_email(client: AsyncClient, patient_user: dict) -> None:
    response = await client.post(
        "/api/v1/auth/register",
        json={
            "email": patient_user["email"],
            "password": "another-pass",
            "first_name": "Dup",
            "last_name": "Licate",
        },
    )
    assert response.status_code == 409
    assert response.json()["code"] == "EMAIL_TAKEN"


@pytest.mark.asyncio
async def test_register_short_password(client: AsyncClient) -> None:
    response = await client.post(
        "/api/v1/auth/register",
        json={"email": "a@example.com", "password": "short", "first_name": "A", "last_name": "B"},
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_login(client: AsyncClient, patient_user: dict) -> None:
    response = await client.post(
        "/api/v1/auth/login",
        json={"email": patient_user["email"], "password": "password123"},
    )
    assert response.status_code == 200
    payload = decode_access_token(response.json()["access_token"])
    assert payload["sub"] == str(patient_user["id"])
    assert payload["role"] == "patient"


@pytest.mark.asyncio
async def test_login_wrong_password(client: AsyncClient, patient_user: dict) -> None:
    response = await client.post(
        "/api/v1/auth/login",
        json={"email": patient_user["email"], "password": "wrong-password"},
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_login_deactivated(
    client: AsyncClient,
    patient_user: dict,
    admin_headers: dict,
) -> None:
    await client.patch(
        f"/api/v1/admin/users/{patient_user['id']}/status",
        json={"is_active": False},
        headers=admin_headers,
    )
    response = await client.post(
        "/api/v1/auth/login",
        json={"email": patient_user["email"], "password": "password123"},
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_expired_token(client: AsyncClient, patient_user: dict) -> None:
    token = create_access_token({"sub": str(patient_user["id"])}, expires_delta=timedelta(minutes=-1))
    response = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_garbage_token(client: AsyncClient) -> None:
    response = await client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401
