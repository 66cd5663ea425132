"""Tests for user profile endpoints."""

from datetime import time, timedelta

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
class TestUserProfile:
    """Owner-or-staff access to profiles."""

    async def test_get_own_profile_with_stats(
        self,
        client: AsyncClient,
        auth_headers: dict,
        patient_user: dict,
        booking_date,
        make_appointment,
    ):
        later = booking_date + timedelta(days=7)
        await make_appointment(patient_user["id"], booking_date, time(9, 0), status="completed")
        await make_appointment(patient_user["id"], booking_date, time(9, 30), status="cancelled")
        await make_appointment(patient_user["id"], later, time(9, 0))

        response = await client.get(
            f"/api/v1/users/{patient_user['id']}/profile",
            headers=auth_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["email"] == patient_user["email"]
        assert data["appointment_stats"] == {
            "total_appointments": 3,
            "completed_appointments": 1,
            "cancelled_appointments": 1,
            "last_appointment_date": later.isoformat(),
        }

    async def test_admin_profile_has_no_stats(
        self,
        client: AsyncClient,
        admin_headers: dict,
        admin_user: dict,
    ):
        response = await client.get(
            f"/api/v1/users/{admin_user['id']}/profile",
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert response.json()["appointment_stats"] is None

    async def test_patient_cannot_read_other_profile(
        self,
        client: AsyncClient,
        auth_headers: dict,
        other_patient: dict,
    ):
        response = await client.get(
            f"/api/v1/users/{other_patient['id']}/profile",
            headers=auth_headers,
        )
        assert response.status_code == 403

    async def test_update_own_profile(
        self,
        client: AsyncClient,
        auth_headers: dict,
        patient_user: dict,
    ):
        response = await client.put(
            f"/api/v1/users/{patient_user['id']}/profile",
            json={"first_name": "Anabel", "phone": "+5491199998888"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["first_name"] == "Anabel"
        assert data["last_name"] == "Tester"
        assert data["phone"] == "+5491199998888"

        me = await client.get("/api/v1/auth/me", headers=auth_headers)
        assert me.json()["first_name"] == "Anabel"

    async def test_admin_updates_patient_profile(
        self,
        client: AsyncClient,
        admin_headers: dict,
        patient_user: dict,
    ):
        response = await client.put(
            f"/api/v1/users/{patient_user['id']}/profile",
            json={"last_name": "Gomez"},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert response.json()["last_name"] == "Gomez"

    async def test_patient_cannot_update_other_profile(
        self,
        client: AsyncClient,
        auth_headers: dict,
        other_patient: dict,
    ):
        response = await client.put(
            f"/api/v1/users/{other_patient['id']}/profile",
            json={"first_name": "Hacked"},
            headers=auth_headers,
        )
        assert response.status_code == 403

    async def test_empty_update_rejected(
        self,
        client: AsyncClient,
        auth_headers: dict,
        patient_user: dict,
    ):
        response = await client.put(
            f"/api/v1/users/{patient_user['id']}/profile",
            json={},
            headers=auth_headers,
        )
        assert response.status_code == 400
        assert response.json()["code"] == "NO_CHANGES"

    async def test_short_name_rejected(
        self,
        client: AsyncClient,
        auth_headers: dict,
        patient_user: dict,
    ):
        response = await client.put(
            f"/api/v1/users/{patient_user['id']}/profile",
            json={"first_name": "A"},
            headers=auth_headers,
        )
        assert response.status_code == 400

    async def test_unknown_user(self, client: AsyncClient, admin_headers: dict):
        response = await client.get("/api/v1/users/9999/profile", headers=admin_headers)
        assert response.status_code == 404

        response = await client.put(
            "/api/v1/users/9999/profile",
            json={"first_name": "Nobody"},
            headers=admin_headers,
        )
        assert response.status_code == 404
