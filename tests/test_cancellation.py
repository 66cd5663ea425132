"""Tests for appointment cancellation."""

from datetime import timedelta

import pytest
from httpx import AsyncClient

from tests.utils import at_offset


def cancel_url(appointment_id: int) -> str:
    return f"/api/v1/appointments/{appointment_id}/cancel"


@pytest.mark.asyncio
async def test_patient_cancels_in_time(
    client: AsyncClient,
    auth_headers: dict,
    patient_user: dict,
    make_appointment,
    notifier,
) -> None:
    """Two hours and a bit ahead is still early enough."""
    starts = at_offset(timedelta(hours=2, minutes=2))
    appointment_id = await make_appointment(patient_user["id"], starts.date(), starts.time())

    response = await client.put(cancel_url(appointment_id), headers=auth_headers)
    assert response.status_code == 200
    data = response.json()["appointment"]
    assert data["status"] == "cancelled"
    assert data["cancelled_by_admin"] is False
    assert data["cancelled_at"] is not None

    notifier.send_cancellation.assert_awaited_once()
    args = notifier.send_cancellation.await_args.args
    assert args[0].id == appointment_id
    assert args[2] is False


@pytest.mark.asyncio
async def test_patient_too_late(
    client: AsyncClient,
    auth_headers: dict,
    patient_user: dict,
    make_appointment,
    notifier,
) -> None:
    """Inside the cutoff the patient is refused."""
    starts = at_offset(timedelta(hours=1))
    appointment_id = await make_appointment(patient_user["id"], starts.date(), starts.time())

    response = await client.put(cancel_url(appointment_id), headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["code"] == "CANCELLATION_TOO_LATE"
    notifier.send_cancellation.assert_not_awaited()


@pytest.mark.asyncio
async def test_staff_bypass_cutoff(
    client: AsyncClient,
    admin_headers: dict,
    patient_user: dict,
    make_appointment,
    notifier,
) -> None:
    """Staff may cancel at any time and the cancellation is flagged as theirs."""
    starts = at_offset(timedelta(hours=1))
    appointment_id = await make_appointment(patient_user["id"], starts.date(), starts.time())

    response = await client.put(cancel_url(appointment_id), headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["appointment"]["cancelled_by_admin"] is True
    assert notifier.send_cancellation.await_args.args[2] is True


@pytest.mark.asyncio
async def test_already_cancelled(
    client: AsyncClient,
    auth_headers: dict,
    patient_user: dict,
    booking_date,
    make_appointment,
) -> None:
    appointment_id = await make_appointment(
        patient_user["id"], booking_date, at_offset(timedelta()).time(), status="cancelled"
    )
    response = await client.put(cancel_url(appointment_id), headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["code"] == "ALREADY_CANCELLED"


@pytest.mark.asyncio
async def test_completed_cannot_be_cancelled(
    client: AsyncClient,
    admin_headers: dict,
    patient_user: dict,
    booking_date,
    make_appointment,
) -> None:
    appointment_id = await make_appointment(
        patient_user["id"], booking_date, at_offset(timedelta()).time(), status="completed"
    )
    response = await client.put(cancel_url(appointment_id), headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_TRANSITION"


@pytest.mark.asyncio
async def test_other_patient_forbidden(
    client: AsyncClient,
    other_headers: dict,
    patient_user: dict,
    booking_date,
    make_appointment,
) -> None:
    appointment_id = await make_appointment(
        patient_user["id"], booking_date, at_offset(timedelta()).time()
    )
    response = await client.put(cancel_url(appointment_id), headers=other_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_unknown_appointment(client: AsyncClient, auth_headers: dict) -> None:
    response = await client.put(cancel_url(424242), headers=auth_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_cancelled_slot_can_be_rebooked(
    client: AsyncClient,
    auth_headers: dict,
    other_headers: dict,
    specialty: dict,
    booking_date,
) -> None:
    """Cancelling releases the slot for other patients."""
    payload = {
        "specialty_id": specialty["id"],
        "appointment_date": booking_date.isoformat(),
        "appointment_time": "11:00",
    }
    created = await client.post("/api/v1/appointments", json=payload, headers=auth_headers)
    appointment_id = created.json()["id"]

    await client.put(cancel_url(appointment_id), headers=auth_headers)

    rebooked = await client.post("/api/v1/appointments", json=payload, headers=other_headers)
    assert rebooked.status_code == 201
    assert rebooked.json()["id"] == appointment_id
