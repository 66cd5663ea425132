"""Tests for the non-working-day registry."""

from datetime import date, time, timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from app.models.appointments import appointments
from app.services.non_working_day_service import expand_dates, month_bounds

ADMIN_URL = "/api/v1/admin/non-working-days"


def test_expand_dates_inclusive():
    assert expand_dates(date(2024, 12, 30), date(2025, 1, 2)) == [
        date(2024, 12, 30),
        date(2024, 12, 31),
        date(2025, 1, 1),
        date(2025, 1, 2),
    ]


def test_month_bounds():
    assert month_bounds(2024, 2) == (date(2024, 2, 1), date(2024, 2, 29))
    assert month_bounds(2025, None) == (date(2025, 1, 1), date(2025, 12, 31))


@pytest.mark.asyncio
async def test_block_day_cancels_appointments(
    client: AsyncClient,
    db_session,
    admin_headers: dict,
    patient_user: dict,
    booking_date,
    make_appointment,
    notifier,
) -> None:
    """Blocking a date cancels its live appointments and leaves the rest alone."""
    confirmed = await make_appointment(patient_user["id"], booking_date, time(9, 0), notes="Bring x-rays")
    scheduled = await make_appointment(patient_user["id"], booking_date, time(9, 30), status="scheduled")
    completed = await make_appointment(patient_user["id"], booking_date, time(10, 0), status="completed")
    next_day = await make_appointment(patient_user["id"], booking_date + timedelta(days=1), time(9, 0))

    response = await client.post(
        ADMIN_URL,
        json={"date": booking_date.isoformat(), "reason": "Dentist conference"},
        headers=admin_headers,
    )
    assert response.status_code == 201
    data = response.json()
    assert data["cancelled_appointments"] == 2
    assert data["non_working_day"]["start_date"] == booking_date.isoformat()
    assert data["non_working_day"]["end_date"] == booking_date.isoformat()

    rows = {
        row.id: row
        for row in (await db_session.execute(select(appointments))).all()
    }
    assert rows[confirmed].status == "cancelled"
    assert rows[confirmed].cancelled_by_admin is True
    assert rows[confirmed].notes == "Bring x-rays - Cancelled: non-working day: Dentist conference"
    assert rows[scheduled].status == "cancelled"
    assert rows[scheduled].notes == "Cancelled: non-working day: Dentist conference"
    assert rows[completed].status == "completed"
    assert rows[next_day].status == "confirmed"

    notifier.notify_cancellations.assert_awaited_once()
    notified, reason = notifier.notify_cancellations.await_args.args
    assert {item.id for item in notified} == {confirmed, scheduled}
    assert reason == "Dentist conference"


@pytest.mark.asyncio
async def test_block_day_without_appointments(
    client: AsyncClient,
    admin_headers: dict,
    booking_date,
    notifier,
) -> None:
    response = await client.post(
        ADMIN_URL,
        json={"date": booking_date.isoformat(), "reason": "Maintenance"},
        headers=admin_headers,
    )
    assert response.status_code == 201
    assert response.json()["cancelled_appointments"] == 0
    notifier.notify_cancellations.assert_not_awaited()


@pytest.mark.asyncio
async def test_block_day_twice_conflicts(
    client: AsyncClient,
    admin_headers: dict,
    booking_date,
) -> None:
    payload = {"date": booking_date.isoformat(), "reason": "Maintenance"}
    assert (await client.post(ADMIN_URL, json=payload, headers=admin_headers)).status_code == 201

    response = await client.post(ADMIN_URL, json=payload, headers=admin_headers)
    assert response.status_code == 409
    assert response.json()["code"] == "DATE_ALREADY_BLOCKED"


@pytest.mark.asyncio
async def test_block_range(
    client: AsyncClient,
    admin_headers: dict,
    patient_user: dict,
    booking_date,
    make_appointment,
) -> None:
    """A range reports every blocked date and cancels what falls inside."""
    end = booking_date + timedelta(days=4)
    await make_appointment(patient_user["id"], booking_date + timedelta(days=2), time(15, 0))
    await make_appointment(patient_user["id"], end + timedelta(days=1), time(15, 0))

    response = await client.post(
        f"{ADMIN_URL}/range",
        json={
            "start_date": booking_date.isoformat(),
            "end_date": end.isoformat(),
            "reason": "Holidays",
        },
        headers=admin_headers,
    )
    assert response.status_code == 201
    data = response.json()
    assert data["total_days"] == 5
    assert data["blocked_dates"][0] == booking_date.isoformat()
    assert data["blocked_dates"][-1] == end.isoformat()
    assert data["cancelled_appointments"] == 1
    assert data["non_working_day"]["description"] == (
        f"Blocked period from {booking_date.isoformat()} to {end.isoformat()}"
    )


@pytest.mark.asyncio
async def test_range_end_must_follow_start(
    client: AsyncClient,
    admin_headers: dict,
    booking_date,
) -> None:
    response = await client.post(
        f"{ADMIN_URL}/range",
        json={
            "start_date": booking_date.isoformat(),
            "end_date": booking_date.isoformat(),
            "reason": "Holidays",
        },
        headers=admin_headers,
    )
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_DATE_RANGE"


@pytest.mark.asyncio
async def test_range_too_long(client: AsyncClient, admin_headers: dict, booking_date) -> None:
    response = await client.post(
        f"{ADMIN_URL}/range",
        json={
            "start_date": booking_date.isoformat(),
            "end_date": (booking_date + timedelta(days=400)).isoformat(),
            "reason": "Sabbatical",
        },
        headers=admin_headers,
    )
    assert response.status_code == 400
    assert response.json()["code"] == "DATE_RANGE_TOO_LONG"


@pytest.mark.asyncio
async def test_range_overlapping_existing_block(
    client: AsyncClient,
    admin_headers: dict,
    booking_date,
) -> None:
    """The conflict names the dates already blocked."""
    blocked = booking_date + timedelta(days=2)
    await client.post(
        ADMIN_URL,
        json={"date": blocked.isoformat(), "reason": "Training"},
        headers=admin_headers,
    )

    response = await client.post(
        f"{ADMIN_URL}/range",
        json={
            "start_date": booking_date.isoformat(),
            "end_date": (booking_date + timedelta(days=5)).isoformat(),
            "reason": "Holidays",
        },
        headers=admin_headers,
    )
    assert response.status_code == 409
    assert blocked.isoformat() in response.json()["message"]


@pytest.mark.asyncio
async def test_unblock_does_not_restore(
    client: AsyncClient,
    db_session,
    admin_headers: dict,
    patient_user: dict,
    booking_date,
    make_appointment,
) -> None:
    appointment_id = await make_appointment(patient_user["id"], booking_date, time(9, 0))
    created = await client.post(
        ADMIN_URL,
        json={"date": booking_date.isoformat(), "reason": "Power outage"},
        headers=admin_headers,
    )
    block_id = created.json()["non_working_day"]["id"]

    response = await client.delete(f"{ADMIN_URL}/{block_id}", headers=admin_headers)
    assert response.status_code == 200

    status = (
        await db_session.execute(
            select(appointments.c.status).where(appointments.c.id == appointment_id)
        )
    ).scalar_one()
    assert status == "cancelled"

    assert (await client.delete(f"{ADMIN_URL}/{block_id}", headers=admin_headers)).status_code == 404


@pytest.mark.asyncio
async def test_public_blocked_dates_expand_ranges(
    client: AsyncClient,
    admin_headers: dict,
    booking_date,
) -> None:
    single = booking_date + timedelta(days=10)
    await client.post(
        f"{ADMIN_URL}/range",
        json={
            "start_date": booking_date.isoformat(),
            "end_date": (booking_date + timedelta(days=2)).isoformat(),
            "reason": "Holidays",
        },
        headers=admin_headers,
    )
    await client.post(
        ADMIN_URL,
        json={"date": single.isoformat(), "reason": "Training"},
        headers=admin_headers,
    )

    response = await client.get("/api/v1/appointments/non-working-days")
    assert response.status_code == 200
    blocked = response.json()["blocked_dates"]
    assert [item["date"] for item in blocked] == [
        booking_date.isoformat(),
        (booking_date + timedelta(days=1)).isoformat(),
        (booking_date + timedelta(days=2)).isoformat(),
        single.isoformat(),
    ]
    assert [item["type"] for item in blocked] == ["range", "range", "range", "single"]


@pytest.mark.asyncio
async def test_public_blocked_dates_month_filter(
    client: AsyncClient,
    admin_headers: dict,
    booking_date,
) -> None:
    """Month filtering clips a range to the requested month."""
    await client.post(
        f"{ADMIN_URL}/range",
        json={
            "start_date": booking_date.isoformat(),
            "end_date": (booking_date + timedelta(days=40)).isoformat(),
            "reason": "Renovation",
        },
        headers=admin_headers,
    )

    response = await client.get(
        "/api/v1/appointments/non-working-days",
        params={"year": booking_date.year, "month": booking_date.month},
    )
    dates = [item["date"] for item in response.json()["blocked_dates"]]
    assert dates[0] == booking_date.isoformat()
    assert all(value[:7] == booking_date.isoformat()[:7] for value in dates)


@pytest.mark.asyncio
async def test_admin_list_blocks(
    client: AsyncClient,
    admin_headers: dict,
    auth_headers: dict,
    booking_date,
) -> None:
    await client.post(
        ADMIN_URL,
        json={"date": booking_date.isoformat(), "reason": "Training"},
        headers=admin_headers,
    )
    response = await client.get(ADMIN_URL, headers=admin_headers)
    assert response.status_code == 200
    assert len(response.json()["items"]) == 1

    assert (await client.get(ADMIN_URL, headers=auth_headers)).status_code == 403
