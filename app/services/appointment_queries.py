"""Shared appointment selects joined with patient and specialty details."""

from typing import Any

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.appointments import RELEASED_STATUSES, appointments
from app.models.specialties import specialties
from app.models.users import users
from app.schemas.appointments import AppointmentResponse


def appointment_detail_query() -> Select:
    """Select appointments with the columns ``AppointmentResponse`` expects."""
    return select(
        appointments,
        specialties.c.name.label("specialty_name"),
        specialties.c.duration_minutes,
        specialties.c.price,
        users.c.first_name.label("patient_first_name"),
        users.c.last_name.label("patient_last_name"),
        users.c.email.label("patient_email"),
        users.c.phone.label("patient_phone"),
    ).select_from(
        appointments.join(specialties, appointments.c.specialty_id == specialties.c.id).join(
            users, appointments.c.patient_id == users.c.id
        )
    )


async def fetch_appointment_details(
    db: AsyncSession,
    *conditions: Any,
    for_update: bool = False,
) -> list[AppointmentResponse]:
    """Run the detail select with the given WHERE conditions."""
    stmt = (
        appointment_detail_query()
        .where(*conditions)
        .order_by(appointments.c.appointment_date, appointments.c.appointment_time)
    )
    if for_update:
        stmt = stmt.with_for_update(of=appointments)

    result = await db.execute(stmt)
    return [AppointmentResponse.model_validate(dict(row)) for row in result.mappings().all()]


def slot_is_live():
    """Condition matching appointments that occupy their slot."""
    return appointments.c.status.not_in(RELEASED_STATUSES)
