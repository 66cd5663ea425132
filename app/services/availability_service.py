"""Availability resolution: nominal slots minus occupied ones."""

from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import BadRequestException
from app.core.schedule import clinic_today, format_slot, generate_slots
from app.models.appointments import appointments
from app.schemas.appointments import AvailabilityResponse
from app.services.appointment_queries import slot_is_live
from app.services.non_working_day_service import NonWorkingDayService
from app.services.specialty_service import SpecialtyService


def ensure_bookable_date(day: date) -> None:
    """
    Reject dates before the clinic's current calendar day.

    Today itself stays bookable; the comparison is by calendar day only.
    """
    if day < clinic_today():
        raise BadRequestException(
            "Appointments cannot be booked on past dates",
            code="DATE_IN_PAST",
        )


class AvailabilityService:
    """Computes the bookable slots of a date."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def get_occupied_times(self, day: date) -> set[str]:
        """HH:MM times held by live appointments on a date."""
        result = await self.db.execute(
            select(appointments.c.appointment_time).where(
                appointments.c.appointment_date == day,
                slot_is_live(),
            )
        )
        return {format_slot(value) for value in result.scalars().all()}

    async def get_available_slots(self, day: date, specialty_id: int) -> AvailabilityResponse:
        """
        Resolve the bookable slots for a date and specialty.

        Args:
            day: Requested date
            specialty_id: Requested specialty

        Returns:
            Available slots with totals, or an empty list with the reason

        Raises:
            BadRequestException: If the date is in the past
            NotFoundException: If the specialty is unknown or inactive
        """
        ensure_bookable_date(day)
        await SpecialtyService(self.db).get_active(specialty_id)

        block = await NonWorkingDayService(self.db).find_block(day)
        if block:
            return AvailabilityResponse(
                date=day,
                available_slots=[],
                blocked_reason=block.reason,
                message=f"Non-working day: {block.reason}",
            )

        nominal = generate_slots(day)
        if not nominal:
            return AvailabilityResponse(
                date=day,
                available_slots=[],
                message="The clinic has no opening hours on this date",
            )

        occupied = await self.get_occupied_times(day)
        available = [slot for slot in nominal if slot not in occupied]

        return AvailabilityResponse(
            date=day,
            available_slots=available,
            total_slots=len(nominal),
            booked_slots=len(occupied),
            message="Available slots retrieved successfully",
        )
