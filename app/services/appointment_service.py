"""Appointment service: booking guard, cancellation and staff management."""

from datetime import UTC, date, datetime, time, timedelta
from typing import Any

import structlog
from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import (
    AppointmentLimitException,
    AppointmentStateException,
    BadRequestException,
    CancellationTooLateException,
    ConflictException,
    ForbiddenException,
    NotFoundException,
)
from app.core.schedule import appointment_start, clinic_now, format_slot, generate_slots
from app.models.appointments import RELEASED_STATUSES, appointments
from app.models.users import users
from app.schemas.appointments import (
    AdminAppointmentUpdate,
    AppointmentCreate,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentStatus,
)
from app.schemas.users import UserRole
from app.services.appointment_queries import (
    appointment_detail_query,
    fetch_appointment_details,
    slot_is_live,
)
from app.services.availability_service import ensure_bookable_date
from app.services.non_working_day_service import NonWorkingDayService
from app.services.specialty_service import SpecialtyService

logger = structlog.get_logger(__name__)


def slot_taken() -> ConflictException:
    """Error returned when another booking holds the slot."""
    return ConflictException(
        "This time slot was just booked by another patient. Please choose another one.",
        code="TIME_SLOT_TAKEN",
    )


def is_staff(user: dict[str, Any]) -> bool:
    """Whether the principal acts on behalf of the clinic."""
    return user.get("role") == UserRole.ADMIN.value


class AppointmentService:
    """Service for managing appointments."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def get_appointment(self, appointment_id: int) -> AppointmentResponse:
        """
        Get appointment by ID.

        Raises:
            NotFoundException: If appointment not found
        """
        found = await fetch_appointment_details(self.db, appointments.c.id == appointment_id)
        if not found:
            raise NotFoundException("Appointment not found")
        return found[0]

    async def get_for_user(self, appointment_id: int, user: dict[str, Any]) -> AppointmentResponse:
        """
        Get an appointment the caller owns (staff see every appointment).

        Raises:
            NotFoundException: If appointment not found
            ForbiddenException: If user doesn't have access
        """
        appointment = await self.get_appointment(appointment_id)
        if not is_staff(user) and appointment.patient_id != user["id"]:
            raise ForbiddenException("Access denied to this appointment")
        return appointment

    async def list_appointments(self, filters: AppointmentFilters) -> AppointmentListResponse:
        """
        List appointments with filtering and pagination.

        Args:
            filters: Filter and pagination parameters

        Returns:
            Paginated list of appointments, newest first
        """
        conditions = []

        if filters.status:
            conditions.append(appointments.c.status == filters.status.value)

        if filters.patient_id:
            conditions.append(appointments.c.patient_id == filters.patient_id)

        if filters.from_date:
            conditions.append(appointments.c.appointment_date >= filters.from_date)

        if filters.to_date:
            conditions.append(appointments.c.appointment_date <= filters.to_date)

        count_stmt = select(func.count()).select_from(appointments).where(*conditions)
        total = (await self.db.execute(count_stmt)).scalar() or 0

        offset = (filters.page - 1) * filters.page_size
        stmt = (
            appointment_detail_query()
            .where(*conditions)
            .order_by(
                appointments.c.appointment_date.desc(),
                appointments.c.appointment_time.desc(),
            )
            .limit(filters.page_size)
            .offset(offset)
        )
        result = await self.db.execute(stmt)
        items = [AppointmentResponse.model_validate(dict(row)) for row in result.mappings().all()]

        return AppointmentListResponse(
            total=total,
            page=filters.page,
            page_size=filters.page_size,
            items=items,
        )

    async def book_appointment(
        self,
        patient_id: int,
        data: AppointmentCreate,
        status: AppointmentStatus = AppointmentStatus.CONFIRMED,
        enforce_limit: bool = True,
    ) -> AppointmentResponse:
        """
        Reserve a slot for a patient.

        The occupancy re-check closes the window between showing availability
        and booking; the partial unique index on live (date, time) pairs
        settles any race that still slips through.

        Args:
            patient_id: Patient the appointment belongs to
            data: Booking request
            status: Initial status
            enforce_limit: Apply the confirmed-appointments cap

        Returns:
            The booked appointment

        Raises:
            NotFoundException: If the specialty is unknown or inactive
            BadRequestException: If the date/time cannot be booked
            ConflictException: If the slot is taken (code TIME_SLOT_TAKEN)
            AppointmentLimitException: If the patient is at the cap
        """
        await SpecialtyService(self.db).get_active(data.specialty_id)
        await self._ensure_slot_bookable(data.appointment_date, data.appointment_time)

        if await self._live_appointment_id(data.appointment_date, data.appointment_time):
            logger.info(
                "slot_conflict",
                date=data.appointment_date.isoformat(),
                time=format_slot(data.appointment_time),
            )
            raise slot_taken()

        if enforce_limit:
            confirmed = await self._count_confirmed(patient_id)
            if confirmed >= settings.max_confirmed_appointments:
                raise AppointmentLimitException(settings.max_confirmed_appointments)

        now = datetime.now(UTC)
        values = {
            "patient_id": patient_id,
            "specialty_id": data.specialty_id,
            "notes": data.notes,
            "status": status.value,
            "cancelled_by_admin": False,
            "cancelled_at": None,
            "reminder_24h_sent": False,
            "reminder_24h_sent_at": None,
            "reminder_2h_sent": False,
            "reminder_2h_sent_at": None,
            "updated_at": now,
        }

        try:
            reusable_id = await self._released_appointment_id(
                data.appointment_date, data.appointment_time
            )
            if reusable_id is not None:
                # The row now represents a new booking
                stmt = (
                    update(appointments)
                    .where(appointments.c.id == reusable_id)
                    .values(**values, created_at=now)
                    .returning(appointments.c.id)
                )
            else:
                stmt = (
                    insert(appointments)
                    .values(
                        **values,
                        appointment_date=data.appointment_date,
                        appointment_time=data.appointment_time,
                    )
                    .returning(appointments.c.id)
                )

            appointment_id = (await self.db.execute(stmt)).scalar_one()
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            logger.info(
                "slot_conflict",
                date=data.appointment_date.isoformat(),
                time=format_slot(data.appointment_time),
                source="unique_index",
            )
            raise slot_taken() from None

        appointment = await self.get_appointment(appointment_id)
        logger.info(
            "appointment_booked",
            appointment_id=appointment_id,
            patient_id=patient_id,
            date=data.appointment_date.isoformat(),
            time=format_slot(data.appointment_time),
            reused_row=reusable_id is not None,
        )
        return appointment

    async def book_for_patient(
        self,
        patient_id: int,
        data: AppointmentCreate,
        status: AppointmentStatus,
    ) -> AppointmentResponse:
        """Staff booking: same guard, no confirmed-appointments cap."""
        await self._ensure_patient(patient_id)
        return await self.book_appointment(patient_id, data, status=status, enforce_limit=False)

    async def cancel_appointment(
        self,
        appointment_id: int,
        user: dict[str, Any],
    ) -> AppointmentResponse:
        """
        Cancel an appointment as its patient or as staff.

        Patients must cancel before the cutoff; staff bypass it and the
        appointment is flagged as cancelled by the clinic.

        Raises:
            NotFoundException: If appointment not found
            ForbiddenException: If user is neither the owner nor staff
            AppointmentStateException: If already cancelled or completed
            CancellationTooLateException: If inside the cutoff window
        """
        appointment = await self.get_for_user(appointment_id, user)
        by_staff = is_staff(user)

        if appointment.status == AppointmentStatus.CANCELLED:
            raise AppointmentStateException(
                "This appointment has already been cancelled",
                code="ALREADY_CANCELLED",
            )

        if appointment.status == AppointmentStatus.COMPLETED:
            raise AppointmentStateException(
                "A completed appointment cannot be cancelled",
                code="INVALID_TRANSITION",
            )

        if not by_staff:
            starts_at = appointment_start(appointment.appointment_date, appointment.appointment_time)
            if starts_at - clinic_now() < timedelta(hours=settings.cancellation_cutoff_hours):
                raise CancellationTooLateException(settings.cancellation_cutoff_hours)

        now = datetime.now(UTC)
        await self.db.execute(
            update(appointments)
            .where(appointments.c.id == appointment_id)
            .values(
                status=AppointmentStatus.CANCELLED.value,
                cancelled_by_admin=by_staff,
                cancelled_at=now,
                updated_at=now,
            )
        )
        await self.db.commit()

        logger.info(
            "appointment_cancelled",
            appointment_id=appointment_id,
            by_staff=by_staff,
        )
        return await self.get_appointment(appointment_id)

    async def update_appointment(
        self,
        appointment_id: int,
        data: AdminAppointmentUpdate,
    ) -> tuple[AppointmentResponse, bool]:
        """
        Staff update of an appointment.

        Moving it to another date/time re-runs the conflict check, and a
        transition to ``cancelled`` is recorded as a clinic cancellation.

        Returns:
            Updated appointment and whether this update cancelled it

        Raises:
            NotFoundException: If the appointment, patient or specialty is unknown
            ConflictException: If the target slot is taken
        """
        current = await self.get_appointment(appointment_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)

        if not changes:
            return current, False

        if "patient_id" in changes:
            await self._ensure_patient(changes["patient_id"])

        if "specialty_id" in changes:
            await SpecialtyService(self.db).get_active(changes["specialty_id"])

        target_date: date = changes.get("appointment_date", current.appointment_date)
        target_time: time = changes.get("appointment_time", current.appointment_time)
        moved = (target_date, target_time) != (current.appointment_date, current.appointment_time)

        if moved:
            holder = await self._live_appointment_id(target_date, target_time)
            if holder is not None and holder != appointment_id:
                raise slot_taken()

        now = datetime.now(UTC)
        values: dict[str, Any] = {"updated_at": now}
        for field, value in changes.items():
            values[field] = value.value if isinstance(value, AppointmentStatus) else value

        if moved:
            values.update(
                reminder_24h_sent=False,
                reminder_24h_sent_at=None,
                reminder_2h_sent=False,
                reminder_2h_sent_at=None,
            )

        newly_cancelled = (
            data.status == AppointmentStatus.CANCELLED
            and current.status != AppointmentStatus.CANCELLED
        )
        if newly_cancelled:
            values.update(cancelled_by_admin=True, cancelled_at=now)
        elif data.status is not None and data.status != AppointmentStatus.CANCELLED:
            values.update(cancelled_by_admin=False, cancelled_at=None)

        try:
            await self.db.execute(
                update(appointments).where(appointments.c.id == appointment_id).values(**values)
            )
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise slot_taken() from None

        logger.info(
            "appointment_updated",
            appointment_id=appointment_id,
            fields=sorted(changes),
            newly_cancelled=newly_cancelled,
        )
        return await self.get_appointment(appointment_id), newly_cancelled

    async def delete_appointment(self, appointment_id: int) -> None:
        """
        Permanently delete an appointment.

        Raises:
            NotFoundException: If appointment not found
        """
        result = await self.db.execute(
            delete(appointments)
            .where(appointments.c.id == appointment_id)
            .returning(appointments.c.id)
        )
        if result.first() is None:
            raise NotFoundException("Appointment not found")

        await self.db.commit()
        logger.info("appointment_deleted", appointment_id=appointment_id)

    async def _ensure_slot_bookable(self, day: date, slot_time: time) -> None:
        ensure_bookable_date(day)

        block = await NonWorkingDayService(self.db).find_block(day)
        if block:
            raise BadRequestException(
                f"The clinic is closed on {day.isoformat()}: {block.reason}",
                code="DATE_BLOCKED",
            )

        if format_slot(slot_time) not in generate_slots(day):
            raise BadRequestException(
                "The selected time is not a bookable slot for this date",
                code="INVALID_SLOT",
            )

    async def _ensure_patient(self, patient_id: int) -> None:
        result = await self.db.execute(
            select(users.c.id).where(
                users.c.id == patient_id,
                users.c.role == UserRole.PATIENT.value,
            )
        )
        if result.first() is None:
            raise NotFoundException("Patient not found")

    async def _live_appointment_id(self, day: date, slot_time: time) -> int | None:
        result = await self.db.execute(
            select(appointments.c.id).where(
                appointments.c.appointment_date == day,
                appointments.c.appointment_time == slot_time,
                slot_is_live(),
            )
        )
        return result.scalars().first()

    async def _released_appointment_id(self, day: date, slot_time: time) -> int | None:
        """A cancelled/no-show row at the slot that can be reused, locked."""
        result = await self.db.execute(
            select(appointments.c.id)
            .where(
                appointments.c.appointment_date == day,
                appointments.c.appointment_time == slot_time,
                appointments.c.status.in_(RELEASED_STATUSES),
            )
            .order_by(appointments.c.id)
            .limit(1)
            .with_for_update()
        )
        return result.scalars().first()

    async def _count_confirmed(self, patient_id: int) -> int:
        result = await self.db.execute(
            select(func.count())
            .select_from(appointments)
            .where(
                appointments.c.patient_id == patient_id,
                appointments.c.status == AppointmentStatus.CONFIRMED.value,
            )
        )
        return result.scalar() or 0
