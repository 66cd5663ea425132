"""Non-working day registry: blocks dates and cancels what falls on them."""

import calendar
from datetime import UTC, date, datetime, timedelta

import structlog
from sqlalchemy import and_, delete, func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import BadRequestException, ConflictException, NotFoundException
from app.models.appointments import TERMINAL_STATUSES, appointments
from app.models.non_working_days import non_working_days
from app.schemas.appointments import AppointmentResponse, AppointmentStatus
from app.schemas.non_working_days import (
    BlockedDate,
    NonWorkingDayCreate,
    NonWorkingDayResponse,
    NonWorkingRangeCreate,
)
from app.services.appointment_queries import fetch_appointment_details

logger = structlog.get_logger(__name__)


def expand_dates(start: date, end: date) -> list[date]:
    """Every calendar date in the inclusive range."""
    return [start + timedelta(days=offset) for offset in range((end - start).days + 1)]


def month_bounds(year: int, month: int | None) -> tuple[date, date]:
    """First and last day of a month, or of the year when month is None."""
    if month is None:
        return date(year, 1, 1), date(year, 12, 31)
    return date(year, month, 1), date(year, month, calendar.monthrange(year, month)[1])


class NonWorkingDayService:
    """Service for managing non-working days."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def find_block(self, day: date) -> NonWorkingDayResponse | None:
        """Return the block covering a date, if any."""
        stmt = (
            select(non_working_days)
            .where(
                non_working_days.c.start_date <= day,
                non_working_days.c.end_date >= day,
            )
            .order_by(non_working_days.c.start_date)
            .limit(1)
        )
        result = await self.db.execute(stmt)
        row = result.mappings().first()
        return NonWorkingDayResponse.model_validate(dict(row)) if row else None

    async def list_blocks(
        self,
        year: int | None = None,
        month: int | None = None,
    ) -> list[NonWorkingDayResponse]:
        """
        List blocks, optionally only those touching a year or month.

        Args:
            year: Calendar year filter
            month: Month filter (only applied together with year)

        Returns:
            Blocks ordered by start date
        """
        stmt = select(non_working_days).order_by(non_working_days.c.start_date)
        if year:
            first, last = month_bounds(year, month)
            stmt = stmt.where(
                non_working_days.c.start_date <= last,
                non_working_days.c.end_date >= first,
            )

        result = await self.db.execute(stmt)
        return [NonWorkingDayResponse.model_validate(dict(row)) for row in result.mappings().all()]

    async def list_blocked_dates(
        self,
        year: int | None = None,
        month: int | None = None,
    ) -> list[BlockedDate]:
        """Expand blocks into one entry per blocked date, for calendar display."""
        blocks = await self.list_blocks(year, month)
        window = month_bounds(year, month) if year else None

        blocked: list[BlockedDate] = []
        for block in blocks:
            for day in expand_dates(block.start_date, block.end_date):
                if window and not window[0] <= day <= window[1]:
                    continue
                blocked.append(
                    BlockedDate(
                        date=day,
                        block_id=block.id,
                        reason=block.reason,
                        description=block.description,
                        type=block.type,
                    )
                )

        return sorted(blocked, key=lambda item: item.date)

    async def block_day(
        self,
        data: NonWorkingDayCreate,
    ) -> tuple[NonWorkingDayResponse, list[AppointmentResponse]]:
        """
        Block a single date and cancel the appointments on it.

        Raises:
            ConflictException: If the date is already blocked

        Returns:
            Created block and the appointments that were cancelled
        """
        if await self._blocked_dates_between(data.date, data.date):
            raise ConflictException(
                f"The date {data.date.isoformat()} is already blocked",
                code="DATE_ALREADY_BLOCKED",
            )

        cancelled = await self._cancel_between(
            data.date,
            data.date,
            f"non-working day: {data.reason}",
        )
        block = await self._insert_block(data.date, data.date, data.reason, data.description)
        await self.db.commit()

        logger.info(
            "day_blocked",
            block_id=block.id,
            date=data.date.isoformat(),
            cancelled_appointments=len(cancelled),
        )
        return block, cancelled

    async def block_range(
        self,
        data: NonWorkingRangeCreate,
    ) -> tuple[NonWorkingDayResponse, list[date], list[AppointmentResponse]]:
        """
        Block an inclusive date range and cancel the appointments inside it.

        Raises:
            BadRequestException: If the range is empty, inverted or too long
            ConflictException: If any date in the range is already blocked

        Returns:
            Created block, the blocked dates and the cancelled appointments
        """
        if data.end_date <= data.start_date:
            raise BadRequestException(
                "The end date must be after the start date",
                code="INVALID_DATE_RANGE",
            )

        if (data.end_date - data.start_date).days > settings.max_block_range_days:
            raise BadRequestException(
                f"A blocked period cannot exceed {settings.max_block_range_days} days",
                code="DATE_RANGE_TOO_LONG",
            )

        collisions = await self._blocked_dates_between(data.start_date, data.end_date)
        if collisions:
            listed = ", ".join(day.isoformat() for day in collisions)
            raise ConflictException(
                f"The following dates are already blocked: {listed}",
                code="DATE_ALREADY_BLOCKED",
            )

        dates = expand_dates(data.start_date, data.end_date)
        description = data.description or (
            f"Blocked period from {data.start_date.isoformat()} to {data.end_date.isoformat()}"
        )

        cancelled = await self._cancel_between(
            data.start_date,
            data.end_date,
            f"non-working period: {data.reason}",
        )
        block = await self._insert_block(data.start_date, data.end_date, data.reason, description)
        await self.db.commit()

        logger.info(
            "range_blocked",
            block_id=block.id,
            start_date=data.start_date.isoformat(),
            end_date=data.end_date.isoformat(),
            total_days=len(dates),
            cancelled_appointments=len(cancelled),
        )
        return block, dates, cancelled

    async def unblock(self, block_id: int) -> None:
        """
        Delete a block. Appointments it cancelled stay cancelled.

        Raises:
            NotFoundException: If the block does not exist
        """
        result = await self.db.execute(
            delete(non_working_days)
            .where(non_working_days.c.id == block_id)
            .returning(non_working_days.c.id)
        )
        if result.first() is None:
            raise NotFoundException("Non-working day not found")

        await self.db.commit()
        logger.info("block_removed", block_id=block_id)

    async def _blocked_dates_between(self, start: date, end: date) -> list[date]:
        """Dates in [start, end] already covered by some block."""
        blocks = await self.db.execute(
            select(non_working_days.c.start_date, non_working_days.c.end_date).where(
                non_working_days.c.start_date <= end,
                non_working_days.c.end_date >= start,
            )
        )

        covered: set[date] = set()
        for block_start, block_end in blocks.all():
            covered.update(expand_dates(max(start, block_start), min(end, block_end)))
        return sorted(covered)

    async def _cancel_between(self, start: date, end: date, reason: str) -> list[AppointmentResponse]:
        """Bulk-cancel the live appointments in [start, end] and return them."""
        in_range = and_(
            appointments.c.appointment_date >= start,
            appointments.c.appointment_date <= end,
            appointments.c.status.not_in(TERMINAL_STATUSES),
        )

        affected = await fetch_appointment_details(self.db, in_range, for_update=True)
        if not affected:
            return []

        note = f"Cancelled: {reason}"
        now = datetime.now(UTC)
        await self.db.execute(
            update(appointments)
            .where(appointments.c.id.in_([item.id for item in affected]))
            .values(
                status=AppointmentStatus.CANCELLED.value,
                cancelled_by_admin=True,
                cancelled_at=now,
                updated_at=now,
                notes=func.coalesce(appointments.c.notes + f" - {note}", note),
            )
        )

        return [
            item.model_copy(
                update={
                    "status": AppointmentStatus.CANCELLED,
                    "cancelled_by_admin": True,
                    "cancelled_at": now,
                }
            )
            for item in affected
        ]

    async def _insert_block(
        self,
        start: date,
        end: date,
        reason: str,
        description: str | None,
    ) -> NonWorkingDayResponse:
        result = await self.db.execute(
            insert(non_working_days)
            .values(start_date=start, end_date=end, reason=reason, description=description)
            .returning(non_working_days)
        )
        return NonWorkingDayResponse.model_validate(dict(result.mappings().one()))
