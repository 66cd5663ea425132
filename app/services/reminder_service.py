"""Appointment reminder e-mails and the background scheduler that sends them."""

import asyncio
from collections import Counter
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import settings
from app.core.exceptions import AppException, BadRequestException
from app.core.schedule import appointment_start, as_utc, clinic_now, clinic_today
from app.database import AsyncSessionLocal
from app.models.appointments import appointments
from app.schemas.appointments import (
    AppointmentResponse,
    AppointmentStatus,
    ReminderKind,
    ReminderSendResponse,
    ReminderStatsResponse,
)
from app.services.appointment_queries import fetch_appointment_details
from app.services.appointment_service import AppointmentService
from app.services.notification_service import NotificationService

logger = structlog.get_logger(__name__)

REMINDABLE_STATUSES = (AppointmentStatus.SCHEDULED.value, AppointmentStatus.CONFIRMED.value)

# 2h reminders go to appointments starting in (90, 120] minutes
TWO_HOUR_WINDOW = (timedelta(minutes=90), timedelta(minutes=120))
# ...that were booked recently enough to have missed the day-before reminder
RECENT_BOOKING = timedelta(hours=24)


class ReminderService:
    """Selects due appointments, sends reminders and records what was sent."""

    def __init__(
        self,
        db: AsyncSession,
        notifier: NotificationService | None = None,
        send_delay: float | None = None,
    ):
        """Initialize service with database session and e-mail sender."""
        self.db = db
        self.notifier = notifier or NotificationService()
        self.send_delay = settings.reminder_send_delay_seconds if send_delay is None else send_delay

    async def due_24h(self) -> list[AppointmentResponse]:
        """Tomorrow's active appointments that have not had a day-before reminder."""
        tomorrow = clinic_today() + timedelta(days=1)
        return await fetch_appointment_details(
            self.db,
            appointments.c.appointment_date == tomorrow,
            appointments.c.status.in_(REMINDABLE_STATUSES),
            appointments.c.reminder_24h_sent.is_(False),
        )

    async def due_2h(self) -> list[AppointmentResponse]:
        """Today's recently booked appointments starting in the 2h window."""
        now = clinic_now()
        booked_after = datetime.now(UTC) - RECENT_BOOKING
        candidates = await fetch_appointment_details(
            self.db,
            appointments.c.appointment_date == now.date(),
            appointments.c.status.in_(REMINDABLE_STATUSES),
            appointments.c.reminder_2h_sent.is_(False),
        )

        lower, upper = TWO_HOUR_WINDOW
        due = []
        for appointment in candidates:
            until = appointment_start(appointment.appointment_date, appointment.appointment_time) - now
            if lower < until <= upper and as_utc(appointment.created_at) >= booked_after:
                due.append(appointment)
        return due

    async def send_due_24h_reminders(self) -> int:
        """Send every due day-before reminder. Returns how many were sent."""
        return await self._send_batch(await self.due_24h(), ReminderKind.DAY_BEFORE)

    async def send_due_2h_reminders(self) -> int:
        """Send every due two-hour reminder. Returns how many were sent."""
        return await self._send_batch(await self.due_2h(), ReminderKind.TWO_HOURS)

    async def send_manual_reminder(
        self,
        appointment_id: int,
        kind: ReminderKind,
    ) -> ReminderSendResponse:
        """
        Send a reminder on staff request, regardless of timing.

        Raises:
            NotFoundException: If appointment not found
            BadRequestException: If the appointment is not scheduled or confirmed
            AppException: If the e-mail could not be sent (502)
        """
        appointment = await AppointmentService(self.db).get_appointment(appointment_id)
        if appointment.status.value not in REMINDABLE_STATUSES:
            raise BadRequestException(
                "Reminders can only be sent for scheduled or confirmed appointments",
                code="INVALID_STATUS",
            )

        result = await self.notifier.send_reminder(appointment, kind)
        if not result.success:
            raise AppException(
                f"The reminder could not be sent: {result.error}",
                status_code=502,
                code="EMAIL_SEND_FAILED",
            )

        await self._mark_sent(appointment.id, kind)
        await self.db.commit()
        logger.info("reminder_sent", appointment_id=appointment.id, kind=kind.value, manual=True)

        return ReminderSendResponse(
            message=f"{kind.value} reminder sent",
            message_id=result.message_id,
        )

    async def get_stats(self) -> ReminderStatsResponse:
        """Reminder counters over today's and future active appointments."""
        today = clinic_today()
        upcoming = (
            appointments.c.appointment_date >= today,
            appointments.c.status.in_(REMINDABLE_STATUSES),
        )

        def count_where(*extra):
            return select(func.count()).select_from(appointments).where(*upcoming, *extra)

        async def scalar(stmt) -> int:
            return (await self.db.execute(stmt)).scalar() or 0

        return ReminderStatsResponse(
            total_appointments=await scalar(count_where()),
            reminders_24h_sent=await scalar(count_where(appointments.c.reminder_24h_sent.is_(True))),
            reminders_2h_sent=await scalar(count_where(appointments.c.reminder_2h_sent.is_(True))),
            pending_24h_reminders=await scalar(
                count_where(
                    appointments.c.appointment_date == today + timedelta(days=1),
                    appointments.c.reminder_24h_sent.is_(False),
                )
            ),
            pending_2h_reminders=await scalar(
                count_where(
                    appointments.c.appointment_date == today,
                    appointments.c.reminder_2h_sent.is_(False),
                )
            ),
        )

    async def _send_batch(self, due: list[AppointmentResponse], kind: ReminderKind) -> int:
        """Send sequentially, committing each success so a crash never resends."""
        sent = 0
        for index, appointment in enumerate(due):
            if index and self.send_delay:
                await asyncio.sleep(self.send_delay)

            result = await self.notifier.send_reminder(appointment, kind)
            if not result.success:
                logger.warning(
                    "reminder_failed",
                    appointment_id=appointment.id,
                    kind=kind.value,
                    error=result.error,
                )
                continue

            await self._mark_sent(appointment.id, kind)
            await self.db.commit()
            sent += 1
            logger.info("reminder_sent", appointment_id=appointment.id, kind=kind.value)

        logger.info("reminder_batch_finished", kind=kind.value, due=len(due), sent=sent)
        return sent

    async def _mark_sent(self, appointment_id: int, kind: ReminderKind) -> None:
        now = datetime.now(UTC)
        if kind == ReminderKind.TWO_HOURS:
            values = {"reminder_2h_sent": True, "reminder_2h_sent_at": now}
        else:
            values = {"reminder_24h_sent": True, "reminder_24h_sent_at": now}

        await self.db.execute(
            update(appointments).where(appointments.c.id == appointment_id).values(**values)
        )


class ReminderScheduler:
    """
    Runs the periodic reminder jobs as asyncio tasks inside the app process.

    Each job ticks on a fixed cadence and every tick launches its run as a
    separate task. A tick that arrives while the previous run of the same
    job is still sending is skipped, not queued.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal,
        notifier: NotificationService | None = None,
    ):
        self.session_factory = session_factory
        self.notifier = notifier or NotificationService()
        self._tasks: list[asyncio.Task] = []
        self._runs: set[asyncio.Task] = set()
        self._busy: set[ReminderKind] = set()
        self.skipped_runs: Counter[str] = Counter()

    async def run_24h(self) -> int | None:
        """One day-before run. Returns None when a previous run is still going."""
        return await self._run_exclusive(
            ReminderKind.DAY_BEFORE, ReminderService.send_due_24h_reminders
        )

    async def run_2h(self) -> int | None:
        """One two-hour run. Returns None when a previous run is still going."""
        return await self._run_exclusive(
            ReminderKind.TWO_HOURS, ReminderService.send_due_2h_reminders
        )

    async def _run_exclusive(
        self,
        kind: ReminderKind,
        send: Callable[[ReminderService], Awaitable[int]],
    ) -> int | None:
        if kind in self._busy:
            self.skipped_runs[kind.value] += 1
            logger.info("reminder_run_skipped", kind=kind.value)
            return None

        self._busy.add(kind)
        try:
            async with self.session_factory() as db:
                return await send(ReminderService(db, self.notifier))
        finally:
            self._busy.discard(kind)

    async def _guarded(self, name: str, job: Callable[[], Awaitable]) -> None:
        try:
            await job()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error("reminder_job_failed", job=name, error=str(e))

    async def _tick(self, name: str, interval: float, job: Callable[[], Awaitable]) -> None:
        loop = asyncio.get_running_loop()
        next_tick = loop.time()
        while True:
            run = asyncio.create_task(self._guarded(name, job))
            self._runs.add(run)
            run.add_done_callback(self._runs.discard)

            next_tick += interval
            await asyncio.sleep(max(0.0, next_tick - loop.time()))

    def start(self) -> None:
        """Schedule both jobs on the running event loop."""
        if self._tasks:
            return
        self._tasks = [
            asyncio.create_task(
                self._tick("24h", settings.reminder_24h_interval_seconds, self.run_24h)
            ),
            asyncio.create_task(
                self._tick("2h", settings.reminder_2h_interval_seconds, self.run_2h)
            ),
        ]
        logger.info(
            "reminder_scheduler_started",
            interval_24h=settings.reminder_24h_interval_seconds,
            interval_2h=settings.reminder_2h_interval_seconds,
        )

    async def stop(self) -> None:
        """Cancel the tickers and any run still in flight, then wait for them."""
        pending = [*self._tasks, *self._runs]
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        self._tasks = []
        self._runs.clear()
        logger.info("reminder_scheduler_stopped")
