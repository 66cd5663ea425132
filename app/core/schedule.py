"""Clinic schedule template and slot generation."""

from collections.abc import Mapping, Sequence
from datetime import UTC, date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from app.config import SchedulePeriod, settings

ScheduleTemplate = Mapping[int, Sequence[SchedulePeriod]]


def weekday_index(day: date) -> int:
    """Return the weekday index used by the schedule (0=Sunday .. 6=Saturday)."""
    return day.isoweekday() % 7


def format_slot(value: time) -> str:
    """Format a time of day as an HH:MM slot label."""
    return value.strftime("%H:%M")


def generate_slots(
    day: date,
    template: ScheduleTemplate | None = None,
    slot_minutes: int | None = None,
) -> list[str]:
    """
    Build the nominal slots of a date from the weekly template.

    Slots start at each period's opening time and advance by the slot
    granularity. A slot equal to the period's last bookable time is included.

    Args:
        day: Calendar date
        template: Weekday index -> opening periods (defaults to settings)
        slot_minutes: Slot granularity (defaults to settings)

    Returns:
        Ordered list of HH:MM strings, empty when the clinic is closed that weekday
    """
    if template is None:
        template = settings.clinic_schedule
    step = timedelta(minutes=slot_minutes or settings.slot_minutes)

    slots: list[str] = []
    for period in template.get(weekday_index(day), ()):
        current = datetime.combine(day, period.start)
        cutoff = datetime.combine(day, period.cutoff)
        while current <= cutoff:
            slots.append(format_slot(current.time()))
            current += step
    return slots


def clinic_tz() -> ZoneInfo:
    """Return the clinic's configured time zone."""
    return ZoneInfo(settings.clinic_timezone)


def clinic_now() -> datetime:
    """Current wall-clock time at the clinic, as a naive local datetime."""
    return datetime.now(clinic_tz()).replace(tzinfo=None)


def clinic_today() -> date:
    """Current calendar day at the clinic."""
    return clinic_now().date()


def appointment_start(appointment_date: date, appointment_time: time) -> datetime:
    """Naive local datetime at which an appointment starts."""
    return datetime.combine(appointment_date, appointment_time)


def as_utc(value: datetime) -> datetime:
    """Normalise a stored timestamp to aware UTC (naive values are taken as UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
