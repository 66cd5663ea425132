"""Date helpers shared by the test modules."""

from datetime import date, datetime, timedelta

from app.core.schedule import clinic_now, clinic_today, weekday_index

# Weekday indexes of the default template: Monday is a morning shift, Tuesday an evening shift
SUNDAY = 0
MONDAY = 1
TUESDAY = 2


def future_weekday(index: int, min_days: int = 7) -> date:
    """First date at least ``min_days`` ahead that falls on the weekday index."""
    day = clinic_today() + timedelta(days=min_days)
    while weekday_index(day) != index:
        day += timedelta(days=1)
    return day


def at_offset(delta: timedelta) -> datetime:
    """Clinic-local datetime ``delta`` from now, truncated to the minute."""
    return (clinic_now() + delta).replace(second=0, microsecond=0)
