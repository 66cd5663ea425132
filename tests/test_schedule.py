"""Tests for slot generation from the weekly template."""

from datetime import date, datetime, time

import pytest
from pydantic import ValidationError

from app.config import SchedulePeriod, Settings, default_clinic_schedule
from app.core.schedule import as_utc, format_slot, generate_slots, weekday_index


def test_weekday_index_starts_on_sunday():
    """Sunday is 0 and Saturday is 6."""
    assert weekday_index(date(2024, 6, 2)) == 0
    assert weekday_index(date(2024, 6, 3)) == 1
    assert weekday_index(date(2024, 6, 8)) == 6


def test_monday_morning_slots():
    """Morning shift runs 09:00 to the 12:00 last slot inclusive."""
    slots = generate_slots(date(2024, 6, 3))
    assert slots == ["09:00", "09:30", "10:00", "10:30", "11:00", "11:30", "12:00"]


def test_tuesday_evening_slots():
    """Evening shift runs 15:00 to 20:30 inclusive."""
    slots = generate_slots(date(2024, 6, 4))
    assert slots[0] == "15:00"
    assert slots[-1] == "20:30"
    assert len(slots) == 12


@pytest.mark.parametrize("day", [date(2024, 6, 1), date(2024, 6, 2)])
def test_weekend_has_no_slots(day):
    """Weekdays missing from the template are closed."""
    assert generate_slots(day) == []


def test_custom_template_and_granularity():
    """A custom template with split periods and 20 minute slots."""
    template = {
        1: [
            SchedulePeriod(start=time(8, 0), end=time(9, 0)),
            SchedulePeriod(start=time(14, 0), end=time(15, 0), last_slot=time(14, 20)),
        ]
    }
    slots = generate_slots(date(2024, 6, 3), template=template, slot_minutes=20)
    assert slots == ["08:00", "08:20", "08:40", "09:00", "14:00", "14:20"]


def test_slots_are_unique_and_sorted():
    """Every configured weekday yields strictly increasing slots."""
    for offset in range(7):
        slots = generate_slots(date(2024, 6, 2 + offset))
        assert slots == sorted(set(slots))


def test_period_must_end_after_start():
    """Inverted periods are rejected."""
    with pytest.raises(ValidationError):
        SchedulePeriod(start=time(12, 0), end=time(9, 0))


def test_last_slot_must_fall_inside_period():
    """The last bookable slot cannot be after closing time."""
    with pytest.raises(ValidationError):
        SchedulePeriod(start=time(9, 0), end=time(12, 0), last_slot=time(12, 30))


def test_schedule_from_environment(monkeypatch):
    """CLINIC_SCHEDULE is read as JSON keyed by weekday index."""
    monkeypatch.setenv("CLINIC_SCHEDULE", '{"6": [{"start": "10:00", "end": "11:00"}]}')
    configured = Settings()
    assert list(configured.clinic_schedule) == [6]
    assert generate_slots(date(2024, 6, 8), template=configured.clinic_schedule) == [
        "10:00",
        "10:30",
        "11:00",
    ]


def test_default_schedule_shape():
    """Default template opens Monday to Friday."""
    assert sorted(default_clinic_schedule()) == [1, 2, 3, 4, 5]


def test_format_slot_drops_seconds():
    assert format_slot(time(9, 5, 30)) == "09:05"


def test_as_utc_treats_naive_values_as_utc():
    naive = datetime(2024, 6, 3, 12, 0)
    assert as_utc(naive).utcoffset().total_seconds() == 0
    assert as_utc(naive).hour == 12
