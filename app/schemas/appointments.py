"""Appointment schemas for request/response validation."""

from datetime import date, datetime, time
from enum import Enum

from pydantic import BaseModel, Field, field_serializer, field_validator


class AppointmentStatus(str, Enum):
    """Appointment status enumeration."""

    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


class StaffBookingStatus(str, Enum):
    """Statuses staff may create an appointment with."""

    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"


class ReminderKind(str, Enum):
    """Reminder e-mail flavours."""

    DAY_BEFORE = "24h"
    TWO_HOURS = "2h"


def parse_slot_time(value: time | str) -> time:
    """Accept HH:MM (or HH:MM:SS) and drop seconds."""
    if isinstance(value, str):
        try:
            value = time.fromisoformat(value)
        except ValueError:
            raise ValueError("Time must use the HH:MM format") from None
    return value.replace(second=0, microsecond=0)


class AppointmentCreate(BaseModel):
    """Patient booking request."""

    specialty_id: int = Field(..., ge=1)
    appointment_date: date
    appointment_time: time
    notes: str | None = Field(None, max_length=500)

    @field_validator("appointment_time", mode="before")
    @classmethod
    def validate_time(cls, v: time | str) -> time:
        """Validate slot time format."""
        return parse_slot_time(v)


class AdminAppointmentCreate(AppointmentCreate):
    """Staff booking on behalf of a patient."""

    patient_id: int = Field(..., ge=1)
    status: StaffBookingStatus = StaffBookingStatus.CONFIRMED


class AdminAppointmentUpdate(BaseModel):
    """Staff update of an existing appointment."""

    patient_id: int | None = Field(None, ge=1)
    specialty_id: int | None = Field(None, ge=1)
    appointment_date: date | None = None
    appointment_time: time | None = None
    status: AppointmentStatus | None = None
    notes: str | None = Field(None, max_length=500)

    @field_validator("appointment_time", mode="before")
    @classmethod
    def validate_time(cls, v: time | str | None) -> time | None:
        """Validate slot time format."""
        if v is None:
            return None
        return parse_slot_time(v)


class AppointmentStatusUpdate(BaseModel):
    """Schema for updating appointment status."""

    status: AppointmentStatus
    notes: str | None = Field(None, max_length=500)


class ReminderRequest(BaseModel):
    """Manual reminder request."""

    type: ReminderKind = ReminderKind.DAY_BEFORE


class AppointmentResponse(BaseModel):
    """Appointment with patient and specialty details."""

    id: int
    patient_id: int
    specialty_id: int
    appointment_date: date
    appointment_time: time
    status: AppointmentStatus
    notes: str | None = None
    cancelled_by_admin: bool = False
    cancelled_at: datetime | None = None
    reminder_24h_sent: bool = False
    reminder_2h_sent: bool = False
    created_at: datetime
    updated_at: datetime
    # Joined details
    specialty_name: str
    duration_minutes: int
    price: float
    patient_first_name: str
    patient_last_name: str
    patient_email: str
    patient_phone: str | None = None

    model_config = {"from_attributes": True}

    @field_serializer("appointment_time")
    def serialize_time(self, value: time) -> str:
        """Render slot times as HH:MM."""
        return value.strftime("%H:%M")

    @property
    def patient_name(self) -> str:
        """Full patient name."""
        return f"{self.patient_first_name} {self.patient_last_name}"


class AppointmentListResponse(BaseModel):
    """Schema for paginated appointment list response."""

    total: int
    page: int
    page_size: int
    items: list[AppointmentResponse]


class AppointmentFilters(BaseModel):
    """Schema for appointment filtering."""

    status: AppointmentStatus | None = None
    patient_id: int | None = None
    from_date: date | None = None
    to_date: date | None = None
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1, le=100)


class AvailabilityResponse(BaseModel):
    """Bookable slots for a date."""

    date: date
    available_slots: list[str]
    total_slots: int = 0
    booked_slots: int = 0
    blocked_reason: str | None = None
    message: str


class CancellationResponse(BaseModel):
    """Result of a cancellation."""

    message: str
    appointment: AppointmentResponse


class ReminderSendResponse(BaseModel):
    """Result of a manual reminder."""

    message: str
    message_id: str | None = None


class ReminderStatsResponse(BaseModel):
    """Reminder counters over upcoming appointments."""

    total_appointments: int
    reminders_24h_sent: int
    reminders_2h_sent: int
    pending_24h_reminders: int
    pending_2h_reminders: int
