"""Appointments table model using SQLAlchemy Core."""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    Time,
    false,
    func,
    text,
)

from app.models.base import metadata

# Statuses that release the (date, time) slot
RELEASED_STATUSES = ("cancelled", "no_show")

# Statuses that bulk cancellation leaves untouched
TERMINAL_STATUSES = ("cancelled", "completed", "no_show")

_ACTIVE_SLOT_PREDICATE = text("status NOT IN ('cancelled', 'no_show')")

appointments = Table(
    "appointments",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    # Ownership / references
    Column("patient_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("specialty_id", Integer, ForeignKey("specialties.id"), nullable=False),
    # Slot
    Column("appointment_date", Date, nullable=False),
    Column("appointment_time", Time, nullable=False),
    # Status management
    Column("status", String(20), nullable=False, server_default="confirmed"),
    Column("notes", Text, nullable=True),
    Column("cancelled_by_admin", Boolean, nullable=False, server_default=false()),
    Column("cancelled_at", DateTime(timezone=True), nullable=True),
    # Reminders
    Column("reminder_24h_sent", Boolean, nullable=False, server_default=false()),
    Column("reminder_24h_sent_at", DateTime(timezone=True), nullable=True),
    Column("reminder_2h_sent", Boolean, nullable=False, server_default=false()),
    Column("reminder_2h_sent_at", DateTime(timezone=True), nullable=True),
    # Audit fields
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    # Constraints
    CheckConstraint(
        "status IN ('scheduled', 'confirmed', 'completed', 'cancelled', 'no_show')",
        name="appointments_status_check",
    ),
    # At most one live appointment per (date, time)
    Index(
        "uq_appointments_active_slot",
        "appointment_date",
        "appointment_time",
        unique=True,
        postgresql_where=_ACTIVE_SLOT_PREDICATE,
        sqlite_where=_ACTIVE_SLOT_PREDICATE,
    ),
    Index("ix_appointments_patient_status", "patient_id", "status"),
    Index("ix_appointments_date", "appointment_date"),
)
