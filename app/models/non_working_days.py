"""Non-working days: single dates or date ranges with no bookable slots."""

from sqlalchemy import CheckConstraint, Column, Date, DateTime, Index, Integer, String, Table, Text, func

from app.models.base import metadata

non_working_days = Table(
    "non_working_days",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    # A single day is stored with start_date == end_date
    Column("start_date", Date, nullable=False),
    Column("end_date", Date, nullable=False),
    Column("reason", String(255), nullable=False),
    Column("description", Text, nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    CheckConstraint("end_date >= start_date", name="non_working_days_range_check"),
    Index("ix_non_working_days_range", "start_date", "end_date"),
)
