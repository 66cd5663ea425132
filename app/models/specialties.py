"""Dental specialties offered by the clinic."""

from sqlalchemy import Boolean, Column, DateTime, Integer, Numeric, String, Table, Text, func, true

from app.models.base import metadata

specialties = Table(
    "specialties",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(100), nullable=False, unique=True),
    Column("description", Text, nullable=True),
    # Display only; slots are always spaced by the configured granularity
    Column("duration_minutes", Integer, nullable=False, server_default="30"),
    Column("price", Numeric(10, 2), nullable=False, server_default="0"),
    Column("active", Boolean, nullable=False, server_default=true()),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)
