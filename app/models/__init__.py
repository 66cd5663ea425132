"""Database models."""

from app.models.appointments import appointments
from app.models.base import metadata
from app.models.non_working_days import non_working_days
from app.models.specialties import specialties
from app.models.users import users

__all__ = [
    "appointments",
    "metadata",
    "non_working_days",
    "specialties",
    "users",
]
