"""User schemas for request/response validation."""

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, EmailStr, Field


class UserRole(str, Enum):
    """User role enumeration."""

    PATIENT = "patient"
    ADMIN = "admin"


class UserResponse(BaseModel):
    """Public view of a user."""

    id: int
    email: EmailStr
    first_name: str
    last_name: str
    phone: str | None = None
    role: UserRole
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class UserListResponse(BaseModel):
    """Paginated user list."""

    total: int
    page: int
    page_size: int
    items: list[UserResponse]


class UserStatusUpdate(BaseModel):
    """Admin request to activate or deactivate an account."""

    is_active: bool


class AppointmentStats(BaseModel):
    """A patient's appointment history in numbers."""

    total_appointments: int = 0
    completed_appointments: int = 0
    cancelled_appointments: int = 0
    last_appointment_date: date | None = None


class UserProfile(UserResponse):
    """User profile, with appointment stats for patients."""

    appointment_stats: AppointmentStats | None = None


class UserProfileUpdate(BaseModel):
    """Fields a user may change on their own profile."""

    first_name: str | None = Field(None, min_length=2, max_length=50)
    last_name: str | None = Field(None, min_length=2, max_length=50)
    phone: str | None = Field(None, min_length=7, max_length=20)
