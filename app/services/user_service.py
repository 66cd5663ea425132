"""User service for business logic."""

from datetime import UTC, datetime

import structlog
from sqlalchemy import case, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import BadRequestException, ForbiddenException, NotFoundException
from app.models.appointments import appointments
from app.models.users import users
from app.schemas.users import (
    AppointmentStats,
    UserListResponse,
    UserProfile,
    UserProfileUpdate,
    UserResponse,
    UserRole,
)

logger = structlog.get_logger(__name__)


class UserService:
    """Service for user operations."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def create_user(
        self,
        email: str,
        password_hash: str,
        first_name: str,
        last_name: str,
        phone: str | None = None,
        role: UserRole = UserRole.PATIENT,
    ) -> dict:
        """Create a new user."""
        query = (
            users.insert()
            .values(
                email=email,
                password_hash=password_hash,
                first_name=first_name,
                last_name=last_name,
                phone=phone,
                role=role.value,
            )
            .returning(users)
        )

        result = await self.db.execute(query)
        await self.db.commit()
        user = result.mappings().first()

        if not user:
            raise ValueError("Failed to create user")

        return dict(user)

    async def get_user_by_id(self, user_id: int) -> dict | None:
        """Get user by ID."""
        result = await self.db.execute(select(users).where(users.c.id == user_id))
        user = result.mappings().first()
        return dict(user) if user else None

    async def get_user_by_email(self, email: str) -> dict | None:
        """Get user by email."""
        result = await self.db.execute(select(users).where(users.c.email == email))
        user = result.mappings().first()
        return dict(user) if user else None

    async def list_users(
        self,
        role: UserRole | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> UserListResponse:
        """List users, newest first."""
        conditions = [users.c.role == role.value] if role else []

        total = (
            await self.db.execute(select(func.count()).select_from(users).where(*conditions))
        ).scalar() or 0

        result = await self.db.execute(
            select(users)
            .where(*conditions)
            .order_by(users.c.created_at.desc(), users.c.id.desc())
            .limit(page_size)
            .offset((page - 1) * page_size)
        )

        return UserListResponse(
            total=total,
            page=page,
            page_size=page_size,
            items=[UserResponse.model_validate(dict(row)) for row in result.mappings().all()],
        )

    async def set_active(self, user_id: int, is_active: bool, acting_user_id: int) -> UserResponse:
        """
        Activate or deactivate an account.

        Raises:
            BadRequestException: If staff try to deactivate themselves
            NotFoundException: If the user does not exist
        """
        if user_id == acting_user_id and not is_active:
            raise BadRequestException("You cannot deactivate your own account")

        result = await self.db.execute(
            update(users)
            .where(users.c.id == user_id)
            .values(is_active=is_active, updated_at=datetime.now(UTC))
            .returning(users)
        )
        user = result.mappings().first()

        if not user:
            raise NotFoundException("User not found")

        await self.db.commit()
        return UserResponse.model_validate(dict(user))

    def _ensure_profile_access(self, user_id: int, requester: dict) -> None:
        if requester["role"] != UserRole.ADMIN.value and requester["id"] != user_id:
            raise ForbiddenException("Access denied to this profile")

    async def get_profile(self, user_id: int, requester: dict) -> UserProfile:
        """
        Get a user's profile; patients also get their appointment stats.

        Raises:
            ForbiddenException: If the requester is neither the user nor staff
            NotFoundException: If the user does not exist
        """
        self._ensure_profile_access(user_id, requester)

        user = await self.get_user_by_id(user_id)
        if not user:
            raise NotFoundException("User not found")

        profile = UserProfile.model_validate(user)
        if profile.role == UserRole.PATIENT:
            profile.appointment_stats = await self._appointment_stats(user_id)
        return profile

    async def update_profile(
        self,
        user_id: int,
        data: UserProfileUpdate,
        requester: dict,
    ) -> UserProfile:
        """
        Update name and phone on a profile.

        Raises:
            ForbiddenException: If the requester is neither the user nor staff
            BadRequestException: If no field was provided
            NotFoundException: If the user does not exist
        """
        self._ensure_profile_access(user_id, requester)

        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if not changes:
            raise BadRequestException("Provide at least one field to update", code="NO_CHANGES")

        result = await self.db.execute(
            update(users)
            .where(users.c.id == user_id)
            .values(**changes, updated_at=datetime.now(UTC))
            .returning(users.c.id)
        )
        if result.first() is None:
            raise NotFoundException("User not found")

        await self.db.commit()
        logger.info("profile_updated", user_id=user_id, fields=sorted(changes))
        return await self.get_profile(user_id, requester)

    async def _appointment_stats(self, user_id: int) -> AppointmentStats:
        stmt = select(
            func.count().label("total_appointments"),
            func.count(case((appointments.c.status == "completed", 1))).label(
                "completed_appointments"
            ),
            func.count(case((appointments.c.status == "cancelled", 1))).label(
                "cancelled_appointments"
            ),
            func.max(appointments.c.appointment_date).label("last_appointment_date"),
        ).where(appointments.c.patient_id == user_id)

        row = (await self.db.execute(stmt)).mappings().one()
        return AppointmentStats.model_validate(dict(row))
