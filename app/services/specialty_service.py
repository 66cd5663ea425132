"""Specialty lookups, cached in Redis."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import NotFoundException
from app.core.redis_client import CacheManager
from app.models.specialties import specialties
from app.schemas.specialties import SpecialtyResponse


class SpecialtyService:
    """Service for reading active specialties."""

    CACHE_KEY = "specialties:active"

    def __init__(self, db: AsyncSession, cache_manager: CacheManager | None = None):
        """Initialize service with database session and optional cache."""
        self.db = db
        self.cache = cache_manager

    async def list_active(self) -> list[SpecialtyResponse]:
        """Return active specialties ordered by name."""
        if self.cache:
            cached = self.cache.get_json(self.CACHE_KEY)
            if cached is not None:
                return [SpecialtyResponse.model_validate(item) for item in cached]

        stmt = (
            select(
                specialties.c.id,
                specialties.c.name,
                specialties.c.description,
                specialties.c.duration_minutes,
                specialties.c.price,
            )
            .where(specialties.c.active.is_(True))
            .order_by(specialties.c.name)
        )
        result = await self.db.execute(stmt)
        items = [SpecialtyResponse.model_validate(dict(row)) for row in result.mappings().all()]

        if self.cache:
            self.cache.set_json(
                self.CACHE_KEY,
                [item.model_dump() for item in items],
                ttl=settings.cache_ttl_seconds,
            )

        return items

    async def get_active(self, specialty_id: int) -> SpecialtyResponse:
        """
        Get an active specialty by ID.

        Raises:
            NotFoundException: If the specialty does not exist or is inactive
        """
        stmt = select(specialties).where(
            specialties.c.id == specialty_id,
            specialties.c.active.is_(True),
        )
        result = await self.db.execute(stmt)
        row = result.mappings().first()

        if not row:
            raise NotFoundException(
                "The selected specialty does not exist or is not active",
                code="SPECIALTY_NOT_FOUND",
            )

        return SpecialtyResponse.model_validate(dict(row))
