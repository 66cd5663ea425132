"""Script to initialize the database with tables, specialties and an admin."""

import asyncio
import os
from decimal import Decimal

from sqlalchemy import insert, select

from app.core.redis_client import CacheManager, get_redis_client
from app.core.security import get_password_hash
from app.database import AsyncSessionLocal, engine
from app.models import metadata, specialties, users
from app.services.specialty_service import SpecialtyService

DEFAULT_SPECIALTIES = [
    ("General check-up", "Examination and diagnosis", 30, Decimal("15000")),
    ("Cleaning", "Scaling and polishing", 30, Decimal("20000")),
    ("Filling", "Composite restoration", 30, Decimal("30000")),
    ("Extraction", "Simple tooth extraction", 30, Decimal("35000")),
    ("Orthodontics", "Braces consultation and adjustment", 30, Decimal("40000")),
]


async def init_db() -> None:
    """Create all tables and seed reference data if missing."""
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)

    async with AsyncSessionLocal() as db:
        existing = set((await db.execute(select(specialties.c.name))).scalars().all())
        for name, description, duration, price in DEFAULT_SPECIALTIES:
            if name not in existing:
                await db.execute(
                    insert(specialties).values(
                        name=name,
                        description=description,
                        duration_minutes=duration,
                        price=price,
                    )
                )

        admin_email = os.getenv("ADMIN_EMAIL", "admin@example.com")
        admin = await db.execute(select(users.c.id).where(users.c.email == admin_email))
        if admin.first() is None:
            await db.execute(
                insert(users).values(
                    email=admin_email,
                    password_hash=get_password_hash(os.getenv("ADMIN_PASSWORD", "change-me-now")),
                    first_name="Clinic",
                    last_name="Admin",
                    role="admin",
                )
            )
            print(f"✓ Admin user created: {admin_email}")

        await db.commit()

    # New specialties must show up immediately
    CacheManager(get_redis_client()).delete(SpecialtyService.CACHE_KEY)

    await engine.dispose()
    print("✓ Database initialized successfully!")


if __name__ == "__main__":
    asyncio.run(init_db())
