import os
from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import date, time
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from dotenv import load_dotenv
from httpx import ASGITransport, AsyncClient
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

# Load environment variables from .env file
load_dotenv()

# Settings are read at import time; these must be set before importing app
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test_dental_clinic.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-not-for-production")
os.environ["EMAIL_ENABLED"] = "false"
os.environ["REMINDERS_ENABLED"] = "false"
os.environ["REMINDER_SEND_DELAY_SECONDS"] = "0"

from app.config import settings  # noqa: E402
from app.core.security import create_user_token, get_password_hash  # noqa: E402
from app.database import get_db  # noqa: E402
from app.dependencies import get_cache_manager  # noqa: E402
from app.main import app  # noqa: E402
from app.models import appointments, metadata, specialties, users  # noqa: E402
from app.services.notification_service import EmailResult, get_notification_service  # noqa: E402
from tests.utils import MONDAY, future_weekday  # noqa: E402

# Test database URL - MUST be different from production
TEST_DATABASE_URL = os.getenv(
    "TEST_DATABASE_URL",
    "sqlite+aiosqlite:///./test_dental_clinic.db",
)
TEST_DATABASE_URL = TEST_DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://")

if TEST_DATABASE_URL.startswith("postgresql") and TEST_DATABASE_URL == settings.database_url:
    raise RuntimeError("TEST_DATABASE_URL must not point at the application database")

# NullPool avoids event loop issues between tests
test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)

TestSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session on fresh tables."""
    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
        await conn.run_sync(metadata.create_all)

    async with TestSessionLocal() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)


@pytest.fixture
def notifier() -> MagicMock:
    """Notification sender that records calls instead of sending e-mail."""
    sent = EmailResult(success=True, message_id="<test@example.com>")
    mock = MagicMock()
    mock.send_confirmation = AsyncMock(return_value=sent)
    mock.send_cancellation = AsyncMock(return_value=sent)
    mock.send_reminder = AsyncMock(return_value=sent)
    mock.notify_cancellations = AsyncMock(return_value=0)
    return mock


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession,
    notifier: MagicMock,
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache_manager] = lambda: None
    app.dependency_overrides[get_notification_service] = lambda: notifier

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


async def _create_user(db: AsyncSession, email: str, role: str, first_name: str) -> dict:
    result = await db.execute(
        insert(users)
        .values(
            email=email,
            password_hash=get_password_hash("password123"),
            first_name=first_name,
            last_name="Tester",
            phone="+5491112345678",
            role=role,
        )
        .returning(users)
    )
    await db.commit()
    return dict(result.mappings().one())


@pytest_asyncio.fixture
async def patient_user(db_session: AsyncSession) -> dict:
    """Create a patient in the database."""
    return await _create_user(db_session, "patient@example.com", "patient", "Ana")


@pytest_asyncio.fixture
async def other_patient(db_session: AsyncSession) -> dict:
    """A second patient."""
    return await _create_user(db_session, "other@example.com", "patient", "Bruno")


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession) -> dict:
    """Create a clinic admin in the database."""
    return await _create_user(db_session, "admin@example.com", "admin", "Clara")


@pytest.fixture
def auth_headers(patient_user: dict) -> dict:
    """Bearer headers for the patient."""
    return {"Authorization": f"Bearer {create_user_token(patient_user)}"}


@pytest.fixture
def other_headers(other_patient: dict) -> dict:
    """Bearer headers for the second patient."""
    return {"Authorization": f"Bearer {create_user_token(other_patient)}"}


@pytest.fixture
def admin_headers(admin_user: dict) -> dict:
    """Bearer headers for the admin."""
    return {"Authorization": f"Bearer {create_user_token(admin_user)}"}


@pytest_asyncio.fixture
async def specialty(db_session: AsyncSession) -> dict:
    """An active specialty."""
    result = await db_session.execute(
        insert(specialties)
        .values(name="Cleaning", description="Scaling and polishing", duration_minutes=30, price=20000)
        .returning(specialties)
    )
    await db_session.commit()
    return dict(result.mappings().one())


@pytest.fixture
def booking_date() -> date:
    """A bookable Monday well in the future."""
    return future_weekday(MONDAY)


AppointmentFactory = Callable[..., Awaitable[int]]


@pytest.fixture
def make_appointment(db_session: AsyncSession, specialty: dict) -> AppointmentFactory:
    """Insert an appointment row directly, bypassing the booking rules."""

    async def factory(
        patient_id: int,
        appointment_date: date,
        appointment_time: time,
        status: str = "confirmed",
        **values,
    ) -> int:
        result = await db_session.execute(
            insert(appointments)
            .values(
                patient_id=patient_id,
                specialty_id=specialty["id"],
                appointment_date=appointment_date,
                appointment_time=appointment_time,
                status=status,
                **values,
            )
            .returning(appointments.c.id)
        )
        await db_session.commit()
        return result.scalar_one()

    return factory

