"""Patient-facing appointment endpoints."""

from datetime import date

from fastapi import APIRouter, BackgroundTasks, Query, status

from app.dependencies import CacheManagerDep, CurrentUser, DatabaseSession, Notifier
from app.schemas.appointments import (
    AppointmentCreate,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentStatus,
    AvailabilityResponse,
    CancellationResponse,
)
from app.schemas.non_working_days import BlockedDateListResponse
from app.schemas.specialties import SpecialtyListResponse
from app.services.appointment_service import AppointmentService, is_staff
from app.services.availability_service import AvailabilityService
from app.services.non_working_day_service import NonWorkingDayService
from app.services.specialty_service import SpecialtyService

router = APIRouter()


@router.get(
    "/available-slots",
    response_model=AvailabilityResponse,
    status_code=status.HTTP_200_OK,
    summary="Get available slots for a date",
)
async def get_available_slots(
    db: DatabaseSession,
    appointment_date: date = Query(..., alias="date"),
    specialty_id: int = Query(..., ge=1),
) -> AvailabilityResponse:
    """
    Resolve the bookable slots of a date for a specialty.

    Past dates are rejected; blocked dates and closed weekdays return an
    empty list with an explanatory message.
    """
    service = AvailabilityService(db)
    return await service.get_available_slots(appointment_date, specialty_id)


@router.get(
    "/specialties",
    response_model=SpecialtyListResponse,
    status_code=status.HTTP_200_OK,
    summary="List active specialties",
)
async def list_specialties(
    db: DatabaseSession,
    cache_manager: CacheManagerDep,
) -> SpecialtyListResponse:
    """List the treatments patients can book."""
    items = await SpecialtyService(db, cache_manager).list_active()
    return SpecialtyListResponse(items=items)


@router.get(
    "/non-working-days",
    response_model=BlockedDateListResponse,
    status_code=status.HTTP_200_OK,
    summary="List blocked dates",
)
async def list_blocked_dates(
    db: DatabaseSession,
    year: int | None = Query(None, ge=2000, le=2100),
    month: int | None = Query(None, ge=1, le=12),
) -> BlockedDateListResponse:
    """One entry per blocked date, for greying out calendar days."""
    blocked = await NonWorkingDayService(db).list_blocked_dates(year, month)
    return BlockedDateListResponse(blocked_dates=blocked)


@router.post(
    "",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Book an appointment",
)
async def create_appointment(
    data: AppointmentCreate,
    current_user: CurrentUser,
    db: DatabaseSession,
    notifier: Notifier,
    background_tasks: BackgroundTasks,
) -> AppointmentResponse:
    """
    Book a slot for the authenticated patient.

    A confirmation e-mail is sent after the response; its failure never
    affects the booking.

    Raises:
        HTTPException: 409 TIME_SLOT_TAKEN when the slot is already held
    """
    appointment = await AppointmentService(db).book_appointment(current_user["id"], data)
    background_tasks.add_task(notifier.send_confirmation, appointment)
    return appointment


@router.get(
    "",
    response_model=AppointmentListResponse,
    status_code=status.HTTP_200_OK,
    summary="List my appointments",
)
async def list_my_appointments(
    current_user: CurrentUser,
    db: DatabaseSession,
    status_filter: AppointmentStatus | None = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
) -> AppointmentListResponse:
    """List the authenticated patient's appointments, newest first."""
    filters = AppointmentFilters(
        status=status_filter,
        patient_id=current_user["id"],
        page=page,
        page_size=page_size,
    )
    return await AppointmentService(db).list_appointments(filters)


@router.get(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Get appointment by ID",
)
async def get_appointment(
    appointment_id: int,
    current_user: CurrentUser,
    db: DatabaseSession,
) -> AppointmentResponse:
    """
    Get a specific appointment by ID.

    Raises:
        HTTPException: If appointment not found or access denied
    """
    return await AppointmentService(db).get_for_user(appointment_id, current_user)


@router.put(
    "/{appointment_id}/cancel",
    response_model=CancellationResponse,
    status_code=status.HTTP_200_OK,
    summary="Cancel an appointment",
)
async def cancel_appointment(
    appointment_id: int,
    current_user: CurrentUser,
    db: DatabaseSession,
    notifier: Notifier,
    background_tasks: BackgroundTasks,
) -> CancellationResponse:
    """
    Cancel an appointment.

    Patients must cancel at least the configured number of hours ahead;
    staff may cancel at any time.
    """
    appointment = await AppointmentService(db).cancel_appointment(appointment_id, current_user)
    by_staff = is_staff(current_user)

    background_tasks.add_task(
        notifier.send_cancellation,
        appointment,
        None,
        by_staff,
    )
    return CancellationResponse(
        message="Appointment cancelled successfully",
        appointment=appointment,
    )
