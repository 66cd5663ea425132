"""Admin-only endpoints for clinic staff."""

from datetime import date

from fastapi import APIRouter, BackgroundTasks, Query, status

from app.dependencies import AdminUser, DatabaseSession, Notifier
from app.schemas.appointments import (
    AdminAppointmentCreate,
    AdminAppointmentUpdate,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentStatus,
    AppointmentStatusUpdate,
    ReminderRequest,
    ReminderSendResponse,
    ReminderStatsResponse,
)
from app.schemas.non_working_days import (
    NonWorkingDayCreate,
    NonWorkingDayCreatedResponse,
    NonWorkingDayListResponse,
    NonWorkingRangeCreate,
    NonWorkingRangeCreatedResponse,
)
from app.schemas.users import UserListResponse, UserResponse, UserRole, UserStatusUpdate
from app.services.appointment_service import AppointmentService
from app.services.non_working_day_service import NonWorkingDayService
from app.services.reminder_service import ReminderService
from app.services.user_service import UserService

router = APIRouter(prefix="/admin", tags=["Admin"])


# Appointments


@router.get(
    "/appointments",
    response_model=AppointmentListResponse,
    summary="List all appointments (admin only)",
)
async def list_appointments(
    db: DatabaseSession,
    admin_user: AdminUser,
    status_filter: AppointmentStatus | None = Query(None, alias="status"),
    patient_id: int | None = Query(None, ge=1),
    from_date: date | None = Query(None),
    to_date: date | None = Query(None),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(20, ge=1, le=100, description="Items per page"),
) -> AppointmentListResponse:
    """
    Get paginated list of all appointments with filtering.

    Requires admin role.
    """
    filters = AppointmentFilters(
        status=status_filter,
        patient_id=patient_id,
        from_date=from_date,
        to_date=to_date,
        page=page,
        page_size=page_size,
    )
    return await AppointmentService(db).list_appointments(filters)


@router.post(
    "/appointments",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Book an appointment for a patient",
)
async def create_appointment(
    data: AdminAppointmentCreate,
    db: DatabaseSession,
    admin_user: AdminUser,
    notifier: Notifier,
    background_tasks: BackgroundTasks,
) -> AppointmentResponse:
    """
    Book on behalf of a patient.

    Runs the same slot checks as patient booking, without the cap on
    confirmed appointments.
    """
    appointment = await AppointmentService(db).book_for_patient(
        data.patient_id,
        data,
        status=AppointmentStatus(data.status.value),
    )
    background_tasks.add_task(notifier.send_confirmation, appointment)
    return appointment


@router.get(
    "/appointments/{appointment_id}",
    response_model=AppointmentResponse,
    summary="Get any appointment",
)
async def get_appointment(
    appointment_id: int,
    db: DatabaseSession,
    admin_user: AdminUser,
) -> AppointmentResponse:
    """Get an appointment with patient and specialty details."""
    return await AppointmentService(db).get_appointment(appointment_id)


@router.put(
    "/appointments/{appointment_id}",
    response_model=AppointmentResponse,
    summary="Update an appointment",
)
async def update_appointment(
    appointment_id: int,
    data: AdminAppointmentUpdate,
    db: DatabaseSession,
    admin_user: AdminUser,
    notifier: Notifier,
    background_tasks: BackgroundTasks,
) -> AppointmentResponse:
    """
    Update any field of an appointment.

    Moving it re-checks the target slot; cancelling it here counts as a
    clinic cancellation and e-mails the patient.
    """
    appointment, cancelled = await AppointmentService(db).update_appointment(appointment_id, data)
    if cancelled:
        background_tasks.add_task(notifier.send_cancellation, appointment, data.notes, True)
    return appointment


@router.patch(
    "/appointments/{appointment_id}/status",
    response_model=AppointmentResponse,
    summary="Change appointment status",
)
async def update_appointment_status(
    appointment_id: int,
    data: AppointmentStatusUpdate,
    db: DatabaseSession,
    admin_user: AdminUser,
    notifier: Notifier,
    background_tasks: BackgroundTasks,
) -> AppointmentResponse:
    """Set the status, e.g. mark an appointment completed or no-show."""
    changes = AdminAppointmentUpdate(status=data.status, notes=data.notes)
    appointment, cancelled = await AppointmentService(db).update_appointment(appointment_id, changes)
    if cancelled:
        background_tasks.add_task(notifier.send_cancellation, appointment, data.notes, True)
    return appointment


@router.delete(
    "/appointments/{appointment_id}",
    status_code=status.HTTP_200_OK,
    summary="Delete an appointment",
)
async def delete_appointment(
    appointment_id: int,
    db: DatabaseSession,
    admin_user: AdminUser,
) -> dict[str, str]:
    """Permanently delete an appointment. No e-mail is sent."""
    await AppointmentService(db).delete_appointment(appointment_id)
    return {"message": "Appointment deleted successfully"}


# Reminders


@router.post(
    "/appointments/{appointment_id}/send-reminder",
    response_model=ReminderSendResponse,
    summary="Send a reminder now",
)
async def send_reminder(
    appointment_id: int,
    data: ReminderRequest,
    db: DatabaseSession,
    admin_user: AdminUser,
    notifier: Notifier,
) -> ReminderSendResponse:
    """Send a 24h or 2h reminder immediately, regardless of timing."""
    return await ReminderService(db, notifier).send_manual_reminder(appointment_id, data.type)


@router.get(
    "/reminders/stats",
    response_model=ReminderStatsResponse,
    summary="Reminder statistics",
)
async def reminder_stats(
    db: DatabaseSession,
    admin_user: AdminUser,
) -> ReminderStatsResponse:
    """Reminder counters over upcoming active appointments."""
    return await ReminderService(db).get_stats()


# Non-working days


@router.get(
    "/non-working-days",
    response_model=NonWorkingDayListResponse,
    summary="List blocked days and periods",
)
async def list_non_working_days(
    db: DatabaseSession,
    admin_user: AdminUser,
    year: int | None = Query(None, ge=2000, le=2100),
    month: int | None = Query(None, ge=1, le=12),
) -> NonWorkingDayListResponse:
    """List stored blocks, optionally only those touching a year or month."""
    items = await NonWorkingDayService(db).list_blocks(year, month)
    return NonWorkingDayListResponse(items=items)


@router.post(
    "/non-working-days",
    response_model=NonWorkingDayCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Block a single date",
)
async def block_day(
    data: NonWorkingDayCreate,
    db: DatabaseSession,
    admin_user: AdminUser,
    notifier: Notifier,
    background_tasks: BackgroundTasks,
) -> NonWorkingDayCreatedResponse:
    """
    Block a date and cancel the appointments booked on it.

    Each affected patient gets a cancellation e-mail after the response.
    """
    block, cancelled = await NonWorkingDayService(db).block_day(data)
    if cancelled:
        background_tasks.add_task(notifier.notify_cancellations, cancelled, data.reason)

    return NonWorkingDayCreatedResponse(
        message="Non-working day created successfully",
        non_working_day=block,
        cancelled_appointments=len(cancelled),
    )


@router.post(
    "/non-working-days/range",
    response_model=NonWorkingRangeCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Block a date range",
)
async def block_range(
    data: NonWorkingRangeCreate,
    db: DatabaseSession,
    admin_user: AdminUser,
    notifier: Notifier,
    background_tasks: BackgroundTasks,
) -> NonWorkingRangeCreatedResponse:
    """Block an inclusive range, e.g. holidays, and cancel what falls inside."""
    block, dates, cancelled = await NonWorkingDayService(db).block_range(data)
    if cancelled:
        background_tasks.add_task(notifier.notify_cancellations, cancelled, data.reason)

    return NonWorkingRangeCreatedResponse(
        message="Non-working period created successfully",
        non_working_day=block,
        total_days=len(dates),
        cancelled_appointments=len(cancelled),
        blocked_dates=dates,
    )


@router.delete(
    "/non-working-days/{block_id}",
    status_code=status.HTTP_200_OK,
    summary="Remove a block",
)
async def unblock(
    block_id: int,
    db: DatabaseSession,
    admin_user: AdminUser,
) -> dict[str, str]:
    """Remove a block. Appointments it cancelled are not restored."""
    await NonWorkingDayService(db).unblock(block_id)
    return {"message": "Non-working day deleted successfully"}


# Users


@router.get(
    "/users",
    response_model=UserListResponse,
    summary="List all users (admin only)",
)
async def list_users(
    db: DatabaseSession,
    admin_user: AdminUser,
    role: UserRole | None = Query(None, description="Filter by role"),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(20, ge=1, le=100, description="Items per page"),
) -> UserListResponse:
    """Get paginated list of users."""
    return await UserService(db).list_users(role, page, page_size)


@router.patch(
    "/users/{user_id}/status",
    response_model=UserResponse,
    summary="Activate or deactivate a user",
)
async def set_user_status(
    user_id: int,
    data: UserStatusUpdate,
    db: DatabaseSession,
    admin_user: AdminUser,
) -> UserResponse:
    """Toggle whether a user may log in."""
    return await UserService(db).set_active(user_id, data.is_active, admin_user["id"])
