"""User profile endpoints."""

from fastapi import APIRouter

from app.dependencies import CurrentUser, DatabaseSession
from app.schemas.users import UserProfile, UserProfileUpdate
from app.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/{user_id}/profile", response_model=UserProfile)
async def get_user_profile(
    user_id: int,
    db: DatabaseSession,
    current_user: CurrentUser,
) -> UserProfile:
    """
    Get a profile. Patients may only read their own; staff read any.

    Patient profiles include appointment counts and the latest visit date.
    """
    return await UserService(db).get_profile(user_id, current_user)


@router.put("/{user_id}/profile", response_model=UserProfile)
async def update_user_profile(
    user_id: int,
    data: UserProfileUpdate,
    db: DatabaseSession,
    current_user: CurrentUser,
) -> UserProfile:
    """Update name or phone on the caller's profile (staff may edit any)."""
    return await UserService(db).update_profile(user_id, data, current_user)
