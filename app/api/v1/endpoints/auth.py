"""Authentication endpoints."""

from fastapi import APIRouter, status

from app.dependencies import CurrentUser, DatabaseSession
from app.schemas.auth import LoginRequest, LoginResponse, RegisterRequest
from app.schemas.users import UserResponse
from app.services.auth_service import AuthService

router = APIRouter()


@router.post(
    "/register",
    response_model=LoginResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a patient account",
)
async def register(data: RegisterRequest, db: DatabaseSession) -> LoginResponse:
    """
    Create a patient account and return an access token for it.

    Raises:
        HTTPException: 409 if the e-mail is already registered
    """
    return await AuthService(db).register(data)


@router.post(
    "/login",
    response_model=LoginResponse,
    status_code=status.HTTP_200_OK,
    summary="Log in with e-mail and password",
)
async def login(data: LoginRequest, db: DatabaseSession) -> LoginResponse:
    """Exchange credentials for a bearer token."""
    return await AuthService(db).login(data)


@router.get(
    "/me",
    response_model=UserResponse,
    status_code=status.HTTP_200_OK,
    summary="Get current user",
)
async def get_me(current_user: CurrentUser) -> UserResponse:
    """Return the authenticated user's profile."""
    return UserResponse.model_validate(current_user)
