"""Authentication schemas."""

from pydantic import BaseModel, EmailStr, Field

from app.schemas.users import UserResponse


class RegisterRequest(BaseModel):
    """Patient self-registration request."""

    email: EmailStr
    password: str = Field(..., min_length=8, max_length=72)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone: str | None = Field(None, min_length=7, max_length=20)


class LoginRequest(BaseModel):
    """Email and password login request."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=72)


class LoginResponse(BaseModel):
    """Login response with access token and user info."""

    access_token: str
    token_type: str = "bearer"
    user: UserResponse
