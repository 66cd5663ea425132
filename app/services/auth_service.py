"""Authentication service for password login and JWT issuance."""

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictException, ForbiddenException, UnauthorizedException
from app.core.security import create_user_token, get_password_hash, verify_password
from app.schemas.auth import LoginRequest, LoginResponse, RegisterRequest
from app.schemas.users import UserResponse, UserRole
from app.services.user_service import UserService

logger = structlog.get_logger(__name__)


class AuthService:
    """Registers patients and exchanges credentials for access tokens."""

    def __init__(self, db: AsyncSession):
        """Initialize auth service with database session."""
        self.db = db
        self.users = UserService(db)

    async def register(self, data: RegisterRequest) -> LoginResponse:
        """
        Create a patient account and log it in.

        Raises:
            ConflictException: If the e-mail is already registered
        """
        email = data.email.lower()
        if await self.users.get_user_by_email(email):
            raise ConflictException("This e-mail is already registered", code="EMAIL_TAKEN")

        user = await self.users.create_user(
            email=email,
            password_hash=get_password_hash(data.password),
            first_name=data.first_name,
            last_name=data.last_name,
            phone=data.phone,
            role=UserRole.PATIENT,
        )
        logger.info("user_registered", user_id=user["id"])
        return self._login_response(user)

    async def login(self, data: LoginRequest) -> LoginResponse:
        """
        Verify credentials and issue an access token.

        Raises:
            UnauthorizedException: If the credentials are wrong
            ForbiddenException: If the account is deactivated
        """
        user = await self.users.get_user_by_email(data.email.lower())
        if not user or not verify_password(data.password, user["password_hash"]):
            logger.info("login_failed", email=data.email)
            raise UnauthorizedException("Invalid e-mail or password")

        if not user["is_active"]:
            raise ForbiddenException("User account is deactivated")

        logger.info("user_logged_in", user_id=user["id"])
        return self._login_response(user)

    @staticmethod
    def _login_response(user: dict) -> LoginResponse:
        return LoginResponse(
            access_token=create_user_token(user),
            user=UserResponse.model_validate(user),
        )
