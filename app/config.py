"""Application configuration."""

from datetime import time
from functools import lru_cache

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SchedulePeriod(BaseModel):
    """Opening period of the clinic for one weekday."""

    start: time
    end: time
    # Last time a visit may start; defaults to the closing time
    last_slot: time | None = None

    @model_validator(mode="after")
    def validate_bounds(self) -> "SchedulePeriod":
        """Ensure start <= last bookable slot <= end."""
        if self.end <= self.start:
            raise ValueError("Period end must be after its start")
        cutoff = self.last_slot or self.end
        if not self.start <= cutoff <= self.end:
            raise ValueError("Last bookable slot must fall inside the period")
        return self

    @property
    def cutoff(self) -> time:
        """Last bookable slot time."""
        return self.last_slot or self.end


def default_clinic_schedule() -> dict[int, list[SchedulePeriod]]:
    """Weekly hours keyed by weekday index (0=Sunday .. 6=Saturday)."""
    morning = {"start": "09:00", "end": "12:30", "last_slot": "12:00"}
    evening = {"start": "15:00", "end": "21:00", "last_slot": "20:30"}
    return {
        1: [SchedulePeriod(**morning)],
        2: [SchedulePeriod(**evening)],
        3: [SchedulePeriod(**morning)],
        4: [SchedulePeriod(**evening)],
        5: [SchedulePeriod(**morning)],
    }


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_parse_none_str="null",
    )

    # Application
    app_name: str = Field(default="Dental Clinic API", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    environment: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")
    api_v1_prefix: str = Field(default="/api/v1", alias="API_V1_PREFIX")

    # Server
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000, alias="PORT")
    reload: bool = Field(default=False, alias="RELOAD")

    # Database
    database_url: str = Field(..., alias="DATABASE_URL")

    # Redis
    redis_host: str = Field(default="localhost", alias="REDIS_HOST")
    redis_port: int = Field(default=6379, alias="REDIS_PORT")
    redis_username: str = Field(default="default", alias="REDIS_USERNAME")
    redis_password: str = Field(default="", alias="REDIS_PASSWORD")
    redis_decode_responses: bool = Field(default=True, alias="REDIS_DECODE_RESPONSES")
    cache_key_prefix: str = Field(default="dental:", alias="CACHE_KEY_PREFIX")
    cache_ttl_seconds: int = Field(default=600, ge=1, alias="CACHE_TTL_SECONDS")

    # JWT
    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(default=60 * 24, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    # CORS
    cors_origins_str: str = Field(
        default="http://localhost:3000",
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")

    @property
    def cors_origins(self) -> list[str]:
        """Get CORS origins as a list."""
        if isinstance(self.cors_origins_str, str):
            return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]
        return [self.cors_origins_str]

    # Clinic schedule
    clinic_timezone: str = Field(
        default="America/Argentina/Buenos_Aires",
        alias="CLINIC_TIMEZONE",
        description="IANA zone used for 'today' and cancellation cutoffs",
    )
    clinic_schedule: dict[int, list[SchedulePeriod]] = Field(
        default_factory=default_clinic_schedule,
        alias="CLINIC_SCHEDULE",
        description="JSON object mapping weekday index (0=Sunday) to opening periods",
    )
    slot_minutes: int = Field(default=30, gt=0, alias="SLOT_MINUTES")

    # Booking rules
    max_confirmed_appointments: int = Field(default=3, ge=1, alias="MAX_CONFIRMED_APPOINTMENTS")
    cancellation_cutoff_hours: int = Field(default=2, ge=0, alias="CANCELLATION_CUTOFF_HOURS")
    max_block_range_days: int = Field(default=365, ge=1, alias="MAX_BLOCK_RANGE_DAYS")

    # Email
    email_enabled: bool = Field(default=False, alias="EMAIL_ENABLED")
    smtp_host: str = Field(default="smtp.gmail.com", alias="SMTP_HOST")
    smtp_port: int = Field(default=587, alias="SMTP_PORT")
    smtp_username: str = Field(default="", alias="SMTP_USERNAME")
    smtp_password: str = Field(default="", alias="SMTP_PASSWORD")
    smtp_use_tls: bool = Field(default=True, alias="SMTP_USE_TLS")
    smtp_timeout: int = Field(default=10, alias="SMTP_TIMEOUT")
    email_from_name: str = Field(default="Dental Clinic", alias="EMAIL_FROM_NAME")
    email_from_address: str = Field(default="no-reply@dental-clinic.local", alias="EMAIL_FROM")

    # Reminders
    reminders_enabled: bool = Field(default=True, alias="REMINDERS_ENABLED")
    reminder_24h_interval_seconds: int = Field(default=3600, alias="REMINDER_24H_INTERVAL_SECONDS")
    reminder_2h_interval_seconds: int = Field(default=900, alias="REMINDER_2H_INTERVAL_SECONDS")
    reminder_send_delay_seconds: float = Field(default=1.0, ge=0, alias="REMINDER_SEND_DELAY_SECONDS")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="json", alias="LOG_FORMAT")

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment.lower() == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()  # type: ignore[call-arg]


# Global settings instance
settings = get_settings()
