from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables with validation."""

    model_config = SettingsConfigDict(
        env_file=(str(Path(__file__).resolve().parents[1] / ".env"), ".env"),
        env_file_encoding="utf-8",
        case_sensitive=True,
        env_ignore_empty=True,
        extra="ignore",
    )

    app_name: str = Field(default="SwapStation API", alias="APP_NAME")
    app_env: Literal["development", "staging", "production", "test"] = Field(
        default="development",
        alias="APP_ENV",
    )
    app_debug: bool = Field(default=False, alias="APP_DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    secret_key: SecretStr = Field(
        default=SecretStr("change-me-in-production"),
        alias="SECRET_KEY",
    )
    token_ttl_minutes: int = Field(default=60 * 12, ge=1, alias="TOKEN_TTL_MINUTES")
    password_hash_iterations: int = Field(default=210000, ge=1000, alias="PASSWORD_HASH_ITERATIONS")
    password_reset_url: str = Field(
        default="http://localhost:5173/reset-password",
        alias="PASSWORD_RESET_URL",
    )
    password_reset_ttl_minutes: int = Field(default=30, ge=1, alias="PASSWORD_RESET_TTL_MINUTES")
    verification_code_ttl_minutes: int = Field(default=10, ge=1, alias="VERIFICATION_CODE_TTL_MINUTES")
    require_email_verification: bool = Field(default=True, alias="REQUIRE_EMAIL_VERIFICATION")

    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173"],
        alias="CORS_ORIGINS",
    )

    database_url: str = Field(
        default="sqlite:///./swapstation.db",
        alias="DATABASE_URL",
    )
    db_pool_size: int = Field(default=10, ge=1, le=100, alias="DB_POOL_SIZE")
    db_max_overflow: int = Field(default=20, ge=0, le=200, alias="DB_MAX_OVERFLOW")
    seed_demo_data: bool = Field(default=True, alias="SEED_DEMO_DATA")

    app_timezone: str = Field(default="Asia/Ho_Chi_Minh", alias="APP_TIMEZONE")
    booking_window_minutes: int = Field(default=15, ge=1, le=240, alias="BOOKING_WINDOW_MINUTES")
    reservation_sweep_cron: str = Field(default="* * * * *", alias="RESERVATION_SWEEP_CRON")
    reservation_sweeper_enabled: bool = Field(default=True, alias="RESERVATION_SWEEPER_ENABLED")

    kiosk_idle_timeout_seconds: int = Field(default=120, ge=1, alias="KIOSK_IDLE_TIMEOUT_SECONDS")
    kiosk_complete_return_seconds: int = Field(default=30, ge=1, alias="KIOSK_COMPLETE_RETURN_SECONDS")
    kiosk_step_time_scale: float = Field(default=1.0, ge=0.0, le=10.0, alias="KIOSK_STEP_TIME_SCALE")

    # Client side (swapstation.client)
    api_base_url: Optional[str] = Field(default=None, alias="API_BASE_URL")
    use_mock_api: Optional[bool] = Field(default=None, alias="USE_MOCK_API")
    api_timeout_seconds: float = Field(default=10.0, gt=0, alias="API_TIMEOUT_SECONDS")
    auth_store_path: str = Field(
        default=str(Path.home() / ".swapstation" / "auth.json"),
        alias="AUTH_STORE_PATH",
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, value: str | list[str]) -> list[str]:
        """Support comma-separated CORS origins from environment variables."""
        if isinstance(value, str):
            if not value.strip():
                return []
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, value: str) -> str:
        """Validate database URL is a PostgreSQL or SQLite SQLAlchemy connection string."""
        lowered = value.lower()
        if not lowered.startswith(("postgresql://", "postgresql+psycopg2://", "sqlite://")):
            raise ValueError(
                "DATABASE_URL must start with postgresql://, postgresql+psycopg2:// or sqlite://"
            )
        return value

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        return value.strip().upper() or "INFO"

    @field_validator("api_base_url")
    @classmethod
    def strip_base_url(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        return value.strip().rstrip("/")

    @property
    def mock_api_enabled(self) -> bool:
        """Mock (in-process) API unless explicitly disabled with a base URL configured."""
        if self.use_mock_api is False:
            return False
        return self.api_base_url is None or self.use_mock_api is True


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""
    return Settings()


settings: Settings = get_settings()
