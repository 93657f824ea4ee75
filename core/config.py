"""
Application settings and configuration management using Pydantic Settings.
"""
from typing import List
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Application Settings
    app_name: str = Field(default="Studio Booking", description="Application name")
    app_env: str = Field(default="development", description="Environment (development, staging, production)")
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="INFO", description="Logging level")
    api_v1_prefix: str = Field(default="/api/v1", description="Prefix for versioned API routes")

    # Database Configuration
    database_url: str = Field(
        default="sqlite:///./studio_booking.db",
        description="Database connection URL"
    )
    db_pool_size: int = Field(default=5, ge=1, description="Connection pool size")
    db_max_overflow: int = Field(default=10, ge=0, description="Connections allowed beyond pool size")
    db_busy_timeout_seconds: float = Field(default=30.0, gt=0, description="SQLite lock wait timeout")

    # Studio Configuration
    business_timezone: str = Field(default="Asia/Kolkata", description="Timezone all booking dates are interpreted in")

    # Booking Rules
    cancellation_window_hours: float = Field(
        default=0,
        ge=0,
        description="Minimum hours between cancellation and session start (0 disables the window)"
    )
    admission_max_attempts: int = Field(
        default=3,
        ge=1,
        description="Attempts made when an admission transaction hits a serialization failure"
    )

    # Twilio Configuration
    twilio_account_sid: str = Field(default="", description="Twilio Account SID")
    twilio_auth_token: str = Field(default="", description="Twilio Auth Token")
    twilio_whatsapp_number: str = Field(default="", description="Twilio WhatsApp-enabled sender number")
    whatsapp_country_code: str = Field(default="+91", description="Country code prefixed to 10-digit contact numbers")

    # CORS Settings
    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:8000",
        description="Allowed CORS origins (comma-separated)"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the allowed values."""
        allowed_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in allowed_levels:
            raise ValueError(f"log_level must be one of {allowed_levels}")
        return v_upper

    @field_validator("app_env")
    @classmethod
    def validate_app_env(cls, v: str) -> str:
        """Validate environment is one of the allowed values."""
        allowed_envs = ["development", "staging", "production"]
        v_lower = v.lower()
        if v_lower not in allowed_envs:
            raise ValueError(f"app_env must be one of {allowed_envs}")
        return v_lower

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string to list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.app_env == "development"

    @property
    def whatsapp_enabled(self) -> bool:
        """WhatsApp notifications need all three Twilio values."""
        return bool(
            self.twilio_account_sid
            and self.twilio_auth_token
            and self.twilio_whatsapp_number
        )


# Global settings instance
settings = Settings()
