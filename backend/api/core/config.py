"""Application configuration using Pydantic Settings"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    model_config = SettingsConfigDict(
        env_file=Path(__file__).parent.parent.parent / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = Field(..., description="PostgreSQL database URL")

    # JWT Configuration (Supabase access tokens)
    jwt_secret_key: str = Field(..., description="Secret key for JWT token verification")
    jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm")
    jwt_audience: str = Field(default="authenticated", description="Expected JWT audience")

    # Scheduler trigger
    cron_secret: str = Field(default="", description="Bearer secret for the cron endpoint")
    allow_cron_test_mode: bool = Field(
        default=False, description="Honour X-Test-Mode on the cron endpoint"
    )

    # WhatsApp gateway
    whatsapp_api_endpoint: str = Field(
        default="https://ustazai.my/", description="WhatsApp gateway base URL"
    )
    gateway_timeout: float = Field(default=15.0, description="Gateway request timeout (s)")
    country_code: str = Field(default="60", description="Default phone country code")

    # Birthday automation
    automation_message_delay: float = Field(
        default=1.0, description="Pause between automated sends (s)"
    )
    bulk_message_delay: float = Field(default=0.5, description="Pause between bulk sends (s)")
    automation_timezone: str = Field(
        default="Asia/Kuala_Lumpur", description="Timezone defining 'today'"
    )
    send_window_minutes: int = Field(
        default=1, description="Tolerance after a tenant's send time in scheduled mode"
    )
    max_reported_errors: int = Field(default=50, description="Errors kept in a run report")

    # Server URLs
    frontend_url: str = Field(default="http://localhost:3000", description="Frontend URL for CORS")

    # Environment
    environment: str = Field(default="development", description="Environment name")
    log_level: str = Field(default="INFO", description="Logging level")

    # Server Configuration
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a valid logging level"""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            logger.warning(f"Invalid log level '{v}', defaulting to INFO")
            return "INFO"
        return v_upper

    @field_validator("whatsapp_api_endpoint")
    @classmethod
    def ensure_trailing_slash(cls, v: str) -> str:
        return v if v.endswith("/") else v + "/"

    @property
    def cors_origins(self) -> list[str]:
        """Get CORS allowed origins"""
        return [self.frontend_url]

    @property
    def is_production(self) -> bool:
        """Check if running in production environment"""
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment"""
        return self.environment.lower() == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()  # type: ignore[call-arg]
