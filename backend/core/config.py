"""
Configuration management for the canteen backend.

Values come from environment variables (or a local .env file). Secrets such as
the JWT key must be overridden outside development.
"""

from typing import List, Optional
from functools import lru_cache

from pydantic.v1 import BaseSettings, validator


DEFAULT_JWT_SECRET = "dev-secret-change-in-production"


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # Environment Settings
    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # Database Configuration
    database_url: str = "sqlite:///./canteen.db"
    auto_create_tables: bool = True

    # JWT Authentication - MUST be overridden in production
    jwt_secret_key: str = DEFAULT_JWT_SECRET
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = 60 * 24 * 30
    jwt_issuer: str = "canteen-api"

    cors_origins: List[str] = ["http://localhost:3000"]

    # Business Configuration
    business_timezone: str = "Asia/Kolkata"
    default_business_name: str = "Veer Canteen"
    default_upi_id: str = "default@paytm"
    invoice_prefix: str = "CAN"
    invoice_retry_attempts: int = 3
    low_stock_threshold: int = 5

    # Live order feed
    live_feed_poll_seconds: float = 3.0
    live_feed_update_window_seconds: float = 5.0

    # Reporting
    cron_secret: Optional[str] = None
    smtp_timeout_seconds: int = 30

    # Seed account
    admin_email: str = "admin@veer"
    admin_password: str = "admin@veer"
    admin_name: str = "Admin User"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False

    @validator("jwt_secret_key")
    def validate_jwt_secret(cls, v, values):
        """Ensure JWT secret is not using default in production."""
        if values.get("environment") == "production" and v == DEFAULT_JWT_SECRET:
            raise ValueError(
                "JWT_SECRET_KEY must be set to a secure value in production"
            )
        return v

    @validator("cors_origins", pre=True)
    def parse_cors_origins(cls, v):
        """Parse CORS origins from string or list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",")]
        return v

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Returns:
        Settings instance with environment variables loaded
    """
    return Settings()


settings = get_settings()
