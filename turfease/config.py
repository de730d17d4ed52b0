"""Application configuration management."""
from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from sqlalchemy.engine.url import make_url, URL
from typing import Optional
import logging

SQLITE_LOCAL_URL = "sqlite+aiosqlite:///./turfease.db"
DEFAULT_SECRET_KEY = "dev-secret-key-change-in-production"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str = SQLITE_LOCAL_URL
    db_pool_size: int = 5
    db_max_overflow: int = 10
    db_command_timeout_seconds: int = 30

    # Redis (optional, falls back to in-memory)
    redis_url: str = ""
    redis_timeout_seconds: float = 5.0

    # Application
    environment: str = "development"
    frontend_url: str = "http://localhost:3000"
    allowed_origins: str = "http://localhost:3000,http://localhost:3001"
    secret_key: str = DEFAULT_SECRET_KEY
    jwt_algorithm: str = "HS256"
    access_token_exp_minutes: int = 120  # Access tokens valid for 2 hours
    refresh_token_exp_days: int = 30

    # Email verification
    otp_length: int = 6
    otp_ttl_minutes: int = 10
    password_reset_ttl_minutes: int = 30

    # Email delivery (Resend first, SMTP second, console in development)
    email_from_address: str = "TurfEase <no-reply@turfease.app>"
    resend_api_key: str = ""
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    smtp_use_tls: bool = True
    email_timeout_seconds: int = 15

    # Firebase (federated sign-in)
    firebase_project_id: str = ""
    firebase_credentials_path: str = ""
    firebase_timeout_seconds: int = 10

    # Cloudinary (turf images)
    cloudinary_cloud_name: str = ""
    cloudinary_api_key: str = ""
    cloudinary_api_secret: str = ""
    upload_timeout_seconds: int = 30
    upload_max_bytes: int = 5 * 1024 * 1024
    upload_max_files: int = 5

    # Listings
    nearby_default_distance_m: int = 10000
    turfs_page_size: int = 25
    admin_page_size: int = 10

    # Rate limiting (enforced in production only)
    auth_rate_limit: int = 20
    auth_rate_limit_window_seconds: int = 15 * 60

    @property
    def cors_origins(self) -> list[str]:
        """Split the comma-separated origin list."""
        return [item.strip() for item in self.allowed_origins.split(",") if item.strip()]

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def cloudinary_configured(self) -> bool:
        return bool(self.cloudinary_cloud_name and self.cloudinary_api_key and self.cloudinary_api_secret)

    @model_validator(mode="after")
    def validate_all_config(self):
        """Validate security configuration and normalize Postgres URLs."""
        logger = logging.getLogger(__name__)

        if self.environment == "production":
            if self.secret_key == DEFAULT_SECRET_KEY:
                raise ValueError("secret_key must be changed from default value in production")

        if self.jwt_algorithm not in ["HS256", "HS384", "HS512"]:
            raise ValueError(f"Unsupported JWT algorithm: {self.jwt_algorithm}. Use HS256, HS384, or HS512.")

        if self.access_token_exp_minutes < 1 or self.access_token_exp_minutes > 1440:  # 1 min to 24 hours
            raise ValueError("access_token_exp_minutes must be between 1 and 1440 (24 hours)")

        if self.refresh_token_exp_days < 1 or self.refresh_token_exp_days > 365:
            raise ValueError("refresh_token_exp_days must be between 1 and 365 days")

        if self.otp_length < 4 or self.otp_length > 10:
            raise ValueError("otp_length must be between 4 and 10 digits")

        if self.otp_ttl_minutes < 1:
            raise ValueError("otp_ttl_minutes must be at least 1 minute")

        url = self.database_url
        if not url:
            logger.warning("Empty DATABASE_URL, using SQLite fallback")
            self.database_url = SQLITE_LOCAL_URL
            return self

        parsed: Optional[URL] = None
        try:
            parsed = make_url(url)
        except Exception as e:  # pragma: no cover
            logger.error(f"Failed to parse DATABASE_URL: {e}")
            self.database_url = SQLITE_LOCAL_URL
            return self

        drivername = parsed.drivername
        if drivername.startswith("postgres") and "+asyncpg" not in drivername:
            parsed = parsed.set(drivername="postgresql+asyncpg")
            logger.info(f"Driver normalized: {drivername} -> {parsed.drivername}")
        # render_as_string re-encodes special characters in the password
        self.database_url = parsed.render_as_string(hide_password=False)

        return self

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
