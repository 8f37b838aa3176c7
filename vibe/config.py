"""
Application configuration using environment variables.
"""
import secrets
from functools import lru_cache
from pydantic import Field
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "Vibe API"
    debug: bool = False
    environment: str = "development"

    # Security
    secret_key: str = Field(default_factory=lambda: secrets.token_urlsafe(32))
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24  # 1 day
    refresh_token_expire_days: int = 30

    # Database
    database_url: str = "sqlite:///./vibe.db"

    # Media storage
    media_root: str = "./public"
    media_url_prefix: str = "/public"
    max_upload_mb: int = 100

    # Notifications
    notification_keepalive_seconds: float = 30.0

    # CORS
    cors_origins: List[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
    ]

    # Rate limiting
    login_rate_limit: str = "5/minute"
    register_rate_limit: str = "3/minute"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        env_prefix = "VIBE_"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def check_production_secret(settings: Settings) -> None:
    """Refuse to run in production on a generated secret key."""
    if settings.environment == "production" and "secret_key" not in settings.model_fields_set:
        raise ValueError(
            "VIBE_SECRET_KEY must be set in production! "
            "Generate one with: python -c \"import secrets; print(secrets.token_urlsafe(32))\""
        )


# Validate secret key on startup
check_production_secret(get_settings())
