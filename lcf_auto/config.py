"""
Configuration settings for the LCF Auto Performance backend.
Uses Pydantic for type-safe configuration management.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "LCF Auto Performance"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"

    # Database (an empty URL means the store is not configured)
    database_url: str = "postgresql+asyncpg://lcf_user:lcf_pass@db:5432/lcf_db"

    # Security
    secret_key: str = "your-secret-key-change-this-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 1440  # 24 hours

    # Seed administrator created by init_db
    admin_email: str = "admin@lcf-auto.fr"
    admin_password: str = "Admin@123"

    # CORS
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:8000"]

    # API
    api_v1_prefix: str = "/api/v1"

    # Loyalty
    default_history_limit: int = 50

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
