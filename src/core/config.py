"""
AccessWatch - Configuration Management
Centralized configuration using pydantic-settings.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_env: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    # Database (PostgreSQL + PostGIS). Unset means in-memory storage.
    database_url: Optional[str] = None

    # API Settings
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    cors_origins: str = "*"

    # Remote barrier classifier
    classifier_url: Optional[str] = None
    classifier_api_key: Optional[str] = None
    classifier_timeout_seconds: float = 60.0

    # Intake client
    api_base_url: str = "http://localhost:8000"
    max_upload_bytes: int = 20 * 1024 * 1024
    geolocation_timeout_seconds: float = 10.0
    analysis_timeout_seconds: float = 60.0
    jpeg_quality: float = 0.9

    @property
    def cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
