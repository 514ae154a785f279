"""Application configuration settings."""

import os
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


def _get_default_database_url() -> str:
    """Get the default database URL, using a mounted volume path if available."""
    if os.path.isdir("/data"):
        return "sqlite:////data/meter_reader.db"
    return "sqlite:///./meter_reader.db"


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    PROJECT_NAME: str = "Meter Reader"
    VERSION: str = "0.1.0"
    ENVIRONMENT: str = "development"  # development | production | test
    HOST: str = "0.0.0.0"
    PORT: int = 5001

    # Database - defaults to volume path if /data exists
    DATABASE_URL: str = _get_default_database_url()
    DB_RETRY_DELAY_SECONDS: float = 5.0

    # JWT Authentication
    SECRET_KEY: str = "your-secret-key-change-this-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 30  # 30 days

    # CORS
    ALLOWED_ORIGINS: list[str] = ["http://localhost:19006"]

    # Photo uploads
    MAX_FILE_UPLOAD: int = 10  # megabytes
    UPLOAD_DIR: Path = Path("uploads")

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: Path | None = None

    # Rate limiting on /api, 0 disables it
    RATE_LIMIT_MAX: int = 100
    RATE_LIMIT_WINDOW_SECONDS: int = 60 * 60

    # Geocoding
    GEOCODER_PROVIDER: str = "static"  # static | nominatim
    GEOCODER_URL: str = "https://nominatim.openstreetmap.org/search"
    GEOCODER_TIMEOUT_SECONDS: float = 10.0

    SHUTDOWN_TIMEOUT: int = 10

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.ENVIRONMENT == "production"

    def public_dict(self) -> dict[str, object]:
        """Settings safe to write to the log."""
        return self.model_dump(exclude={"SECRET_KEY"}, mode="json")


settings = Settings()
