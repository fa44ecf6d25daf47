"""
Core settings and environment variables for Gasy Hub.
Uses pydantic-settings for type-safe environment variable loading.
"""

from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Create a .env file in the root directory to configure these.
    """

    # Application
    APP_NAME: str = "Gasy Hub"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False

    # CORS - Frontend URLs allowed to access this API
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173,http://127.0.0.1:5173"

    # Database (any SQLAlchemy URL; SQLite by default for local development)
    DATABASE_URL: str = "sqlite:///./gasy_hub.db"
    DATABASE_ECHO: bool = False

    # Alert lifecycle
    # - CONFIRMATION_THRESHOLD: confirm votes that move a pending alert to "confirmed"
    # - REJECTION_THRESHOLD: reject votes that move a pending alert to "fake" (0 disables)
    CONFIRMATION_THRESHOLD: int = 3
    REJECTION_THRESHOLD: int = 2
    ALLOW_PENDING_RESOLUTION: bool = True  # Author may resolve an alert still pending

    # Media uploads
    UPLOAD_DIR: str = "./uploads"
    MAX_UPLOAD_MB: int = 10
    MAX_MEDIA_FILES: int = 5

    # Realtime fan-out
    WS_SEND_TIMEOUT_SECONDS: float = 2.0

    # Listing
    DEFAULT_PAGE_SIZE: int = 10

    # Geocoding (fills missing coordinates from the free-text location)
    GEOCODING_ENABLED: bool = False
    GEOCODING_USER_AGENT: str = "gasy-hub/0.1"
    GEOCODING_COUNTRY_CODES: str = "mg"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None  # Path to a rotating log file (console only if unset)

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "allow"

    @property
    def cors_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]


# Global settings instance
settings = Settings()
