"""
Runtime configuration settings

Signal thresholds and weights are fixed constants in driftwatch.drift and are
not configurable here; these settings only cover the service around them.
"""
import os
from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    # App
    APP_NAME: str = "Driftwatch API"
    APP_VERSION: str = "0.3.0"
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")  # development, staging, production

    # Session storage: "memory" keeps records in-process, "redis" survives restarts
    STORAGE_BACKEND: str = os.getenv("STORAGE_BACKEND", "memory")
    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379")
    STORAGE_KEY_PREFIX: str = "drift:"

    # Drift state is short-horizon; stored records expire with the session
    SESSION_TTL_SECONDS: int = int(os.getenv("SESSION_TTL_SECONDS", str(12 * 60 * 60)))

    # Intervention breathing cycle
    BREATH_PHASE_MS: int = 4000

    # CORS
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # Logging: console always, rotating file sink when LOG_FILE is set
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FILE: Optional[str] = os.getenv("LOG_FILE")
    LOG_ROTATION: str = "100 MB"
    LOG_RETENTION: str = "14 days"
    LOG_JSON: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"
    )


settings = Settings()
