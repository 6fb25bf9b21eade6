"""Application configuration module.

This module contains settings for the link shortening service,
loaded from environment variables with appropriate defaults.
"""

from __future__ import annotations

from typing import Optional, Any, List, Union
from enum import Enum
from pathlib import Path
import logging

from pydantic import field_validator, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Set up basic logger for config module
logger = logging.getLogger(__name__)

# Base directory of the project
BASE_DIR = Path(__file__).resolve().parent.parent.parent


class EnvironmentType(str, Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class Settings(BaseSettings):
    """Application settings loaded from environment variables with defaults.

    Settings are loaded from environment variables, with fallback to
    values in .env file if present, and finally to the default values
    specified here.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment setting
    ENVIRONMENT: EnvironmentType = EnvironmentType.DEVELOPMENT

    # App Information
    APP_NAME: str = "Shortlinks"
    APP_VERSION: str = "0.1.0"
    APP_DESCRIPTION: str = "Short link allocation, redirects and click analytics"

    # API Configuration
    BASE_URL: str = "http://localhost:8000"  # Used for rendering short URLs
    API_PREFIX: str = "/api"
    DEBUG: bool = False
    USER_ID_HEADER: str = "X-User-Id"  # Requester identity set by the auth gateway

    # CORS settings
    CORS_ORIGINS: Union[List[str], str] = ["*"]

    # Code allocation
    SHORT_CODE_BYTES: int = 4  # 4 random bytes -> 8 hex characters
    CODE_ALLOCATION_MAX_ATTEMPTS: int = 20
    CUSTOM_ALIAS_MAX_LENGTH: int = 50
    RESERVED_ALIASES: Union[List[str], str] = ["api", "docs", "redoc", "openapi.json", "health"]

    # Default link expiration (in days)
    DEFAULT_EXPIRATION_DAYS: Optional[int] = None  # None means never expire

    # Analytics
    ANALYTICS_MONTH_WINDOW_DAYS: int = 30
    ANALYTICS_BREAKDOWN_LIMIT: int = 10
    ANALYTICS_DEFAULT_TREND_DAYS: int = 30
    ANALYTICS_RECENT_CLICKS_LIMIT: int = 50

    # Geo lookup collaborator, e.g. "http://ip-api.com/json/{ip}?fields=country,city"
    GEO_LOOKUP_URL: Optional[str] = None
    GEO_LOOKUP_TIMEOUT: float = 1.0

    # PostgreSQL settings
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "shortlinks"
    DATABASE_URL: Optional[str] = None  # Overrides the POSTGRES_* settings when set

    # PostgreSQL pool settings
    POSTGRES_POOL_SIZE: int = 20
    POSTGRES_POOL_MAX_OVERFLOW: int = 10
    POSTGRES_POOL_TIMEOUT: int = 30
    POSTGRES_POOL_RECYCLE: int = 300
    DB_ECHO: bool = False
    DB_AUTO_CREATE: bool = True  # Create missing tables on startup

    # Seconds before a single database statement is abandoned
    DB_OPERATION_TIMEOUT: float = 3.0

    # Database connection resilience settings
    DB_CONNECT_RETRY_ATTEMPTS: int = 5
    DB_CONNECT_RETRY_INITIAL_DELAY: float = 1.0
    DB_CONNECT_RETRY_MAX_DELAY: float = 30.0
    DB_CONNECT_RETRY_JITTER: float = 0.1  # Jitter factor (0.0-1.0)

    # Logging configuration
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    LOG_FILENAME: str = "app.log"
    LOG_ROTATION: str = "10 MB"
    LOG_RETENTION: str = "7 days"
    LOG_FORMAT: str = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level} | {name}:{line} | {message}"
    LOG_JSON: bool = True
    LOG_TO_FILE: bool = True

    # Validators
    @field_validator("DEFAULT_EXPIRATION_DAYS", "GEO_LOOKUP_URL", "DATABASE_URL", mode="before")
    def empty_string_to_none(cls, v: Any) -> Any:
        """Treat empty environment values as unset."""
        if v == "":
            return None
        return v

    @field_validator("CORS_ORIGINS", "RESERVED_ALIASES")
    def validate_list_or_string(cls, v: Union[List[str], str]) -> List[str]:
        """Convert comma-separated string to list if needed."""
        if isinstance(v, str):
            if not v.strip():
                return []
            if v == "*":
                return ["*"]
            return [item.strip() for item in v.split(",")]
        return v

    # Computed fields
    @computed_field
    def SQLALCHEMY_DATABASE_URI(self) -> str:
        """Construct the SQLAlchemy database URI from settings or use override."""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"


# Create a singleton instance of the settings
settings = Settings()
