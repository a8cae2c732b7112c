"""
Application configuration using Pydantic Settings.

This module manages all configuration from environment variables.
"""

import os
from functools import lru_cache
from typing import List, Optional
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Configuration
    API_TITLE: str = "KLE IPR Patent Tracker API"
    API_VERSION: str = "1.0.0"
    API_DESCRIPTION: str = "Patent portfolio tracking with Excel import/export and renewal monitoring"
    API_PREFIX: str = "/api"

    # Server Configuration
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    DEBUG: bool = False
    RELOAD: bool = False

    # Database Configuration
    DATABASE_URL: str = "sqlite:///ipr_tracker.db"
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_PRE_PING: bool = True

    # Redis Configuration
    REDIS_URL: str = "redis://localhost:6379/0"

    # Celery Configuration
    CELERY_BROKER_URL: str = "redis://localhost:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/0"

    # File Storage Configuration
    TEMP_UPLOAD_DIR: str = "/tmp/ipr_uploads"
    MAX_FILE_SIZE_MB: int = 25
    ALLOWED_EXTENSIONS: List[str] = [".xlsx", ".xlsm"]

    # Import Settings
    DEFAULT_WORKBOOK_PATH: str = "data/KLE-IPR.xlsx"
    AUTO_IMPORT_DEFAULT: bool = False  # Seed an empty database from DEFAULT_WORKBOOK_PATH on startup
    IPINDIA_PORTAL_URL: str = "https://ipindiaservices.gov.in/publicsearch"

    # Logging Configuration
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = "api.log"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # CORS Configuration
    CORS_ORIGINS: List[str] = ["*"]
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_ALLOW_METHODS: List[str] = ["*"]
    CORS_ALLOW_HEADERS: List[str] = ["*"]

    # Security Configuration
    API_KEY_HEADER: str = "X-API-Key"
    ENABLE_API_KEY_AUTH: bool = False

    # Job Configuration
    JOB_RETENTION_DAYS: int = 30
    PROGRESS_CACHE_EXPIRY: int = 3600  # Redis progress cache expiry (1 hour)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are loaded only once.
    """
    return Settings()

# Create global settings instance
settings = get_settings()

def ensure_temp_dir():
    """Ensure temporary upload directory exists."""
    os.makedirs(settings.TEMP_UPLOAD_DIR, exist_ok=True)
