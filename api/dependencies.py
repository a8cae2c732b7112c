"""
Dependency injection utilities for FastAPI.

This module provides reusable dependencies for database sessions,
authentication, and upload validation.
"""

import logging
from pathlib import Path
from typing import Generator
from sqlalchemy.orm import Session
from fastapi import Depends, HTTPException, Header, status

from api.config import settings
from backend.database import create_db_engine, create_session_factory

logger = logging.getLogger(__name__)

# Create database engine
engine = create_db_engine(
    settings.DATABASE_URL,
    pool_size=settings.DB_POOL_SIZE,
    max_overflow=settings.DB_MAX_OVERFLOW,
    pool_pre_ping=settings.DB_POOL_PRE_PING,
    echo=settings.DEBUG
)

# Create session factory
SessionLocal = create_session_factory(engine)


def get_db() -> Generator[Session, None, None]:
    """
    Get database session dependency.

    Yields database session and ensures it's closed after use.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_api_key(
    x_api_key: str = Header(None, alias=settings.API_KEY_HEADER)
) -> str:
    """
    Validate API key from header.

    Raises:
        HTTPException: If API key auth is enabled and the key is missing
    """
    if not settings.ENABLE_API_KEY_AUTH:
        return "public"

    if not x_api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="API key required",
            headers={"WWW-Authenticate": "ApiKey"}
        )

    return x_api_key


def get_current_user(api_key: str = Depends(get_api_key)) -> str:
    """User identifier recorded on jobs; currently the API key itself."""
    return api_key


def verify_file_size(file_size: int) -> bool:
    """
    Verify uploaded file size is within limit.

    Raises:
        HTTPException: If file is too large
    """
    max_size_bytes = settings.MAX_FILE_SIZE_MB * 1024 * 1024

    if file_size > max_size_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File size ({file_size / 1024 / 1024:.1f} MB) exceeds maximum allowed "
                   f"({settings.MAX_FILE_SIZE_MB} MB)"
        )

    return True


def verify_file_extension(filename: str) -> bool:
    """
    Verify file has allowed extension.

    Raises:
        HTTPException: If extension is not allowed
    """
    ext = Path(filename or '').suffix.lower()

    if ext not in [e.lower() for e in settings.ALLOWED_EXTENSIONS]:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File extension '{ext}' not allowed. "
                   f"Allowed extensions: {', '.join(settings.ALLOWED_EXTENSIONS)}"
        )

    return True
