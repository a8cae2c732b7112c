"""
Database engine and session factory helpers.

SQLite (the default, a single local file) and PostgreSQL are both supported;
pool sizing only applies to server databases.
"""

import logging
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)


def create_db_engine(
    database_url: str,
    pool_size: int = 5,
    max_overflow: int = 10,
    pool_pre_ping: bool = True,
    echo: bool = False
) -> Engine:
    """Create an engine with settings appropriate for the backend."""
    if database_url.startswith('sqlite'):
        kwargs = {'connect_args': {'check_same_thread': False}, 'echo': echo}
        if database_url in ('sqlite://', 'sqlite:///:memory:'):
            # Every session must see the same in-memory database
            kwargs['poolclass'] = StaticPool
        return create_engine(database_url, **kwargs)

    return create_engine(
        database_url,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_pre_ping=pool_pre_ping,
        echo=echo
    )


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def describe_url(database_url: Optional[str]) -> str:
    """Database URL with any credentials removed, for logging."""
    if not database_url:
        return ''
    return database_url.split('@')[-1]
