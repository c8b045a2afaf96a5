"""
Database Configuration and Session Management

Builds the SQLAlchemy engine and session factory for the local submission
record and provides a transactional session scope.

Design Considerations:
- Engine built from configuration rather than at import time
- SQLite support for single-node deployments and tests
- Rollback on error and guaranteed session cleanup
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.engine.url import make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from support_relay.storage.models import Base

logger = logging.getLogger(__name__)


def build_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create an engine for the given URL.

    In-memory SQLite shares one connection so every session sees the same
    database; file-backed SQLite gets its parent directory created.
    """
    url = make_url(database_url)
    kwargs = {"echo": echo}

    if url.get_backend_name() == "sqlite":
        kwargs["connect_args"] = {"check_same_thread": False}
        if not url.database or url.database == ":memory:":
            kwargs["poolclass"] = StaticPool
        else:
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)

    return create_engine(database_url, **kwargs)


def init_db(engine: Engine) -> None:
    """
    Create the submission tables if they do not exist.

    Raises:
        RuntimeError: If schema creation fails
    """
    try:
        logger.info("Initializing database schema")
        Base.metadata.create_all(bind=engine)
        logger.info("Database schema initialized successfully")
    except Exception as e:
        logger.error(f"Database initialization failed: {str(e)}")
        raise RuntimeError(f"Failed to initialize database: {str(e)}")


def build_session_factory(database_url: str, echo: bool = False) -> sessionmaker:
    engine = build_engine(database_url, echo=echo)
    init_db(engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def session_scope(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """
    Provide a transactional session.

    Yields:
        SQLAlchemy session, committed on success and rolled back on error
    """
    session = session_factory()
    try:
        yield session
        session.commit()
    except Exception as e:
        session.rollback()
        logger.error(f"Database session error: {str(e)}")
        raise
    finally:
        session.close()
