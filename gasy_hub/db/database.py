"""
SQLAlchemy initialization.
Single-source-of-truth engine and session factory for Gasy Hub.
"""

from typing import Iterator, Optional
import logging

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from gasy_hub.core.settings import settings

logger = logging.getLogger(__name__)

# Inherited by every table in gasy_hub.db.models
Base = declarative_base()

engine: Optional[Engine] = None
SessionLocal: Optional[sessionmaker] = None


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores ON DELETE CASCADE unless foreign keys are switched on per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def initialize_database(database_url: Optional[str] = None, create_tables: bool = True) -> Engine:
    """
    Create the engine and session factory once.

    Returns the existing engine if already initialized. An in-memory
    SQLite URL ("sqlite://") shares one connection across threads.
    """
    global engine, SessionLocal

    if engine is not None:
        return engine

    url = database_url or settings.DATABASE_URL
    kwargs = {"echo": settings.DATABASE_ECHO, "future": True}

    if url.startswith("sqlite"):
        # FastAPI serves requests from a thread pool
        kwargs["connect_args"] = {"check_same_thread": False}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool

    engine = create_engine(url, **kwargs)
    if url.startswith("sqlite"):
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)

    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)

    if create_tables:
        # Import models so they register on Base.metadata
        from gasy_hub.db import models  # noqa: F401
        Base.metadata.create_all(bind=engine)

    logger.info(f"Database initialized: {engine.url.render_as_string(hide_password=True)}")
    return engine


def dispose_database() -> None:
    """Drop the engine and session factory (used on shutdown and by tests)."""
    global engine, SessionLocal
    if engine is not None:
        engine.dispose()
    engine = None
    SessionLocal = None


def get_engine() -> Engine:
    if engine is None:
        initialize_database()
    return engine


def new_session() -> Session:
    """Open a session outside of a request (scripts, startup tasks)."""
    if SessionLocal is None:
        initialize_database()
    return SessionLocal()


def get_db() -> Iterator[Session]:
    """
    FastAPI dependency: one session per request, always closed afterwards.
    """
    db = new_session()
    try:
        yield db
    finally:
        db.close()


def commit_or_raise(db: Session, action: str) -> None:
    """
    Commit the session; on failure roll back and raise StorageError.
    """
    from gasy_hub.core.errors import StorageError

    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to {action}: {e}", exc_info=True)
        raise StorageError(f"Failed to {action}") from e


def ping_database() -> bool:
    """Run a trivial query; raises if the database is unreachable."""
    with get_engine().connect() as connection:
        connection.execute(text("SELECT 1"))
    return True
