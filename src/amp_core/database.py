"""Database engine and session management.

The engine is a process-scoped resource: ``init_engine`` is called from the
application lifespan and ``dispose_engine`` on shutdown. Stores never touch
the engine directly, they receive a ``Session`` from ``get_db``.
"""
import logging
from typing import Generator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from .config import Settings, get_settings
from .models import Base

logger = logging.getLogger("amp-core.database")

# Create session factory (bound in init_engine)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False)

_engine: Optional[Engine] = None


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def init_engine(settings: Optional[Settings] = None) -> Engine:
    """
    Create the engine and bind the session factory.

    Callers block for up to ``db_pool_timeout`` seconds when all
    ``db_pool_size + db_max_overflow`` connections are checked out.

    Args:
        settings: Settings to use (defaults to get_settings())

    Returns:
        Engine: the bound SQLAlchemy engine
    """
    global _engine

    settings = settings or get_settings()
    if settings.database_url.startswith("sqlite"):
        sqlite_options = {"connect_args": {"check_same_thread": False}}
        if settings.database_url in ("sqlite://", "sqlite:///:memory:"):
            # In-memory databases live in a single connection shared by all threads
            sqlite_options["poolclass"] = StaticPool
        _engine = create_engine(settings.database_url, **sqlite_options)
        event.listen(_engine, "connect", _enable_sqlite_foreign_keys)
    else:
        _engine = create_engine(
            settings.database_url,
            pool_pre_ping=True,                        # Verify connections before using
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_recycle=3600,                         # Recycle connections every hour
            pool_timeout=settings.db_pool_timeout,
        )

    SessionLocal.configure(bind=_engine)
    logger.info(f"Database engine initialised ({_engine.url.get_backend_name()})")
    return _engine


def create_schema() -> None:
    """Create all tables directly (development convenience; production uses Alembic)."""
    if _engine is None:
        raise RuntimeError("Database engine is not initialised")
    Base.metadata.create_all(bind=_engine)
    logger.info("Database schema ensured")


def dispose_engine() -> None:
    """Close every pooled connection."""
    global _engine
    if _engine is not None:
        _engine.dispose()
        logger.info("Database engine disposed")
    _engine = None


def get_db() -> Generator[Session, None, None]:
    """
    Dependency function to get database session.

    Yields:
        Session: SQLAlchemy database session
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
