"""Database session management and initialization."""

import logging
import os
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.orm import Session as SQLAlchemySession
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from .models import Base

logger = logging.getLogger(__name__)

# Global engine and session factory
_engine = None
_SessionLocal = None

_ALEMBIC_INI = Path(__file__).resolve().parent.parent.parent / "alembic.ini"


def get_database_url() -> str:
    """Get database URL from environment or use the local SQLite default."""
    return os.getenv("DATABASE_URL", "sqlite:///./worldforge.db")


def get_engine():
    """Get or create the database engine."""
    global _engine
    if _engine is None:
        database_url = get_database_url()
        echo = os.getenv("DEBUG", "false").lower() == "true"

        if database_url.startswith("sqlite"):
            # One shared connection for :memory:, otherwise every
            # connection would see its own empty database
            kwargs = {"poolclass": StaticPool} if ":memory:" in database_url else {}
            _engine = create_engine(
                database_url,
                connect_args={"check_same_thread": False, "timeout": 30},
                echo=echo,
                **kwargs,
            )
        else:
            # PostgreSQL with connection pooling
            _engine = create_engine(
                database_url,
                pool_size=5,
                max_overflow=10,
                pool_pre_ping=True,
                echo=echo,
            )

    return _engine


def get_session_factory():
    """Get or create the session factory."""
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
            bind=get_engine(),
        )
    return _SessionLocal


def reset_engine():
    """Dispose the engine so the next call rebuilds it from DATABASE_URL."""
    global _engine, _SessionLocal
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionLocal = None


def init_db():
    """Initialize the database schema.

    SQLite databases (local dev, tests) are built with create_all().
    Server databases are migrated to head with Alembic, falling back to
    create_all() when no migration environment is available.
    """
    database_url = get_database_url()
    if database_url.startswith("sqlite"):
        Base.metadata.create_all(bind=get_engine())
        logger.info(f"Database initialized via create_all: {database_url}")
        return

    try:
        from alembic import command
        from alembic.config import Config

        alembic_cfg = Config(str(_ALEMBIC_INI))
        alembic_cfg.set_main_option("sqlalchemy.url", database_url)
        command.upgrade(alembic_cfg, "head")
        logger.info(f"Database initialized via Alembic: {database_url}")
    except Exception as e:
        logger.warning(f"Alembic migration failed ({e}), falling back to create_all()")
        Base.metadata.create_all(bind=get_engine())
        logger.info(f"Database initialized via create_all: {database_url}")


def drop_db():
    """Drop all tables (use with caution!)."""
    engine = get_engine()
    Base.metadata.drop_all(bind=engine)
    logger.info("Database tables dropped.")


@contextmanager
def get_session() -> Generator[SQLAlchemySession, None, None]:
    """Context manager for database sessions.

    Usage:
        with get_session() as session:
            session.query(...)
    """
    SessionLocal = get_session_factory()
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def create_session() -> SQLAlchemySession:
    """Create a new database session (caller must manage lifecycle)."""
    SessionLocal = get_session_factory()
    return SessionLocal()
