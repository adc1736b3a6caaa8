"""
Database configuration and initialization for the API Workbench.

Uses SQLite by default with SQLAlchemy ORM; the URL comes from settings.
"""

from datetime import datetime, timezone

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from .config import get_settings


DATABASE_URL = get_settings().database_url


def _engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}  # Required for SQLite with FastAPI
    return {}


engine = create_engine(DATABASE_URL, echo=False, **_engine_kwargs(DATABASE_URL))


def enable_sqlite_foreign_keys(target_engine) -> None:
    """Enable foreign key constraints on every new SQLite connection."""
    if target_engine.dialect.name != "sqlite":
        return

    @event.listens_for(target_engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


enable_sqlite_foreign_keys(engine)

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


def utc_now() -> datetime:
    """Naive UTC timestamp, the format stored in every timestamp column."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def init_db():
    """
    Initialize the database by creating all tables.

    Called at application startup; existing tables are left untouched.
    """
    from . import models  # noqa: F401  (registers the mappers)

    Base.metadata.create_all(bind=engine)


def get_db():
    """
    Dependency function for FastAPI to get database sessions.

    Yields a database session and ensures it's closed after use.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
