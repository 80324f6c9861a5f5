"""Database session management with connection pooling"""

from functools import lru_cache
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from budget_tracker.config import settings


def enable_sqlite_foreign_keys(engine: Engine) -> None:
    """SQLite ignores FOREIGN KEY clauses unless asked per connection"""
    if engine.dialect.name != "sqlite":
        return

    @event.listens_for(engine, "connect")
    def _set_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def build_engine(database_url: str) -> Engine:
    if database_url.startswith("sqlite"):
        engine = create_engine(database_url, connect_args={"check_same_thread": False})
    else:
        # Connection pool: max 20 connections, recycle after 1 hour to avoid stale connections
        engine = create_engine(
            database_url,
            pool_pre_ping=True,  # Verify connections before using
            pool_size=10,
            max_overflow=10,
            pool_recycle=3600,
        )
    enable_sqlite_foreign_keys(engine)
    return engine


@lru_cache(maxsize=1)
def get_session_factory() -> sessionmaker:
    """Engine is created on first use so importing the app needs no database driver"""
    return sessionmaker(autocommit=False, autoflush=False, bind=build_engine(settings.database_url))


def get_db() -> Generator[Session, None, None]:
    """Dependency injection for database sessions"""
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()
