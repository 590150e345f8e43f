"""
database.py — Relational Store Connection for the Order Intake Service

Uses SQLAlchemy 2.0 (sync). The engine and session factory are explicit objects
owned by the application (see `create_app`) and handed to the components that
need them; nothing here keeps a global connection.

SQLite has no row-level locks, so SQLite engines open every transaction with
`BEGIN IMMEDIATE`. That takes the database write lock up front and serializes
concurrent reservations the same way `SELECT ... FOR UPDATE` does on PostgreSQL.
"""
from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import Engine, create_engine, event, text
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from .logging_config import get_logger

log = get_logger(__name__)


# ============================================================================
# Base class for all ORM models
# ============================================================================

class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


# ============================================================================
# Engine and Session Factory
# ============================================================================

def create_db_engine(settings) -> Engine:
    """Build the engine described by DATABASE_URL / DB_SSL / pool settings."""
    url = settings.DATABASE_URL

    if url.startswith("sqlite"):
        engine = create_engine(
            url,
            echo=settings.DB_ECHO,
            connect_args={"check_same_thread": False, "timeout": 30},
        )
        _serialize_sqlite_writers(engine)
        return engine

    connect_args = {"sslmode": "require"} if settings.DB_SSL else {}
    return create_engine(
        url,
        echo=settings.DB_ECHO,
        pool_size=settings.DB_POOL_SIZE,
        pool_pre_ping=True,  # Verify connections before use
        connect_args=connect_args,
    )


def _serialize_sqlite_writers(engine: Engine) -> None:
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        # hand transaction control to the "begin" hook below
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)


def init_schema(engine: Engine) -> None:
    """Create missing tables."""
    # registers the ORM tables on Base.metadata
    from . import db_models  # noqa: F401

    Base.metadata.create_all(engine)


# ============================================================================
# Transaction Helpers
# ============================================================================

@contextmanager
def transaction(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    """
    Explicit transaction scope for critical operations.

    Usage:
        with transaction(session_factory) as session:
            session.execute(...)
            session.execute(...)
        # Commits on success, rolls back on exception, always releases the connection
    """
    with session_factory() as session:
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise


# ============================================================================
# Health Check
# ============================================================================

def check_db_health(session_factory: sessionmaker[Session]) -> dict:
    """Check database connectivity and return status."""
    try:
        with session_factory() as session:
            session.execute(text("SELECT 1")).scalar()
        return {"status": "healthy", "database": "connected"}
    except Exception as e:
        log.error(f"Database health check failed: {e}")
        return {"status": "unhealthy", "database": "disconnected"}
