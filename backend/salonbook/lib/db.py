"""
Database engine and session management using SQLAlchemy 2.x.
Provides connection pooling and session factory for the application.

Booking creation relies on the storage engine for atomicity:
- PostgreSQL: every connection gets a statement_timeout, and the booking
  flow locks the staff row (SELECT ... FOR UPDATE) before its final check.
- SQLite: transactions are opened with BEGIN IMMEDIATE so the write lock is
  held from the first read of a unit of work until commit/rollback.
"""
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import sessionmaker, Session, DeclarativeBase

from salonbook.lib.settings import settings


# Base class for all SQLAlchemy models
class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


def _configure_sqlite(engine: Engine) -> None:
    """Take over transaction control from pysqlite and begin IMMEDIATE."""

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Stop pysqlite from emitting its own BEGIN
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(database_url: str) -> Engine:
    """
    Create an engine configured for the backend named in the URL.

    Args:
        database_url: SQLAlchemy connection string

    Returns:
        Configured Engine
    """
    url = make_url(database_url)
    backend = url.get_backend_name()
    timeout_ms = settings.db_statement_timeout_ms

    kwargs: dict = {"echo": settings.debug, "pool_pre_ping": True}

    if backend == "sqlite":
        kwargs["connect_args"] = {
            "check_same_thread": False,
            "timeout": timeout_ms / 1000,  # busy timeout while another writer holds the lock
        }
    else:
        kwargs.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_timeout=settings.db_pool_timeout_seconds,
        )
        if backend == "postgresql":
            kwargs["connect_args"] = {"options": f"-c statement_timeout={timeout_ms}"}

    engine = create_engine(url, **kwargs)
    if backend == "sqlite":
        _configure_sqlite(engine)
    return engine


# Create engine with connection pooling
engine = build_engine(settings.database_url)


# Session factory
SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
)


def get_db() -> Generator[Session, None, None]:
    """
    Dependency for FastAPI routes to get a database session.

    Usage:
        @app.get("/example")
        def example(db: Session = Depends(get_db)):
            ...
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """
    Context manager for database sessions outside of FastAPI routes.

    Usage:
        with get_db_context() as db:
            result = db.query(User).first()
    """
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db(bind: Engine | None = None):
    """
    Initialize the database by creating all tables.
    Should be called after all models are imported.
    """
    import salonbook.models  # noqa: F401  registers models on Base.metadata

    Base.metadata.create_all(bind=bind or engine)


def drop_db(bind: Engine | None = None):
    """
    Drop all tables. Use with caution - for testing only.
    """
    import salonbook.models  # noqa: F401

    Base.metadata.drop_all(bind=bind or engine)
