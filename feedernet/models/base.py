"""
SQLAlchemy base configuration and session management.

Uses SQLAlchemy 2.0 style with type hints and declarative base.
Designed to be portable between SQLite (dev/tests) and PostgreSQL (prod).

Engines and session factories are built explicitly and handed to the
stores; nothing here opens a connection at import time.
"""

from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Generator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker, Session
from sqlalchemy.pool import StaticPool


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def _is_memory_sqlite(url: str) -> bool:
    return url in ('sqlite://', 'sqlite:///:memory:')


def create_db_engine(url: str, echo: bool = False, pool_timeout: int = 30) -> Engine:
    """
    Create an engine configured for the database type.

    In-memory SQLite shares a single connection so every session sees
    the same database.
    """
    engine_kwargs = {'echo': echo}

    if url.startswith('sqlite'):
        engine_kwargs['connect_args'] = {
            'check_same_thread': False,
            'timeout': pool_timeout,
        }
        if _is_memory_sqlite(url):
            engine_kwargs['poolclass'] = StaticPool
    else:
        engine_kwargs['pool_timeout'] = pool_timeout
        engine_kwargs['pool_pre_ping'] = True

    engine = create_engine(url, **engine_kwargs)

    if url.startswith('sqlite'):
        @event.listens_for(engine, 'connect')
        def set_sqlite_pragma(dbapi_connection, connection_record):
            """
            Configure SQLite for concurrent workers.

            WAL mode allows the recorder to keep appending while the
            segmenter and scoring jobs read.
            """
            cursor = dbapi_connection.cursor()
            cursor.execute('PRAGMA journal_mode=WAL')
            cursor.execute('PRAGMA synchronous=NORMAL')
            cursor.execute('PRAGMA foreign_keys=ON')
            cursor.close()

    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    """Build the session factory injected into every store."""
    return sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,  # Stores hand detached rows back to jobs
    )


@contextmanager
def session_scope(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """
    Context manager for one small unit of work.

    Usage:
        with session_scope(factory) as session:
            session.execute(...)

    Commits on success, rolls back and re-raises on error.
    """
    session = session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db(engine: Engine) -> None:
    """
    Initialize database schema.

    Creates all tables if they don't exist. For production,
    use migrations instead.
    """
    # Import models so they register on Base.metadata
    from feedernet.models import position, flight, feeder  # noqa: F401

    Base.metadata.create_all(bind=engine)


def utc_timestamp(now: Optional[datetime] = None) -> int:
    """Current (or given) time as integer Unix seconds."""
    now = now or datetime.now(timezone.utc)
    return int(now.timestamp())
