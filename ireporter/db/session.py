"""
Database Session Management
===========================

One SQLAlchemy engine per DATABASE_URL, built on first use. Requests get
a session from `get_db`; workers and jobs use `get_db_session`, which
commits on success and rolls back on error.

DATABASE_URL is read from the environment first, so tests can point the
app at a temporary SQLite file and call `reset_engine()`.
"""

import logging
import os
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool

from ..config import get_settings
from .models import Base

logger = logging.getLogger(__name__)

_engine = None
_engine_url = None

# Unbound until get_engine() runs; rebinding follows DATABASE_URL changes.
SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False)


def database_url() -> str:
    return os.environ.get("DATABASE_URL") or get_settings().database_url


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # users -> reports/notifications cascade relies on this
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _build_engine(url: str) -> Engine:
    echo = os.environ.get("SQL_ECHO", "false").lower() == "true"

    if url.startswith("sqlite"):
        engine = create_engine(url, connect_args={"check_same_thread": False}, echo=echo)
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
        return engine

    return create_engine(
        url,
        poolclass=QueuePool,
        pool_size=10,
        max_overflow=10,
        pool_pre_ping=True,
        echo=echo,
    )


def get_engine() -> Engine:
    """Engine for the current DATABASE_URL (rebuilt if the URL changed)"""
    global _engine, _engine_url
    url = database_url()
    if _engine is not None and _engine_url == url:
        return _engine

    if _engine is not None:
        _engine.dispose()
    _engine = _build_engine(url)
    _engine_url = url
    SessionLocal.configure(bind=_engine)
    logger.info(f"Database engine ready ({_engine.dialect.name})")
    return _engine


def reset_engine():
    """Dispose the engine and unbind sessions (tests switch databases with this)"""
    global _engine, _engine_url
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _engine_url = None
    SessionLocal.configure(bind=None)


def init_db():
    """Create users, report and notification tables if missing"""
    Base.metadata.create_all(bind=get_engine())


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency: one session per request.

    Writes commit explicitly (RecordStore, AuthService); whatever is left
    open is discarded when the session closes.
    """
    get_engine()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """
    Transactional scope for jobs and scripts.

    Usage:
        with get_db_session() as db:
            db.add(Notification(...))
    """
    get_engine()
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
