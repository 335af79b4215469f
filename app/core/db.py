"""
Database engine, sessions and schema bootstrap

The engine is created lazily on first use and memoized for the life of the
process. Connecting retries a bounded number of times; running out of
attempts raises DatabaseError and is treated as fatal by the caller.
"""

import logging
import os
import sqlite3
import time
from contextlib import contextmanager
from functools import lru_cache
from typing import Any, Dict, Iterator, Optional

from sqlalchemy import create_engine, event, inspect, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from app.core.config import settings
from app.core.exceptions import DatabaseError

logger = logging.getLogger(__name__)

Base = declarative_base()
SessionLocal = sessionmaker(autocommit=False, autoflush=False)

REQUIRED_TABLES = ("guests", "activity_logs", "error_logs", "migrations")


@event.listens_for(Engine, "connect")
def _set_sqlite_pragmas(dbapi_connection, connection_record):
    """Per-connection SQLite settings; foreign keys are off by default in SQLite"""
    if not isinstance(dbapi_connection, sqlite3.Connection):
        return
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys = ON")
    cursor.execute("PRAGMA journal_mode = WAL")
    cursor.execute(f"PRAGMA busy_timeout = {int(settings.DB_BUSY_TIMEOUT_MS)}")
    cursor.execute("PRAGMA synchronous = NORMAL")
    cursor.close()


def _ensure_sqlite_directory(database_url: str) -> None:
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite" or not url.database or url.database == ":memory:":
        return
    directory = os.path.dirname(os.path.abspath(url.database))
    os.makedirs(directory, exist_ok=True)


def connect(database_url: str, max_retries: int = 3, retry_delay: float = 1.0) -> Engine:
    """Create an engine and prove it with SELECT 1, retrying with a fixed delay"""
    connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
    last_error: Optional[BaseException] = None

    for attempt in range(1, max_retries + 1):
        logger.info("Database connection attempt %d/%d", attempt, max_retries)
        engine = None
        try:
            _ensure_sqlite_directory(database_url)
            engine = create_engine(database_url, connect_args=connect_args)
            with engine.connect() as connection:
                connection.execute(text("SELECT 1"))
            logger.info("Database connected successfully on attempt %d", attempt)
            return engine
        except (SQLAlchemyError, OSError) as exc:
            last_error = exc
            logger.error("Database connection attempt %d failed: %s", attempt, exc)
            if engine is not None:
                engine.dispose()
            if attempt < max_retries:
                logger.info("Retrying in %.1fs...", retry_delay)
                time.sleep(retry_delay)

    raise DatabaseError(
        f"Failed to connect to database after {max_retries} attempts. Last error: {last_error}",
        original_error=last_error,
    )


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    """Process-wide engine; the first successful connect is reused by every caller"""
    return connect(
        settings.DATABASE_URL,
        max_retries=settings.DB_CONNECT_MAX_RETRIES,
        retry_delay=settings.DB_CONNECT_RETRY_DELAY,
    )


def init_db(engine: Optional[Engine] = None) -> None:
    """Create tables, indexes and triggers if they do not exist yet"""
    import app.models  # noqa: F401  registers every table on Base.metadata

    engine = engine or get_engine()
    logger.info("Initializing database schema...")
    Base.metadata.create_all(bind=engine)
    logger.info("Database schema initialized")


def get_db() -> Iterator[Session]:
    db = SessionLocal(bind=get_engine())
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """Commit everything issued inside the block, or roll all of it back"""
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise


def check_database(engine: Optional[Engine] = None) -> Dict[str, Any]:
    """Health check: connectivity plus presence of the schema tables"""
    try:
        engine = engine or get_engine()
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
            existing = set(inspect(connection).get_table_names())
    except (SQLAlchemyError, DatabaseError) as exc:
        return {"connected": False, "tables_exist": False, "error": str(exc)}

    missing = [name for name in REQUIRED_TABLES if name not in existing]
    return {"connected": True, "tables_exist": not missing, "missing_tables": missing}
