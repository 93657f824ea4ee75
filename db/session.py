"""Database session management for the studio booking core.

Every transaction runs serializable: PostgreSQL connections use the
SERIALIZABLE isolation level, and SQLite transactions are opened with
BEGIN IMMEDIATE so that a conflict check and the insert that follows it
cannot interleave with another writer.
"""

import logging
from contextlib import contextmanager
from typing import Callable, Generator, Optional, TypeVar

from sqlalchemy import create_engine as sa_create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from core.config import settings
from core.exceptions import SerializationConflict, StorageUnavailable
from .repository import storage_errors


logger = logging.getLogger(__name__)

T = TypeVar("T")


def normalize_database_url(url: str) -> str:
    """Pick the synchronous psycopg driver for bare PostgreSQL URLs."""
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)
    if url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


class DatabaseConfig:
    """Database configuration settings."""

    POOL_SIZE: int = settings.db_pool_size
    MAX_OVERFLOW: int = settings.db_max_overflow
    POOL_RECYCLE: int = 3600
    POOL_PRE_PING: bool = True
    ECHO: bool = settings.debug and settings.is_development
    BUSY_TIMEOUT: float = settings.db_busy_timeout_seconds


def _enable_sqlite_serializable(engine: Engine) -> None:
    """Take the SQLite write lock at the start of every transaction."""

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        # Let SQLAlchemy emit BEGIN itself
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_engine(url: str = settings.database_url, echo: bool = DatabaseConfig.ECHO) -> Engine:
    """
    Create SQLAlchemy engine with serializable transactions.

    Args:
        url: Database URL
        echo: Whether to log all SQL statements

    Returns:
        SQLAlchemy engine
    """
    url = normalize_database_url(url)

    if url.startswith("sqlite"):
        in_memory = url in ("sqlite://", "sqlite:///:memory:")
        engine = sa_create_engine(
            url,
            echo=echo,
            connect_args={
                "check_same_thread": False,
                "timeout": DatabaseConfig.BUSY_TIMEOUT,
            },
            poolclass=StaticPool if in_memory else None,
        )
        _enable_sqlite_serializable(engine)
        return engine

    return sa_create_engine(
        url,
        echo=echo,
        isolation_level="SERIALIZABLE",
        pool_size=DatabaseConfig.POOL_SIZE,
        max_overflow=DatabaseConfig.MAX_OVERFLOW,
        pool_recycle=DatabaseConfig.POOL_RECYCLE,
        pool_pre_ping=DatabaseConfig.POOL_PRE_PING,
    )


def create_session_factory(bind: Engine) -> sessionmaker:
    """Session factory bound to an engine."""
    return sessionmaker(
        bind=bind,
        class_=Session,
        expire_on_commit=False,
        autoflush=False,
    )


# Global engine instance
engine: Engine = create_engine()

# Session factory
SessionLocal = create_session_factory(engine)


@contextmanager
def get_session_context(factory: Optional[sessionmaker] = None) -> Generator[Session, None, None]:
    """
    Context manager for getting a database session.

    Commits on success, rolls back on error.

    Example:
        with get_session_context() as session:
            # use session
            pass
    """
    session = (factory or SessionLocal)()
    try:
        yield session
        with storage_errors("commit"):
            session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db(bind: Optional[Engine] = None) -> None:
    """Create all tables."""
    from .base import Base
    from . import models_sqlalchemy  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)


def close_db() -> None:
    """Close database engine and all connections."""
    engine.dispose()


def run_serializable(
    work: Callable[[Session], T],
    factory: Optional[sessionmaker] = None,
    max_attempts: Optional[int] = None,
    operation: str = "transaction",
) -> T:
    """
    Run ``work`` in a fresh session and commit it, re-running on serialization failures.

    Each attempt starts from scratch with a new session, so ``work`` must
    not carry state between calls. Any other exception rolls back and
    propagates unchanged.

    Raises:
        StorageUnavailable: If every attempt lost a serialization race
    """
    factory = factory or SessionLocal
    max_attempts = max_attempts or settings.admission_max_attempts
    last_error: Optional[SerializationConflict] = None

    for attempt in range(1, max_attempts + 1):
        session = factory()
        try:
            result = work(session)
            with storage_errors(f"{operation} commit"):
                session.commit()
            return result
        except SerializationConflict as e:
            session.rollback()
            last_error = e
            logger.warning(
                f"{operation} hit a serialization conflict "
                f"(attempt {attempt}/{max_attempts})"
            )
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    raise StorageUnavailable(
        f"{operation} failed after {max_attempts} attempts"
    ) from last_error
