"""
Database connection and session management for Pack Tracker.

This module provides:
- Database engine creation and configuration
- Session factory for database operations
- Transactional scopes (session_scope) and retried atomic units (run_atomic)
- Database initialization (create tables)
- WAL mode configuration
- Foreign key enforcement
"""

import logging
from contextlib import contextmanager
from typing import Callable, Optional, TypeVar

from sqlalchemy import create_engine, event, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError
from sqlalchemy.pool import StaticPool

from ..models.base import Base
from ..utils.config import get_config
from .exceptions import ConflictRetryable, DatabaseError
from .logging_utils import get_service_logger, log_operation

logger = get_service_logger(__name__)

T = TypeVar("T")

# Global engine and session factory
_engine: Optional[Engine] = None
_SessionFactory: Optional[sessionmaker] = None

# SQLite messages that mean another connection holds the write lock
_LOCK_MESSAGES = ("database is locked", "database table is locked", "database is busy")


@event.listens_for(Engine, "connect")
def _set_sqlite_pragma(dbapi_connection, connection_record):
    """
    Set SQLite pragmas on connection.

    Enables foreign key constraints and WAL mode for every new connection.
    """
    if type(dbapi_connection).__module__.split(".")[0] not in ("sqlite3", "pysqlite2"):
        return

    cursor = dbapi_connection.cursor()

    # Enable foreign key constraints (critical for referential integrity)
    cursor.execute("PRAGMA foreign_keys=ON")

    # Readers do not block the single writer
    cursor.execute("PRAGMA journal_mode=WAL")

    cursor.execute("PRAGMA synchronous=NORMAL")

    cursor.close()


def create_database_engine(database_url: Optional[str] = None, echo: bool = False) -> Engine:
    """
    Create and configure the database engine.

    Args:
        database_url: Optional database URL. If None, uses config default.
        echo: If True, log all SQL statements (useful for debugging)

    Returns:
        Configured SQLAlchemy Engine
    """
    if database_url is None:
        database_url = get_config().database_url

    logger.info(f"Creating database engine: {database_url}")

    if ":memory:" in database_url or "mode=memory" in database_url:
        # For in-memory databases (testing), use StaticPool
        engine = create_engine(
            database_url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    elif database_url.startswith("sqlite"):
        # Writers wait up to 30s for the lock before raising "database is locked"
        engine = create_engine(
            database_url,
            echo=echo,
            connect_args={"check_same_thread": False, "timeout": 30},
        )
    else:
        engine = create_engine(database_url, echo=echo)

    return engine


def init_database(engine: Optional[Engine] = None) -> None:
    """
    Initialize the database by creating all tables.

    Safe to call multiple times - existing tables won't be recreated.

    Args:
        engine: Optional engine to use. If None, uses global engine.
    """
    if engine is None:
        engine = get_engine()

    logger.info("Initializing database tables")

    # Import all models to ensure they're registered with Base
    from .. import models  # noqa: F401

    Base.metadata.create_all(engine)

    logger.info("Database tables initialized successfully")


def get_engine(force_recreate: bool = False) -> Engine:
    """
    Get the global database engine.

    Args:
        force_recreate: If True, recreate the engine even if one exists

    Returns:
        Database engine
    """
    global _engine

    if _engine is None or force_recreate:
        _engine = create_database_engine()

    return _engine


def get_session_factory() -> sessionmaker:
    """
    Get the global session factory.

    Returns:
        Session factory (sessionmaker)
    """
    global _SessionFactory

    if _SessionFactory is None:
        engine = get_engine()
        _SessionFactory = sessionmaker(bind=engine, expire_on_commit=False)

    return _SessionFactory


def configure_session_factory(engine: Engine) -> sessionmaker:
    """Bind the global engine and session factory to an explicit engine."""
    global _engine, _SessionFactory

    _engine = engine
    _SessionFactory = sessionmaker(bind=engine, expire_on_commit=False)
    return _SessionFactory


def get_session() -> Session:
    """
    Create a new database session.

    Returns:
        New Session instance
    """
    session_factory = get_session_factory()
    return session_factory()


@contextmanager
def session_scope():
    """
    Provide a transactional scope for database operations.

    This context manager handles session lifecycle automatically:
    - Creates a new session
    - Commits on success
    - Rolls back on exception
    - Always closes the session

    Yields:
        Database session

    Example:
        with session_scope() as session:
            material = Material(name="Bottle", unit="piece")
            session.add(material)
            # Commit happens automatically if no exception
    """
    session = get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def is_retryable_conflict(error: Exception) -> bool:
    """True when the error means a concurrent writer touched the same rows."""
    if isinstance(error, StaleDataError):
        return True
    if isinstance(error, OperationalError):
        message = str(error.orig if error.orig is not None else error).lower()
        return any(text in message for text in _LOCK_MESSAGES)
    return False


def run_atomic(
    fn: Callable[[Session], T],
    *,
    operation: str,
    session: Optional[Session] = None,
    max_attempts: Optional[int] = None,
) -> T:
    """
    Run ``fn(session)`` as one all-or-nothing unit of work.

    Each attempt gets a fresh session_scope, so every read inside ``fn``
    sees current state. Version-counter conflicts (StaleDataError) and
    SQLite lock timeouts roll the attempt back and re-run ``fn`` from
    scratch; any other exception rolls back and propagates unchanged.

    When ``session`` is given the caller owns the transaction: ``fn`` runs
    once in it, without commit or retry, and a conflict surfaces at once as
    ConflictRetryable.

    Args:
        fn: Unit of work; reads and writes only through the session it receives
        operation: Operation name for logs and ConflictRetryable
        session: Optional caller-owned session
        max_attempts: Attempts before giving up (config default when None)

    Returns:
        Whatever ``fn`` returns

    Raises:
        ConflictRetryable: If every attempt hit a concurrent writer
        DatabaseError: If the store failed for a non-retryable reason
    """
    if session is not None:
        try:
            return fn(session)
        except SQLAlchemyError as e:
            if is_retryable_conflict(e):
                log_operation(
                    logger,
                    operation=operation,
                    outcome="conflict",
                    level=logging.WARNING,
                    error=str(e),
                )
                raise ConflictRetryable(operation, 1, original_error=e) from e
            log_operation(
                logger,
                operation=operation,
                outcome="database_error",
                level=logging.ERROR,
                error=str(e),
            )
            raise DatabaseError(str(e), original_error=e) from e

    if max_attempts is None:
        max_attempts = get_config().max_transaction_attempts
    max_attempts = max(1, max_attempts)

    last_error: Optional[Exception] = None
    for attempt in range(1, max_attempts + 1):
        try:
            with session_scope() as attempt_session:
                return fn(attempt_session)
        except (StaleDataError, OperationalError) as e:
            if not is_retryable_conflict(e):
                log_operation(
                    logger,
                    operation=operation,
                    outcome="database_error",
                    level=logging.ERROR,
                    error=str(e),
                )
                raise DatabaseError(str(e), original_error=e) from e
            last_error = e
            log_operation(
                logger,
                operation=operation,
                outcome="conflict_retry",
                attempt=attempt,
                max_attempts=max_attempts,
                error=str(e),
            )
        except SQLAlchemyError as e:
            log_operation(
                logger,
                operation=operation,
                outcome="database_error",
                level=logging.ERROR,
                error=str(e),
            )
            raise DatabaseError(str(e), original_error=e) from e

    log_operation(
        logger,
        operation=operation,
        outcome="conflict_exhausted",
        level=logging.WARNING,
        attempts=max_attempts,
    )
    raise ConflictRetryable(operation, max_attempts, original_error=last_error) from last_error


def database_exists() -> bool:
    """
    Check if the database file exists.

    Returns:
        True if database exists, False otherwise
    """
    return get_config().database_exists()


def verify_database() -> bool:
    """
    Verify that the database is accessible and has tables.

    Returns:
        True if database is valid, False otherwise
    """
    try:
        engine = get_engine()
        inspector = inspect(engine)
        tables = inspector.get_table_names()

        expected_tables = ["materials", "products"]
        return all(table in tables for table in expected_tables)
    except SQLAlchemyError as e:
        logger.error(f"Database verification failed: {e}")
        return False


def reset_database(confirm: bool = False) -> None:
    """
    Drop all tables and recreate the database.

    WARNING: This will delete all data!

    Args:
        confirm: Must be True to actually reset. Safety check.

    Raises:
        ValueError: If confirm is not True
    """
    if not confirm:
        raise ValueError("Must pass confirm=True to reset database. This will delete all data!")

    logger.warning("RESETTING DATABASE - ALL DATA WILL BE LOST")

    engine = get_engine()

    from .. import models  # noqa: F401

    Base.metadata.drop_all(engine)
    logger.info("All tables dropped")

    Base.metadata.create_all(engine)
    logger.info("Tables recreated")


def close_connections() -> None:
    """
    Close all database connections.

    Useful for cleanup or before application exit.
    """
    global _engine, _SessionFactory

    _SessionFactory = None

    if _engine is not None:
        _engine.dispose()
        _engine = None

    logger.info("Database connections closed")


def initialize_app_database() -> None:
    """
    Initialize the application database.

    Creates the database file and tables if they don't exist.
    """
    config = get_config()

    if not config.database_exists():
        logger.info(f"Creating new database at: {config.database_path}")
    else:
        logger.info(f"Using existing database at: {config.database_url}")

    engine = get_engine()
    init_database(engine)

    if verify_database():
        logger.info("Database initialized and verified successfully")
    else:
        logger.warning("Database verification failed - tables may not exist")
