"""Database layer for stored session values.

One engine per process, created by ``init_db()`` from DATABASE_URL (or an
explicit URL). The key-value helpers take an open session; ``read_value``,
``write_value`` and ``remove_value`` each run one transaction and retry it
on transient errors such as a locked SQLite file or a dropped connection.
"""

import functools
import time
from contextlib import contextmanager
from typing import Any, Callable, Final, Generator, TypeVar

from sqlalchemy import create_engine, exc, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from kb_studio.database.models import Base, StoredValue
from kb_studio.utils.config import get_settings
from kb_studio.utils.logging_config import get_logger

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None

T = TypeVar("T")

TRANSIENT_ERROR_MARKERS: Final[tuple[str, ...]] = (
    "connection refused",
    "connection reset",
    "connection timed out",
    "server closed the connection",
    "could not connect",
    "database is locked",
    "deadlock",
    "lock timeout",
)


class DatabaseError(Exception):
    """Base exception for database errors."""


class DatabaseConnectionError(DatabaseError):
    """No database is configured or it cannot be reached."""


class DatabaseRetryError(DatabaseError):
    """A transient error persisted through every retry."""


def _get_logger():
    """Get logger instance lazily to avoid import-time config loading."""
    return get_logger(__name__)


def _is_transient_error(error: Exception) -> bool:
    """Operational errors and known connection/lock messages are worth retrying."""
    if isinstance(error, exc.OperationalError):
        return True
    message = str(error).lower()
    return any(marker in message for marker in TRANSIENT_ERROR_MARKERS)


def retry_on_transient_error(
    max_retries: int | None = None, delay: float | None = None
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Retry a database operation with exponential backoff.

    Args:
        max_retries: Retries after the first attempt (defaults to DB_MAX_RETRIES)
        delay: Initial backoff in seconds (defaults to DB_RETRY_DELAY)

    Non-transient errors are raised immediately. When every attempt fails
    with a transient error, ``DatabaseRetryError`` is raised from the last one.
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> T:
            settings = get_settings()
            retries = max_retries if max_retries is not None else settings.DB_MAX_RETRIES
            backoff = delay if delay is not None else settings.DB_RETRY_DELAY
            attempts = retries + 1

            for attempt in range(1, attempts + 1):
                try:
                    return func(*args, **kwargs)
                except Exception as e:
                    if not _is_transient_error(e):
                        raise
                    last_error = e
                    fields = {
                        "operation": func.__name__,
                        "attempt": attempt,
                        "max_attempts": attempts,
                        "error_type": type(e).__name__,
                    }
                    if attempt == attempts:
                        _get_logger().error(
                            "Database operation failed on every attempt",
                            extra={"extra_fields": fields},
                        )
                        break
                    wait = backoff * (2 ** (attempt - 1))
                    _get_logger().warning(
                        "Transient database error, retrying",
                        extra={"extra_fields": {**fields, "retry_in": wait}},
                    )
                    time.sleep(wait)

            raise DatabaseRetryError(
                f"Failed after {attempts} attempts. Last error: {last_error}"
            ) from last_error

        return wrapper

    return decorator


def init_db(database_url: str | None = None, *, create_tables: bool = True) -> None:
    """Create the engine and session factory.

    Args:
        database_url: Overrides DATABASE_URL
        create_tables: Create the ``stored_values`` table if missing

    Raises:
        DatabaseConnectionError: If no URL is given or configured
        DatabaseError: If the engine cannot be created
    """
    global _engine, _session_factory

    settings = get_settings()
    url = database_url or settings.get_database_url()
    if not url:
        raise DatabaseConnectionError(
            "DATABASE_URL is not configured. Please set it in environment variables."
        )

    engine_options: dict[str, Any] = {"pool_pre_ping": True, "echo": settings.DEBUG}
    if not url.startswith("sqlite"):
        engine_options.update(
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_timeout=settings.DB_POOL_TIMEOUT,
        )

    try:
        _engine = create_engine(url, **engine_options)
        _session_factory = sessionmaker(bind=_engine, autoflush=False, expire_on_commit=False)
        if create_tables:
            Base.metadata.create_all(_engine)
    except Exception as e:
        _get_logger().error(
            "Database initialization failed",
            extra={"extra_fields": {"error_type": type(e).__name__}},
        )
        raise DatabaseError(f"Database initialization failed: {e}") from e

    _get_logger().info(
        "Database initialized", extra={"extra_fields": {"dialect": _engine.dialect.name}}
    )


def get_engine() -> Engine:
    """The initialized engine.

    Raises:
        DatabaseError: If ``init_db()`` has not been called
    """
    if _engine is None:
        raise DatabaseError("Database engine not initialized. Call init_db() first.")
    return _engine


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """Transaction scope: commit on success, roll back on error, always close.

    Raises:
        DatabaseError: If ``init_db()`` has not been called
    """
    if _session_factory is None:
        raise DatabaseError("Database session factory not initialized. Call init_db() first.")

    session = _session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


@retry_on_transient_error()
def health_check() -> bool:
    """Run ``SELECT 1`` against the engine."""
    with get_engine().connect() as conn:
        conn.execute(text("SELECT 1"))
    return True


def close_db() -> None:
    """Dispose of the engine; no-op when not initialized."""
    global _engine, _session_factory

    if _engine is None:
        return
    _engine.dispose()
    _engine = None
    _session_factory = None
    _get_logger().info("Database connections closed")


# ============================================================================
# Key-value helpers
# ============================================================================


def get_value(session: Session, key: str) -> str | None:
    """Serialized value under key, or None."""
    row = session.get(StoredValue, key)
    return row.value if row is not None else None


def set_value(session: Session, key: str, value: str) -> StoredValue:
    """Insert or overwrite the value under key. The caller commits."""
    row = session.get(StoredValue, key)
    if row is None:
        row = StoredValue(key=key, value=value)
        session.add(row)
    else:
        row.value = value
    session.flush()
    return row


def delete_value(session: Session, key: str) -> bool:
    """Delete the value under key.

    Returns:
        True if a row was deleted
    """
    row = session.get(StoredValue, key)
    if row is None:
        return False
    session.delete(row)
    session.flush()
    return True


@retry_on_transient_error()
def read_value(key: str) -> str | None:
    with get_session() as session:
        return get_value(session, key)


@retry_on_transient_error()
def write_value(key: str, value: str) -> None:
    with get_session() as session:
        set_value(session, key, value)


@retry_on_transient_error()
def remove_value(key: str) -> bool:
    with get_session() as session:
        return delete_value(session, key)
