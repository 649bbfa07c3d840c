import asyncio
import logging
from functools import wraps
from typing import Any, AsyncGenerator, Awaitable, Callable, Optional, Tuple, TypeVar

from asyncpg.exceptions import ConnectionDoesNotExistError, ConnectionFailureError
from sqlalchemy.exc import DisconnectionError, OperationalError, SQLAlchemyError, TimeoutError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import text

from .config import (
    DATABASE_URL,
    DB_MAX_OVERFLOW,
    DB_POOL_RECYCLE,
    DB_POOL_SIZE,
    DB_POOL_TIMEOUT,
    DB_RETRY_ATTEMPTS,
    DB_RETRY_DELAY,
)
from .exceptions import DatabaseConnectionError, DatabaseTimeoutError

logger = logging.getLogger(__name__)

engine = create_async_engine(
    DATABASE_URL,
    echo=False,
    pool_size=DB_POOL_SIZE,
    max_overflow=DB_MAX_OVERFLOW,
    pool_timeout=DB_POOL_TIMEOUT,
    pool_recycle=DB_POOL_RECYCLE,
    pool_pre_ping=True,
)

async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

Base = declarative_base()

F = TypeVar("F", bound=Callable[..., Any])

CONNECTION_ERRORS = (
    ConnectionFailureError,
    ConnectionDoesNotExistError,
    DisconnectionError,
)
RETRYABLE_ERRORS = CONNECTION_ERRORS + (OperationalError, TimeoutError)


def _give_up(func_name: str, attempts: int, error: Exception) -> Exception:
    """Exception raised once every attempt of ``func_name`` has failed"""
    logger.error(
        f"{func_name} gave up after {attempts} attempts: {error}",
        extra={"function": func_name, "max_attempts": attempts},
    )
    if isinstance(error, CONNECTION_ERRORS):
        return DatabaseConnectionError(
            f"Database unreachable after {attempts} attempts"
        )
    if isinstance(error, TimeoutError):
        return DatabaseTimeoutError(func_name, DB_POOL_TIMEOUT)
    return error


def db_retry(
    max_attempts: Optional[int] = None,
    delay: Optional[float] = None,
    backoff_factor: float = 2.0,
    exceptions: Tuple[type, ...] = RETRYABLE_ERRORS,
) -> Callable[[F], F]:
    """
    Retry an async database call with exponential backoff.

    Only ``exceptions`` are retried. Attempts and the first delay default to
    ``DB_RETRY_ATTEMPTS`` and ``DB_RETRY_DELAY``. Connection failures end as
    ``DatabaseConnectionError`` and timeouts as ``DatabaseTimeoutError``.
    """
    attempts = max_attempts or DB_RETRY_ATTEMPTS
    first_delay = DB_RETRY_DELAY if delay is None else delay

    def decorator(func: F) -> F:
        @wraps(func)
        async def wrapper(*args, **kwargs):
            wait = first_delay
            for attempt in range(1, attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except exceptions as e:
                    if attempt == attempts:
                        raise _give_up(func.__name__, attempts, e) from e
                    logger.warning(
                        f"{func.__name__} failed, retrying in {wait:.1f}s "
                        f"({attempt}/{attempts}): {e}",
                        extra={
                            "function": func.__name__,
                            "attempt": attempt,
                            "exception_type": type(e).__name__,
                        },
                    )
                    await asyncio.sleep(wait)
                    wait *= backoff_factor

        return wrapper

    return decorator


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session, rolled back if the request fails"""
    async with async_session() as session:
        try:
            yield session
        except Exception as e:
            await session.rollback()
            logger.error(f"Session rolled back: {e}")
            raise


class DatabaseManager:
    """Startup and shutdown hooks for the shared engine"""

    @staticmethod
    @db_retry()
    async def create_tables():
        # models must be registered on Base.metadata before create_all
        import app.clubs.models  # noqa: F401

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables are in place")

    @staticmethod
    @db_retry()
    async def check_connection() -> bool:
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            logger.error(f"Database ping failed: {e}")
            raise DatabaseConnectionError("Database connection check failed")
        logger.info("Database ping succeeded")
        return True

    @staticmethod
    async def close_connections():
        try:
            await engine.dispose()
        except SQLAlchemyError as e:
            logger.error(f"Could not dispose the database engine: {e}")
            return
        logger.info("Database engine disposed")


db_manager = DatabaseManager()


async def with_db_transaction(
    session: AsyncSession,
    operation: Callable[..., Awaitable[Any]],
    *args,
    **kwargs,
):
    """
    Run ``operation(session, *args, **kwargs)`` and commit.

    Either every write made by ``operation`` is committed or none is: on any
    error the session is rolled back and the error propagates. A rollback
    expires loaded objects, so callers read ids they need beforehand.
    """
    try:
        result = await operation(session, *args, **kwargs)
        await session.commit()
    except Exception as e:
        await session.rollback()
        logger.error(
            f"Transaction {getattr(operation, '__name__', operation)} rolled back: {e}"
        )
        raise
    return result


def db_operation(func: F) -> F:
    """Log SQLAlchemy failures of a crud read with the function name"""

    @wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except SQLAlchemyError as e:
            logger.error(
                f"{func.__name__} failed: {e}",
                extra={"operation": func.__name__, "exception_type": type(e).__name__},
            )
            raise

    return wrapper
