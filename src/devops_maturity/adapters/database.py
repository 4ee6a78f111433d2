"""Async database engine, session factory and request unit of work."""

from collections.abc import AsyncGenerator, Iterator
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from devops_maturity.core.errors import PersistenceError
from devops_maturity.core.models import Base
from devops_maturity.observability import get_logger
from devops_maturity.settings import Settings

logger = get_logger(__name__)

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def build_engine(settings: Settings) -> AsyncEngine:
    """Create the async engine with a per-statement timeout.

    For PostgreSQL (asyncpg) the timeout is enforced server-side through
    ``statement_timeout`` and client-side through ``command_timeout``.
    """
    kwargs: dict[str, object] = {"echo": settings.database_echo, "future": True}
    if settings.database_url.startswith("postgresql+asyncpg"):
        timeout = settings.database_statement_timeout_seconds
        kwargs["pool_size"] = settings.database_pool_size
        kwargs["connect_args"] = {
            "server_settings": {"statement_timeout": str(int(timeout * 1000))},
            "command_timeout": timeout,
        }
    return create_async_engine(settings.database_url, **kwargs)


def init_database(settings: Settings) -> async_sessionmaker[AsyncSession]:
    """Initialise the module-level engine and session factory."""
    global _engine, _session_factory
    _engine = build_engine(settings)
    _session_factory = async_sessionmaker(_engine, class_=AsyncSession, expire_on_commit=False)
    logger.info("Database initialised", dialect=_engine.dialect.name)
    return _session_factory


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the session factory created by ``init_database``.

    Raises:
        RuntimeError: If the database has not been initialised.
    """
    if _session_factory is None:
        raise RuntimeError("Database is not initialised; call init_database() first")
    return _session_factory


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding one transactional session per request.

    Commits when the request handler succeeds and rolls back otherwise, so a
    failed operation leaves no partial writes behind.
    """
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def create_schema(engine: AsyncEngine) -> None:
    """Create every table known to the ORM metadata."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_database() -> None:
    """Dispose of the engine's connection pool."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None


@contextmanager
def storage_errors(operation: str) -> Iterator[None]:
    """Translate storage failures into ``PersistenceError``.

    The raised error carries a fixed, storage-neutral message; the original
    exception is chained for logging only.

    Args:
        operation: Short name of the repository operation, for logs.
    """
    try:
        yield
    except (SQLAlchemyError, TimeoutError) as exc:
        logger.error("Storage operation failed", operation=operation, error=type(exc).__name__)
        raise PersistenceError(
            "The storage layer failed; please retry", {"operation": operation}
        ) from exc
