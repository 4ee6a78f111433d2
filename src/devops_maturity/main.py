"""DevOps Maturity Assessment service entry point."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from devops_maturity import __version__
from devops_maturity.adapters.database import close_database, init_database
from devops_maturity.adapters.repositories import SessionRepository
from devops_maturity.adapters.session_sweeper import SessionSweeper
from devops_maturity.api.dependencies import get_settings
from devops_maturity.api.router import router
from devops_maturity.core.errors import (
    AlreadyExistsError,
    AuthenticationError,
    DevOpsMaturityError,
    InvalidStateError,
    MalformedInputError,
    NotFoundError,
    PermissionDeniedError,
    PersistenceError,
    SourceUnreadableError,
)
from devops_maturity.observability import configure_logging, get_logger
from devops_maturity.settings import Settings

logger = get_logger(__name__)

# Checked in order; subclasses must precede their bases.
ERROR_STATUS: tuple[tuple[type[DevOpsMaturityError], int], ...] = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (AlreadyExistsError, status.HTTP_409_CONFLICT),
    (InvalidStateError, status.HTTP_409_CONFLICT),
    (PermissionDeniedError, status.HTTP_403_FORBIDDEN),
    (AuthenticationError, status.HTTP_401_UNAUTHORIZED),
    (MalformedInputError, 422),
    (SourceUnreadableError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (PersistenceError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def status_for(exc: DevOpsMaturityError) -> int:
    for error_type, status_code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def handle_domain_error(request: Request, exc: DevOpsMaturityError) -> JSONResponse:
    """Map a domain error onto its HTTP status. Only the message is exposed."""
    status_code = status_for(exc)
    if status_code == status.HTTP_403_FORBIDDEN:
        logger.warning("Permission denied", path=request.url.path, **exc.details)
    headers = {"WWW-Authenticate": "Bearer"} if status_code == status.HTTP_401_UNAUTHORIZED else None
    return JSONResponse(status_code=status_code, content={"detail": exc.message}, headers=headers)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the FastAPI application.

    Args:
        settings: Explicit settings; read from the environment when omitted.

    Returns:
        The configured application.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Manage application startup and shutdown lifecycle.

        Args:
            app: The FastAPI application instance.

        Yields:
            None
        """
        configure_logging(settings.log_level, settings.log_json)
        session_factory = init_database(settings)

        sweeper = None
        if settings.session_cleanup_enabled:
            sessions = SessionRepository(session_factory)

            async def cleanup() -> int:
                return await sessions.delete_expired(datetime.now(tz=timezone.utc))

            sweeper = SessionSweeper(cleanup, settings.session_cleanup_interval_seconds)
            sweeper.start()

        logger.info("Service started", service=settings.service_name, version=__version__)
        yield

        if sweeper is not None:
            await sweeper.stop()
        await close_database()

    app = FastAPI(title=settings.service_name, version=__version__, lifespan=lifespan)
    app.add_exception_handler(DevOpsMaturityError, handle_domain_error)  # type: ignore[arg-type]
    app.include_router(router, prefix="/api/v1")

    @app.get("/health", tags=["Health"])
    async def health() -> dict[str, str]:
        return {"status": "ok", "version": __version__}

    return app


app: FastAPI = create_app()
