"""FastAPI dependency factories.

Each request gets one transactional ``AsyncSession`` (see
``adapters.database.get_db_session``); every repository built for that
request shares it. Session storage is the exception and runs its own
transactions through the session factory.
"""

from datetime import timedelta
from functools import lru_cache
from typing import Annotated, Any

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from devops_maturity.adapters.catalog_source import JsonFileCatalogSource
from devops_maturity.adapters.database import get_db_session, get_session_factory
from devops_maturity.adapters.password_hasher import Argon2PasswordHasher
from devops_maturity.adapters.repositories import (
    AssessmentRepository,
    PermissionLookupRepository,
    ResponseRepository,
    SectionScoreRepository,
    SessionRepository,
    UserRepository,
)
from devops_maturity.core.catalog import QuestionCatalog
from devops_maturity.core.errors import SessionNotFoundError
from devops_maturity.core.services import AccessResolver, AssessmentService, AuthService
from devops_maturity.settings import Settings

_bearer = HTTPBearer(auto_error=False, description="Opaque session token issued at login")


@lru_cache
def get_settings() -> Settings:
    return Settings()


@lru_cache
def get_password_hasher() -> Argon2PasswordHasher:
    return Argon2PasswordHasher()


def get_question_catalog(settings: Settings = Depends(get_settings)) -> QuestionCatalog:
    """Build the catalog loader over the configured JSON files."""
    return QuestionCatalog(JsonFileCatalogSource(settings.questions_file, settings.advice_file))


def get_session_repository() -> SessionRepository:
    return SessionRepository(get_session_factory())


def get_assessment_service(
    session: AsyncSession = Depends(get_db_session),
    catalog: QuestionCatalog = Depends(get_question_catalog),
) -> AssessmentService:
    """Build AssessmentService with injected dependencies."""
    return AssessmentService(
        catalog=catalog,
        assessment_repository=AssessmentRepository(session),
        response_repository=ResponseRepository(session),
        section_score_repository=SectionScoreRepository(session),
    )


def get_access_resolver(session: AsyncSession = Depends(get_db_session)) -> AccessResolver:
    """Build AccessResolver with injected dependencies."""
    return AccessResolver(PermissionLookupRepository(session))


def get_auth_service(
    session: AsyncSession = Depends(get_db_session),
    session_repository: SessionRepository = Depends(get_session_repository),
    settings: Settings = Depends(get_settings),
    hasher: Argon2PasswordHasher = Depends(get_password_hasher),
) -> AuthService:
    """Build AuthService with injected dependencies."""
    return AuthService(
        session_repository=session_repository,
        user_repository=UserRepository(session),
        password_hasher=hasher,
        session_duration=timedelta(seconds=settings.session_duration_seconds),
        token_bytes=settings.session_token_bytes,
    )


def get_bearer_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
) -> str:
    """Return the raw bearer token.

    Raises:
        SessionNotFoundError: If no bearer token was sent.
    """
    if credentials is None or not credentials.credentials:
        raise SessionNotFoundError("Missing session token")
    return credentials.credentials


async def get_current_session(
    token: str = Depends(get_bearer_token),
    auth: AuthService = Depends(get_auth_service),
) -> Any:
    """Validate the caller's session and return it."""
    return await auth.validate_session(token)


CurrentSession = Annotated[Any, Depends(get_current_session)]
