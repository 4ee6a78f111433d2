"""FastAPI router for login, logout, session extension and password changes.

API prefix: /api/v1
"""

import uuid

from fastapi import APIRouter, Depends, Path, status

from devops_maturity.api.dependencies import (
    CurrentSession,
    get_access_resolver,
    get_auth_service,
    get_bearer_token,
)
from devops_maturity.api.schemas.auth import (
    ChangePasswordRequest,
    ExtendSessionResponse,
    LoginRequest,
    ResetPasswordRequest,
    SessionInfo,
    SessionListResponse,
    SessionResponse,
)
from devops_maturity.core.permissions import Action, Resource
from devops_maturity.core.services import AccessResolver, AuthService
from devops_maturity.observability import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["Authentication"])


@router.post("/auth/login", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def login(
    body: LoginRequest,
    auth: AuthService = Depends(get_auth_service),
) -> SessionResponse:
    """Verify credentials and issue a session token."""
    session = await auth.login(body.email, body.password)
    return SessionResponse(token=session.token, user_id=session.user_id, expires_at=session.expires_at)


@router.post("/auth/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    _session: CurrentSession,
    token: str = Depends(get_bearer_token),
    auth: AuthService = Depends(get_auth_service),
) -> None:
    """Delete the caller's session."""
    await auth.logout(token)


@router.post("/auth/extend", response_model=ExtendSessionResponse)
async def extend_session(
    _session: CurrentSession,
    token: str = Depends(get_bearer_token),
    auth: AuthService = Depends(get_auth_service),
) -> ExtendSessionResponse:
    """Push the caller's session expiry out by one full session duration."""
    expires_at = await auth.extend_session(token)
    return ExtendSessionResponse(expires_at=expires_at)


@router.post("/auth/password", status_code=status.HTTP_204_NO_CONTENT)
async def change_password(
    body: ChangePasswordRequest,
    session: CurrentSession,
    auth: AuthService = Depends(get_auth_service),
) -> None:
    """Change the caller's password. Every session of the caller is revoked."""
    await auth.change_password(session.user_id, body.current_password, body.new_password)


@router.get("/auth/sessions", response_model=SessionListResponse)
async def list_sessions(
    session: CurrentSession,
    auth: AuthService = Depends(get_auth_service),
) -> SessionListResponse:
    """The caller's unexpired sessions, newest first."""
    active = await auth.active_sessions(session.user_id)
    items = [SessionInfo.model_validate(s) for s in active]
    return SessionListResponse(items=items, total=len(items))


@router.post("/users/{user_id}/password-reset", status_code=status.HTTP_204_NO_CONTENT)
async def reset_password(
    body: ResetPasswordRequest,
    session: CurrentSession,
    user_id: uuid.UUID = Path(..., description="User whose password is reset"),
    auth: AuthService = Depends(get_auth_service),
    access: AccessResolver = Depends(get_access_resolver),
) -> None:
    """Set another user's password. Requires ``user:update``."""
    await access.require_permission(session.user_id, Resource.USER, Action.UPDATE)
    await auth.reset_password(user_id, body.new_password)
    logger.info("Password reset by administrator", user_id=str(user_id), by=str(session.user_id))
