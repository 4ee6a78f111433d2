"""Session issuance, validation and password changes.

Sessions are opaque random tokens with a fixed validity window. Validation
never extends expiry; it only refreshes the last-activity timestamp.
Extension is a separate, explicit call. Changing or resetting a password
deletes every session of the user.
"""

import secrets
import uuid
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

from devops_maturity.core.errors import (
    InvalidCredentialsError,
    SessionExpiredError,
    SessionNotFoundError,
    UserInactiveError,
    UserNotFoundError,
)
from devops_maturity.core.interfaces import IPasswordHasher, ISessionRepository, IUserRepository
from devops_maturity.observability import get_logger

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive timestamps read back from storage."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class AuthService:
    """Authenticates users and manages their sessions.

    Args:
        session_repository: Session storage.
        user_repository: User storage.
        password_hasher: One-way password hasher.
        session_duration: Validity window of a new or extended session.
        token_bytes: Random bytes per token; at least 32.
        clock: Returns the current UTC time; injectable for tests.
    """

    def __init__(
        self,
        session_repository: ISessionRepository,
        user_repository: IUserRepository,
        password_hasher: IPasswordHasher,
        session_duration: timedelta = timedelta(days=7),
        token_bytes: int = 32,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if token_bytes < 32:
            raise ValueError("token_bytes must be at least 32")
        self._sessions = session_repository
        self._users = user_repository
        self._hasher = password_hasher
        self._duration = session_duration
        self._token_bytes = token_bytes
        self._clock = clock

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    async def create_session(self, user_id: uuid.UUID) -> Any:
        """Issue a new session for a user."""
        now = self._clock()
        token = secrets.token_urlsafe(self._token_bytes)
        session = await self._sessions.create(
            user_id=user_id,
            token=token,
            expires_at=now + self._duration,
            now=now,
        )
        logger.info("Session issued", user_id=str(user_id), session_id=str(session.id))
        return session

    async def validate_session(self, token: str) -> Any:
        """Return the session for ``token`` if it is still valid.

        An expired session is deleted before the error is raised, so a
        second lookup with the same token reports ``SessionNotFoundError``.

        Raises:
            SessionNotFoundError: If no session has that token.
            SessionExpiredError: If the session has expired.
        """
        session = await self._sessions.get_by_token(token)
        if session is None:
            raise SessionNotFoundError("Session not found")

        now = self._clock()
        if now > as_utc(session.expires_at):
            await self._sessions.delete_by_token(token)
            logger.warning("Expired session rejected", session_id=str(session.id))
            raise SessionExpiredError("Session expired", {"session_id": str(session.id)})

        await self._sessions.touch(token, now)
        return session

    async def extend_session(self, token: str) -> datetime:
        """Push a valid session's expiry to now + session duration.

        Returns:
            The new expiry.

        Raises:
            SessionNotFoundError: If no unexpired session has that token.
        """
        now = self._clock()
        expires_at = now + self._duration
        if not await self._sessions.extend(token, expires_at, now):
            raise SessionNotFoundError("Session not found or already expired")
        return expires_at

    async def logout(self, token: str) -> bool:
        return await self._sessions.delete_by_token(token)

    async def invalidate_user_sessions(self, user_id: uuid.UUID) -> int:
        """Delete every session of a user, forcing re-authentication everywhere."""
        removed = await self._sessions.delete_by_user(user_id)
        logger.info("User sessions invalidated", user_id=str(user_id), count=removed)
        return removed

    async def active_sessions(self, user_id: uuid.UUID) -> list[Any]:
        return await self._sessions.list_active_for_user(user_id, self._clock())

    async def cleanup_expired_sessions(self) -> int:
        return await self._sessions.delete_expired(self._clock())

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------

    async def login(self, email: str, password: str) -> Any:
        """Verify credentials and issue a session.

        Raises:
            InvalidCredentialsError: If the email is unknown or the password
                does not verify. Both cases report the same error.
            UserInactiveError: If the account is deactivated.
        """
        user = await self._users.get_by_email(email)
        if user is None or not self._hasher.verify(password, user.password_hash):
            raise InvalidCredentialsError("Invalid email or password")
        if not user.is_active:
            raise UserInactiveError("User account is inactive", {"user_id": str(user.id)})

        await self._users.record_login(user.id, self._clock())
        return await self.create_session(user.id)

    async def _get_user(self, user_id: uuid.UUID) -> Any:
        user = await self._users.get_by_id(user_id)
        if user is None:
            raise UserNotFoundError(f"User {user_id} not found", {"user_id": str(user_id)})
        return user

    async def change_password(self, user_id: uuid.UUID, current_password: str, new_password: str) -> None:
        """Change a user's own password and sign them out everywhere.

        Raises:
            UserNotFoundError: If the user does not exist.
            InvalidCredentialsError: If ``current_password`` does not verify.
        """
        user = await self._get_user(user_id)
        if not self._hasher.verify(current_password, user.password_hash):
            raise InvalidCredentialsError("Current password is incorrect")

        await self._users.update_password_hash(user_id, self._hasher.hash(new_password))
        await self.invalidate_user_sessions(user_id)
        logger.info("Password changed", user_id=str(user_id))

    async def reset_password(self, user_id: uuid.UUID, new_password: str) -> None:
        """Set a user's password administratively and sign them out everywhere.

        Raises:
            UserNotFoundError: If the user does not exist.
        """
        await self._get_user(user_id)
        await self._users.update_password_hash(user_id, self._hasher.hash(new_password))
        await self.invalidate_user_sessions(user_id)
        logger.info("Password reset", user_id=str(user_id))
