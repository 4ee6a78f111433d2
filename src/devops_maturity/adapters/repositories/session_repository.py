"""Repository for authenticated sessions.

Unlike the other repositories this one owns its transactions: each call
opens a session from the factory and commits on success. The lazy delete of
an expired session must persist even though the caller then raises
``SessionExpiredError`` and the request's own transaction is rolled back.
"""

import uuid
from datetime import datetime

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from devops_maturity.adapters.database import storage_errors
from devops_maturity.core.models import UserSession
from devops_maturity.observability import get_logger

logger = get_logger(__name__)


class SessionRepository:
    """Session storage with one committed transaction per call.

    Args:
        session_factory: Factory producing ``AsyncSession`` instances. It must
            be built with ``expire_on_commit=False`` so returned rows stay
            readable after their transaction commits.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def create(
        self,
        user_id: uuid.UUID,
        token: str,
        expires_at: datetime,
        now: datetime,
    ) -> UserSession:
        record = UserSession(
            user_id=user_id,
            token=token,
            expires_at=expires_at,
            created_at=now,
            updated_at=now,
        )
        with storage_errors("session.create"):
            async with self._session_factory.begin() as session:
                session.add(record)
                await session.flush()
                await session.refresh(record)
        logger.debug("Session persisted", session_id=str(record.id), user_id=str(user_id))
        return record

    async def get_by_token(self, token: str) -> UserSession | None:
        with storage_errors("session.get_by_token"):
            async with self._session_factory() as session:
                return await session.scalar(select(UserSession).where(UserSession.token == token))

    async def touch(self, token: str, now: datetime) -> None:
        with storage_errors("session.touch"):
            async with self._session_factory.begin() as session:
                await session.execute(
                    update(UserSession).where(UserSession.token == token).values(updated_at=now)
                )

    async def extend(self, token: str, expires_at: datetime, now: datetime) -> bool:
        """Push expiry out, only for a session that has not yet expired.

        A session is still live at the instant it expires.
        """
        with storage_errors("session.extend"):
            async with self._session_factory.begin() as session:
                result = await session.execute(
                    update(UserSession)
                    .where(UserSession.token == token, UserSession.expires_at >= now)
                    .values(expires_at=expires_at, updated_at=now)
                )
        return result.rowcount > 0

    async def delete_by_token(self, token: str) -> bool:
        with storage_errors("session.delete_by_token"):
            async with self._session_factory.begin() as session:
                result = await session.execute(delete(UserSession).where(UserSession.token == token))
        return result.rowcount > 0

    async def delete_by_user(self, user_id: uuid.UUID) -> int:
        with storage_errors("session.delete_by_user"):
            async with self._session_factory.begin() as session:
                result = await session.execute(
                    delete(UserSession).where(UserSession.user_id == user_id)
                )
        return result.rowcount

    async def delete_expired(self, now: datetime) -> int:
        with storage_errors("session.delete_expired"):
            async with self._session_factory.begin() as session:
                result = await session.execute(
                    delete(UserSession).where(UserSession.expires_at < now)
                )
        return result.rowcount

    async def list_active_for_user(self, user_id: uuid.UUID, now: datetime) -> list[UserSession]:
        with storage_errors("session.list_active_for_user"):
            async with self._session_factory() as session:
                result = await session.execute(
                    select(UserSession)
                    .where(UserSession.user_id == user_id, UserSession.expires_at >= now)
                    .order_by(UserSession.created_at.desc())
                )
                return list(result.scalars().all())
