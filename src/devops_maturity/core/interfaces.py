"""Abstract interfaces (Protocol classes) for the DevOps Maturity service.

Services depend on these interfaces, not on concrete implementations.
Concrete repositories live in ``adapters/repositories/``; the catalog source
and password hasher live in ``adapters/``. Tests substitute ``AsyncMock`` or
small in-memory fakes.
"""

import uuid
from collections.abc import Sequence
from datetime import datetime
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class ICatalogSource(Protocol):
    """Source of the raw question and advice catalogs."""

    def read_questions(self) -> str | bytes:
        """Return the raw question catalog document.

        Raises:
            OSError: If the document cannot be read.
        """
        ...

    def read_advice(self) -> str | bytes:
        """Return the raw advice catalog document.

        Raises:
            OSError: If the document cannot be read.
        """
        ...


@runtime_checkable
class IAssessmentRepository(Protocol):
    """Repository interface for Assessment persistence."""

    async def create(
        self,
        team_id: uuid.UUID,
        created_by: uuid.UUID,
        session_token: str,
    ) -> Any:
        """Create a new in-progress assessment."""
        ...

    async def get_by_id(self, assessment_id: uuid.UUID) -> Any | None:
        """Retrieve an assessment by ID."""
        ...

    async def mark_completed(self, assessment_id: uuid.UUID, completed_at: datetime) -> bool:
        """Transition in_progress -> completed.

        Returns:
            False when no in-progress row matched, i.e. another caller
            completed the assessment first.
        """
        ...

    async def list_by_team(self, team_id: uuid.UUID, status: str | None) -> list[Any]:
        """List a team's assessments, newest first."""
        ...

    async def latest_completed_for_team(self, team_id: uuid.UUID) -> Any | None:
        """Return the most recently completed assessment of a team."""
        ...

    async def list_by_user(
        self, user_id: uuid.UUID, offset: int, limit: int
    ) -> tuple[list[Any], int]:
        """List assessments created by a user with total count."""
        ...

    async def delete(self, assessment_id: uuid.UUID) -> bool:
        """Delete an assessment and its dependent rows."""
        ...


@runtime_checkable
class IResponseRepository(Protocol):
    """The response ledger: selected answers per (assessment, question)."""

    async def save(
        self,
        assessment_id: uuid.UUID,
        question_id: str,
        answer_ids: Sequence[str],
    ) -> None:
        """Upsert the answer set for one question, replacing any prior set."""
        ...

    async def list_by_assessment(self, assessment_id: uuid.UUID) -> list[Any]:
        """Return ``ResponseRecord`` objects ordered by question ID."""
        ...


@runtime_checkable
class ISectionScoreRepository(Protocol):
    """Repository interface for persisted section scores."""

    async def save(
        self,
        assessment_id: uuid.UUID,
        section_name: str,
        score: float,
        max_score: float,
        percentage: float,
    ) -> None:
        """Upsert one section score."""
        ...

    async def list_by_assessment(self, assessment_id: uuid.UUID) -> list[Any]:
        """Return ``SectionScore`` objects ordered by section name."""
        ...


@runtime_checkable
class IPermissionLookup(Protocol):
    """Read access to team/group memberships and role definitions."""

    async def team_memberships(self, user_id: uuid.UUID) -> dict[uuid.UUID, uuid.UUID]:
        """Map each team the user belongs to onto the user's role ID there."""
        ...

    async def group_memberships(self, user_id: uuid.UUID) -> dict[uuid.UUID, uuid.UUID]:
        """Map each group the user belongs to onto the user's role ID there."""
        ...

    async def team_group(self, team_id: uuid.UUID) -> uuid.UUID | None:
        """Return the group a team belongs to, if any."""
        ...

    async def get_role(self, role_id: uuid.UUID) -> Any | None:
        """Return the ``Role`` with its permission set."""
        ...


@runtime_checkable
class ISessionRepository(Protocol):
    """Repository interface for authenticated sessions."""

    async def create(
        self,
        user_id: uuid.UUID,
        token: str,
        expires_at: datetime,
        now: datetime,
    ) -> Any:
        """Persist a new session."""
        ...

    async def get_by_token(self, token: str) -> Any | None:
        """Look up a session by its opaque token."""
        ...

    async def touch(self, token: str, now: datetime) -> None:
        """Refresh the session's last-activity timestamp."""
        ...

    async def extend(self, token: str, expires_at: datetime, now: datetime) -> bool:
        """Push expiry out for a still-valid session. False if none matched."""
        ...

    async def delete_by_token(self, token: str) -> bool:
        """Delete one session."""
        ...

    async def delete_by_user(self, user_id: uuid.UUID) -> int:
        """Delete every session of a user. Returns the number removed."""
        ...

    async def delete_expired(self, now: datetime) -> int:
        """Delete sessions whose expiry has passed. Returns the number removed."""
        ...

    async def list_active_for_user(self, user_id: uuid.UUID, now: datetime) -> list[Any]:
        """List a user's unexpired sessions, newest first."""
        ...


@runtime_checkable
class IUserRepository(Protocol):
    """The subset of user storage the auth flow needs."""

    async def get_by_id(self, user_id: uuid.UUID) -> Any | None:
        ...

    async def get_by_email(self, email: str) -> Any | None:
        ...

    async def update_password_hash(self, user_id: uuid.UUID, password_hash: str) -> None:
        ...

    async def record_login(self, user_id: uuid.UUID, when: datetime) -> None:
        ...


@runtime_checkable
class IPasswordHasher(Protocol):
    """One-way salted password hashing."""

    def hash(self, password: str) -> str:
        ...

    def verify(self, password: str, password_hash: str) -> bool:
        ...
