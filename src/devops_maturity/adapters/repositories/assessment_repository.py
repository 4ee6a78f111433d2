"""Repositories for assessments, the response ledger and section scores.

SQLAlchemy 2.0 async ORM over an ``AsyncSession`` owned by the caller (one
per request); repositories flush but never commit. Every storage failure is
translated into ``PersistenceError``.
"""

import uuid
from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from devops_maturity.adapters.database import storage_errors
from devops_maturity.core.models import (
    STATUS_COMPLETED,
    STATUS_IN_PROGRESS,
    Assessment,
    Response,
    SectionScoreRow,
)
from devops_maturity.core.scoring import ResponseRecord, SectionScore
from devops_maturity.observability import get_logger

logger = get_logger(__name__)


def upsert_insert(session: AsyncSession, model: type) -> postgresql.Insert | sqlite.Insert:
    """Return a dialect-specific INSERT supporting ON CONFLICT DO UPDATE.

    Raises:
        NotImplementedError: For dialects without ON CONFLICT support.
    """
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert(model)
    if dialect == "sqlite":
        return sqlite.insert(model)
    raise NotImplementedError(f"Upsert is not supported for dialect {dialect!r}")


class AssessmentRepository:
    """Repository for Assessment persistence."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialise with an async database session.

        Args:
            session: SQLAlchemy async session.
        """
        self._session = session

    async def create(
        self,
        team_id: uuid.UUID,
        created_by: uuid.UUID,
        session_token: str,
    ) -> Assessment:
        """Persist a new in-progress assessment.

        Args:
            team_id: Team taking the assessment.
            created_by: User starting it.
            session_token: Opaque correlation token.

        Returns:
            The persisted Assessment.
        """
        record = Assessment(
            team_id=team_id,
            created_by=created_by,
            session_token=session_token,
            status=STATUS_IN_PROGRESS,
        )
        with storage_errors("assessment.create"):
            self._session.add(record)
            await self._session.flush()
            await self._session.refresh(record)

        logger.debug("Assessment persisted", assessment_id=str(record.id), team_id=str(team_id))
        return record

    async def get_by_id(self, assessment_id: uuid.UUID) -> Assessment | None:
        with storage_errors("assessment.get_by_id"):
            return await self._session.get(Assessment, assessment_id)

    async def mark_completed(self, assessment_id: uuid.UUID, completed_at: datetime) -> bool:
        """Conditionally transition in_progress -> completed.

        The WHERE clause on the current status makes concurrent completions
        race safely: exactly one UPDATE matches the row.

        Returns:
            True if this call performed the transition.
        """
        with storage_errors("assessment.mark_completed"):
            result = await self._session.execute(
                update(Assessment)
                .where(Assessment.id == assessment_id, Assessment.status == STATUS_IN_PROGRESS)
                .values(status=STATUS_COMPLETED, completed_at=completed_at)
            )
            await self._session.flush()
            completed = result.rowcount == 1
            if completed:
                # reload server-side onupdate columns the bulk UPDATE expired
                await self._session.get(Assessment, assessment_id, populate_existing=True)
        return completed

    async def list_by_team(self, team_id: uuid.UUID, status: str | None) -> list[Assessment]:
        query = select(Assessment).where(Assessment.team_id == team_id)
        if status is not None:
            query = query.where(Assessment.status == status)
        query = query.order_by(Assessment.created_at.desc(), Assessment.id)
        with storage_errors("assessment.list_by_team"):
            result = await self._session.execute(query)
        return list(result.scalars().all())

    async def latest_completed_for_team(self, team_id: uuid.UUID) -> Assessment | None:
        with storage_errors("assessment.latest_completed_for_team"):
            result = await self._session.execute(
                select(Assessment)
                .where(Assessment.team_id == team_id, Assessment.status == STATUS_COMPLETED)
                .order_by(Assessment.completed_at.desc())
                .limit(1)
            )
        return result.scalars().first()

    async def list_by_user(
        self, user_id: uuid.UUID, offset: int, limit: int
    ) -> tuple[list[Assessment], int]:
        """List assessments created by a user.

        Returns:
            Tuple of (page of assessments newest first, total count).
        """
        with storage_errors("assessment.list_by_user"):
            total = await self._session.scalar(
                select(func.count(Assessment.id)).where(Assessment.created_by == user_id)
            )
            result = await self._session.execute(
                select(Assessment)
                .where(Assessment.created_by == user_id)
                .order_by(Assessment.created_at.desc(), Assessment.id)
                .offset(offset)
                .limit(limit)
            )
        return list(result.scalars().all()), int(total or 0)

    async def delete(self, assessment_id: uuid.UUID) -> bool:
        """Delete an assessment together with its responses and scores."""
        with storage_errors("assessment.delete"):
            await self._session.execute(
                delete(Response).where(Response.assessment_id == assessment_id)
            )
            await self._session.execute(
                delete(SectionScoreRow).where(SectionScoreRow.assessment_id == assessment_id)
            )
            result = await self._session.execute(
                delete(Assessment).where(Assessment.id == assessment_id)
            )
            await self._session.flush()
        return result.rowcount == 1


class ResponseRepository:
    """The response ledger.

    At most one row per (assessment, question); saving again replaces the
    answer set atomically through an ON CONFLICT upsert.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def save(
        self,
        assessment_id: uuid.UUID,
        question_id: str,
        answer_ids: Sequence[str],
    ) -> None:
        """Upsert the answer set for one question.

        Duplicate answer IDs are collapsed, keeping first-seen order.
        """
        unique_ids = list(dict.fromkeys(answer_ids))
        stmt = upsert_insert(self._session, Response).values(
            id=uuid.uuid4(),
            assessment_id=assessment_id,
            question_id=question_id,
            answer_ids=unique_ids,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["assessment_id", "question_id"],
            set_={"answer_ids": stmt.excluded.answer_ids, "updated_at": func.now()},
        )
        with storage_errors("response.save"):
            await self._session.execute(stmt)
            await self._session.flush()

        logger.debug(
            "Response saved",
            assessment_id=str(assessment_id),
            question_id=question_id,
            answer_count=len(unique_ids),
        )

    async def list_by_assessment(self, assessment_id: uuid.UUID) -> list[ResponseRecord]:
        with storage_errors("response.list_by_assessment"):
            result = await self._session.execute(
                select(Response.question_id, Response.answer_ids)
                .where(Response.assessment_id == assessment_id)
                .order_by(Response.question_id)
            )
        return [
            ResponseRecord(question_id=question_id, answer_ids=tuple(answer_ids or ()))
            for question_id, answer_ids in result.all()
        ]


class SectionScoreRepository:
    """Repository for persisted section scores."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def save(
        self,
        assessment_id: uuid.UUID,
        section_name: str,
        score: float,
        max_score: float,
        percentage: float,
    ) -> None:
        stmt = upsert_insert(self._session, SectionScoreRow).values(
            id=uuid.uuid4(),
            assessment_id=assessment_id,
            section_name=section_name,
            score=score,
            max_score=max_score,
            percentage=percentage,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["assessment_id", "section_name"],
            set_={
                "score": stmt.excluded.score,
                "max_score": stmt.excluded.max_score,
                "percentage": stmt.excluded.percentage,
            },
        )
        with storage_errors("section_score.save"):
            await self._session.execute(stmt)
            await self._session.flush()

    async def list_by_assessment(self, assessment_id: uuid.UUID) -> list[SectionScore]:
        with storage_errors("section_score.list_by_assessment"):
            result = await self._session.execute(
                select(SectionScoreRow)
                .where(SectionScoreRow.assessment_id == assessment_id)
                .order_by(SectionScoreRow.section_name)
            )
        return [
            SectionScore(
                name=row.section_name,
                score=row.score,
                max_score=row.max_score,
                percentage=row.percentage,
            )
            for row in result.scalars().all()
        ]
