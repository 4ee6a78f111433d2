"""ORM models for assessments, their responses and section scores."""

import uuid
from datetime import datetime

from sqlalchemy import (
    JSON,
    DateTime,
    Float,
    ForeignKey,
    String,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from devops_maturity.core.models.base import Base

STATUS_IN_PROGRESS = "in_progress"
STATUS_COMPLETED = "completed"


class Assessment(Base):
    """One run of the questionnaire by a team.

    Status is a two-state machine: ``in_progress`` -> ``completed``.
    ``completed_at`` is written once, by the conditional transition.

    Table: assessments
    """

    __tablename__ = "assessments"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        comment="Primary key UUID",
    )
    team_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("teams.id"),
        nullable=False,
        index=True,
        comment="Team taking the assessment",
    )
    created_by: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id"),
        nullable=False,
        index=True,
        comment="User who started the assessment",
    )
    session_token: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="Opaque correlation token issued at start",
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=STATUS_IN_PROGRESS,
        index=True,
        comment="in_progress | completed",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Set once at the in_progress -> completed transition",
    )


class Response(Base):
    """Selected answers for one question of one assessment.

    Table: responses
    """

    __tablename__ = "responses"
    __table_args__ = (
        UniqueConstraint("assessment_id", "question_id", name="uq_responses_assessment_question"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    assessment_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("assessments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    question_id: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="Positional question ID, e.g. S1-Q3",
    )
    answer_ids: Mapped[list[str]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        comment="Selected answer IDs, e.g. [\"S1-Q3-A2\"]",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )


class SectionScoreRow(Base):
    """Persisted score of one section of a completed assessment.

    Table: section_scores
    """

    __tablename__ = "section_scores"
    __table_args__ = (
        UniqueConstraint("assessment_id", "section_name", name="uq_section_scores_assessment_section"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    assessment_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("assessments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    section_name: Mapped[str] = mapped_column(String(255), nullable=False)
    score: Mapped[float] = mapped_column(Float, nullable=False)
    max_score: Mapped[float] = mapped_column(Float, nullable=False)
    percentage: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        comment="score / max_score * 100",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
