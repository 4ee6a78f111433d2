"""Service layer owning the assessment lifecycle.

Implements the questionnaire flow:
    1. start_assessment()    : creates an in-progress assessment, returns the catalog
    2. save_section()        : stores the selections submitted for one section
    3. complete_assessment() : scores, persists section totals, transitions to completed
    4. get_results()         : persisted section totals plus live subcategory breakdown
    5. export_csv()          : per-question CSV of a completed assessment

State machine: ``in_progress`` -> ``completed``. There is no way back.

All database access goes through repository interfaces. No session, engine or
FastAPI imports belong here; those live in the adapters and api layers.
"""

import secrets
import uuid
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, TextIO

from devops_maturity.core.catalog import BANNER, CHECKBOX, OPTION, Advice, Catalog, QuestionCatalog
from devops_maturity.core.errors import (
    AssessmentAlreadyCompletedError,
    AssessmentNotCompletedError,
    AssessmentNotFoundError,
    AssessmentNotInProgressError,
    MalformedInputError,
    SourceUnreadableError,
)
from devops_maturity.core.export import write_csv
from devops_maturity.core.interfaces import (
    IAssessmentRepository,
    IResponseRepository,
    ISectionScoreRepository,
)
from devops_maturity.core.models import STATUS_COMPLETED, STATUS_IN_PROGRESS
from devops_maturity.core.scoring import (
    SectionScore,
    Selections,
    all_subcategory_scores,
    apply_responses,
    overall_score,
    section_scores,
)
from devops_maturity.observability import get_logger

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


@dataclass(frozen=True)
class AssessmentResults:
    """Scores of a completed assessment.

    Attributes:
        assessment: The assessment record.
        section_scores: Section totals in catalog order.
        subcategory_scores: Section name -> subcategory scores, only for
            sections that have a non-empty breakdown.
        advice: Section name -> advice, only for scored sections that have
            an advice entry.
        catalog: The catalog the scores were computed against.
        selections: The applied selection overlay.
    """

    assessment: Any
    section_scores: list[SectionScore]
    subcategory_scores: dict[str, list[SectionScore]]
    advice: dict[str, Advice]
    catalog: Catalog
    selections: Selections


@dataclass(frozen=True)
class AssessmentSummary:
    """One completed assessment in a team's history."""

    assessment: Any
    section_scores: list[SectionScore]
    overall_score: float


class AssessmentService:
    """Orchestrates the catalog, response ledger and scoring engine.

    Depends on repository instances injected at construction time.
    Contains no framework-specific code.
    """

    def __init__(
        self,
        catalog: QuestionCatalog,
        assessment_repository: IAssessmentRepository,
        response_repository: IResponseRepository,
        section_score_repository: ISectionScoreRepository,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Initialise the service with its collaborators.

        Args:
            catalog: Loader for the question and advice catalogs.
            assessment_repository: Repository for assessment records.
            response_repository: The response ledger.
            section_score_repository: Repository for persisted section scores.
            clock: Returns the current UTC time; injectable for tests.
        """
        self._catalog = catalog
        self._assessment_repo = assessment_repository
        self._response_repo = response_repository
        self._score_repo = section_score_repository
        self._clock = clock

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def get_assessment(self, assessment_id: uuid.UUID) -> Any:
        """Return an assessment record.

        Raises:
            AssessmentNotFoundError: If no assessment has that ID.
        """
        assessment = await self._assessment_repo.get_by_id(assessment_id)
        if assessment is None:
            raise AssessmentNotFoundError(
                f"Assessment {assessment_id} not found",
                {"assessment_id": str(assessment_id)},
            )
        return assessment

    async def _get_in_progress(self, assessment_id: uuid.UUID) -> Any:
        assessment = await self.get_assessment(assessment_id)
        if assessment.status == STATUS_COMPLETED:
            raise AssessmentAlreadyCompletedError(
                f"Assessment {assessment_id} is already completed",
                {"assessment_id": str(assessment_id)},
            )
        return assessment

    async def _selections(self, catalog: Catalog, assessment_id: uuid.UUID) -> Selections:
        responses = await self._response_repo.list_by_assessment(assessment_id)
        return apply_responses(catalog, responses)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start_assessment(
        self,
        team_id: uuid.UUID,
        user_id: uuid.UUID,
        session_token: str | None = None,
    ) -> tuple[Any, Catalog]:
        """Create a new in-progress assessment and return it with the catalog.

        The catalog is loaded before anything is written, so an unreadable or
        malformed catalog never leaves an orphan assessment behind.

        Args:
            team_id: Team taking the assessment.
            user_id: User starting it.
            session_token: Correlation token; generated when omitted.

        Returns:
            Tuple of (assessment record, catalog).
        """
        catalog = self._catalog.load()
        token = session_token or secrets.token_urlsafe(16)
        assessment = await self._assessment_repo.create(
            team_id=team_id,
            created_by=user_id,
            session_token=token,
        )

        logger.info(
            "Assessment started",
            assessment_id=str(assessment.id),
            team_id=str(team_id),
            user_id=str(user_id),
            section_count=len(catalog.sections),
        )
        return assessment, catalog

    async def continue_assessment(self, assessment_id: uuid.UUID) -> tuple[Any, Catalog, Selections]:
        """Resume an in-progress assessment.

        Returns:
            Tuple of (assessment, catalog, selections applied from the ledger).

        Raises:
            AssessmentNotFoundError: If no assessment has that ID.
            AssessmentAlreadyCompletedError: If the assessment is completed.
        """
        assessment = await self._get_in_progress(assessment_id)
        catalog = self._catalog.load()
        selections = await self._selections(catalog, assessment_id)
        return assessment, catalog, selections

    async def save_section(
        self,
        assessment_id: uuid.UUID,
        section_slug: str,
        form: Mapping[str, Sequence[str]],
    ) -> int:
        """Store the selections submitted for one section.

        Option questions read a single value keyed by the question ID; when
        several values are given the first wins. Checkbox questions use each
        answer ID as its own key, and presence of the key means selected.

        A question whose key is absent from ``form``, or present with no
        values, is left as it is in the ledger. An Option key present with an
        empty value is saved as given, which replaces the prior selection.

        Args:
            assessment_id: The in-progress assessment.
            section_slug: URL form of the section name.
            form: Submitted field key -> list of values.

        Returns:
            Number of questions written to the ledger.

        Raises:
            AssessmentNotFoundError: If no assessment has that ID.
            AssessmentAlreadyCompletedError: If the assessment is completed.
            SectionNotFoundError: If the slug matches no section.
        """
        await self._get_in_progress(assessment_id)
        catalog = self._catalog.load()
        section = catalog.find_section_by_slug(section_slug)

        saved = 0
        for question in section.questions:
            if question.type == BANNER or question.id is None:
                continue

            answer_ids: list[str] = []
            if question.type == OPTION:
                values = form.get(question.id)
                if values:
                    answer_ids = [values[0]]
            elif question.type == CHECKBOX:
                answer_ids = [a.id for a in question.answers if a.id is not None and a.id in form]

            if answer_ids:
                await self._response_repo.save(assessment_id, question.id, answer_ids)
                saved += 1

        logger.info(
            "Section saved",
            assessment_id=str(assessment_id),
            section=section.name,
            saved_questions=saved,
        )
        return saved

    async def complete_assessment(self, assessment_id: uuid.UUID) -> AssessmentResults:
        """Score an in-progress assessment and transition it to completed.

        Section scores are persisted before the conditional status update.
        If another caller completes the assessment first, the update matches
        no row and this call fails; the surrounding transaction then discards
        the score writes.

        Raises:
            AssessmentNotFoundError: If no assessment has that ID.
            AssessmentNotInProgressError: If the assessment is not in
                progress, including when a concurrent completion won.
        """
        assessment = await self.get_assessment(assessment_id)
        if assessment.status != STATUS_IN_PROGRESS:
            raise AssessmentNotInProgressError(
                f"Assessment {assessment_id} is not in progress",
                {"assessment_id": str(assessment_id), "status": assessment.status},
            )

        catalog = self._catalog.load()
        selections = await self._selections(catalog, assessment_id)
        scores = section_scores(catalog, selections)

        for score in scores:
            await self._score_repo.save(
                assessment_id=assessment_id,
                section_name=score.name,
                score=score.score,
                max_score=score.max_score,
                percentage=score.percentage,
            )

        completed = await self._assessment_repo.mark_completed(assessment_id, self._clock())
        if not completed:
            logger.warning("Assessment completion lost a race", assessment_id=str(assessment_id))
            raise AssessmentNotInProgressError(
                f"Assessment {assessment_id} is not in progress",
                {"assessment_id": str(assessment_id)},
            )

        logger.info(
            "Assessment completed",
            assessment_id=str(assessment_id),
            section_count=len(scores),
            overall_score=round(overall_score(scores), 1),
        )
        return AssessmentResults(
            assessment=assessment,
            section_scores=scores,
            subcategory_scores=all_subcategory_scores(catalog, selections),
            advice=self._advice_for(scores),
            catalog=catalog,
            selections=selections,
        )

    async def get_results(self, assessment_id: uuid.UUID) -> AssessmentResults:
        """Return the results of a completed assessment.

        Section totals come from storage and are never recomputed. The
        subcategory breakdown is always derived afresh from the catalog and
        the stored responses.

        Raises:
            AssessmentNotFoundError: If no assessment has that ID.
            AssessmentNotCompletedError: If the assessment is not completed.
        """
        assessment = await self.get_assessment(assessment_id)
        if assessment.status != STATUS_COMPLETED:
            raise AssessmentNotCompletedError(
                f"Assessment {assessment_id} is not completed",
                {"assessment_id": str(assessment_id)},
            )

        catalog = self._catalog.load()
        stored = await self._score_repo.list_by_assessment(assessment_id)
        selections = await self._selections(catalog, assessment_id)

        # catalog order first, then any stored section no longer in the catalog
        position = {section.name: index for index, section in enumerate(catalog.sections)}
        ordered = sorted(stored, key=lambda s: position.get(s.name, len(position)))

        return AssessmentResults(
            assessment=assessment,
            section_scores=ordered,
            subcategory_scores=all_subcategory_scores(catalog, selections),
            advice=self._advice_for(ordered),
            catalog=catalog,
            selections=selections,
        )

    async def export_csv(self, assessment_id: uuid.UUID, sink: TextIO) -> int:
        """Write the CSV export of a completed assessment to ``sink``.

        Returns:
            Number of data rows written.

        Raises:
            AssessmentNotFoundError: If no assessment has that ID.
            AssessmentNotCompletedError: If the assessment is not completed.
        """
        results = await self.get_results(assessment_id)
        rows = write_csv(sink, results.catalog, results.selections)
        logger.info("Assessment exported", assessment_id=str(assessment_id), rows=rows)
        return rows

    async def delete_assessment(self, assessment_id: uuid.UUID) -> None:
        """Delete an assessment with its responses and scores.

        Raises:
            AssessmentNotFoundError: If no assessment has that ID.
        """
        if not await self._assessment_repo.delete(assessment_id):
            raise AssessmentNotFoundError(
                f"Assessment {assessment_id} not found",
                {"assessment_id": str(assessment_id)},
            )
        logger.info("Assessment deleted", assessment_id=str(assessment_id))

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    async def get_team_history(self, team_id: uuid.UUID) -> list[AssessmentSummary]:
        """Completed assessments of a team, newest first, with overall scores."""
        assessments = await self._assessment_repo.list_by_team(team_id, STATUS_COMPLETED)
        history = []
        for assessment in assessments:
            scores = await self._score_repo.list_by_assessment(assessment.id)
            history.append(
                AssessmentSummary(
                    assessment=assessment,
                    section_scores=scores,
                    overall_score=overall_score(scores),
                )
            )
        return history

    async def latest_team_assessment(self, team_id: uuid.UUID) -> Any:
        """Most recently completed assessment of a team.

        Raises:
            AssessmentNotFoundError: If the team has no completed assessment.
        """
        assessment = await self._assessment_repo.latest_completed_for_team(team_id)
        if assessment is None:
            raise AssessmentNotFoundError(
                f"Team {team_id} has no completed assessment",
                {"team_id": str(team_id)},
            )
        return assessment

    async def list_user_assessments(
        self, user_id: uuid.UUID, offset: int, limit: int
    ) -> tuple[list[Any], int]:
        return await self._assessment_repo.list_by_user(user_id, offset, limit)

    # ------------------------------------------------------------------
    # Advice
    # ------------------------------------------------------------------

    def load_advice(self) -> dict[str, Advice]:
        return self._catalog.load_advice()

    def _advice_for(self, scores: Sequence[SectionScore]) -> dict[str, Advice]:
        """Advice for the scored sections; empty when the advice catalog is broken."""
        try:
            advice = self._catalog.load_advice()
        except (MalformedInputError, SourceUnreadableError) as exc:
            logger.warning("Advice unavailable", error=exc.message)
            return {}
        return {s.name: advice[s.name] for s in scores if s.name in advice}
