"""FastAPI router for the assessment lifecycle, team history and advice.

All routes are thin: they resolve the caller's session, check team-scoped
permissions through the AccessResolver, delegate to AssessmentService and
serialise responses. No business logic lives here.

API prefix: /api/v1
"""

import io
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query, status
from fastapi.responses import Response

from devops_maturity.api.dependencies import (
    CurrentSession,
    get_access_resolver,
    get_assessment_service,
    get_settings,
)
from devops_maturity.api.schemas.assessment import (
    AdviceListResponse,
    AdviceSchema,
    AssessmentDetailResponse,
    AssessmentListResponse,
    AssessmentSchema,
    ResultsResponse,
    SaveSectionRequest,
    SaveSectionResponse,
    SectionScoreSchema,
    StartAssessmentRequest,
    TeamHistoryItem,
    TeamHistoryResponse,
    sections_from_catalog,
)
from devops_maturity.core.permissions import Action, Resource
from devops_maturity.core.scoring import overall_score
from devops_maturity.core.services import AccessResolver, AssessmentResults, AssessmentService
from devops_maturity.settings import Settings

router = APIRouter(tags=["Assessments"])


async def _authorize(
    service: AssessmentService,
    access: AccessResolver,
    user_id: uuid.UUID,
    assessment_id: uuid.UUID,
    resource: Resource,
    action: Action,
) -> None:
    assessment = await service.get_assessment(assessment_id)
    await access.require_team_permission(user_id, assessment.team_id, resource, action)


def _results_response(results: AssessmentResults) -> ResultsResponse:
    return ResultsResponse(
        assessment=AssessmentSchema.model_validate(results.assessment),
        overall_score=overall_score(results.section_scores),
        section_scores=[SectionScoreSchema.from_score(s) for s in results.section_scores],
        subcategory_scores={
            name: [SectionScoreSchema.from_score(s) for s in scores]
            for name, scores in results.subcategory_scores.items()
        },
        advice=[AdviceSchema.from_advice(a) for a in results.advice.values()],
    )


# ---------------------------------------------------------------------------
# Assessment lifecycle endpoints
# ---------------------------------------------------------------------------


@router.post(
    "/assessments",
    response_model=AssessmentDetailResponse,
    status_code=status.HTTP_201_CREATED,
)
async def start_assessment(
    body: StartAssessmentRequest,
    session: CurrentSession,
    service: AssessmentService = Depends(get_assessment_service),
    access: AccessResolver = Depends(get_access_resolver),
) -> AssessmentDetailResponse:
    """Start a new assessment for a team and return the questionnaire."""
    await access.require_team_permission(
        session.user_id, body.team_id, Resource.ASSESSMENT, Action.CREATE
    )
    assessment, catalog = await service.start_assessment(body.team_id, session.user_id)
    return AssessmentDetailResponse(
        assessment=AssessmentSchema.model_validate(assessment),
        sections=sections_from_catalog(catalog),
    )


@router.get("/assessments/{assessment_id}", response_model=AssessmentDetailResponse)
async def continue_assessment(
    session: CurrentSession,
    assessment_id: uuid.UUID = Path(..., description="Assessment UUID"),
    service: AssessmentService = Depends(get_assessment_service),
    access: AccessResolver = Depends(get_access_resolver),
) -> AssessmentDetailResponse:
    """Resume an in-progress assessment with its saved selections."""
    await _authorize(service, access, session.user_id, assessment_id, Resource.ASSESSMENT, Action.READ)
    assessment, catalog, selections = await service.continue_assessment(assessment_id)
    return AssessmentDetailResponse(
        assessment=AssessmentSchema.model_validate(assessment),
        sections=sections_from_catalog(catalog, selections),
    )


@router.put("/assessments/{assessment_id}/sections/{section_slug}", response_model=SaveSectionResponse)
async def save_section(
    body: SaveSectionRequest,
    session: CurrentSession,
    assessment_id: uuid.UUID = Path(..., description="Assessment UUID"),
    section_slug: str = Path(..., description="URL form of the section name"),
    service: AssessmentService = Depends(get_assessment_service),
    access: AccessResolver = Depends(get_access_resolver),
) -> SaveSectionResponse:
    """Save the selections for one section."""
    await _authorize(service, access, session.user_id, assessment_id, Resource.ASSESSMENT, Action.UPDATE)
    saved = await service.save_section(assessment_id, section_slug, body.selections)
    return SaveSectionResponse(assessment_id=assessment_id, section=section_slug, saved_questions=saved)


@router.post("/assessments/{assessment_id}/complete", response_model=ResultsResponse)
async def complete_assessment(
    session: CurrentSession,
    assessment_id: uuid.UUID = Path(..., description="Assessment UUID"),
    service: AssessmentService = Depends(get_assessment_service),
    access: AccessResolver = Depends(get_access_resolver),
) -> ResultsResponse:
    """Score the assessment and mark it completed."""
    await _authorize(service, access, session.user_id, assessment_id, Resource.ASSESSMENT, Action.UPDATE)
    results = await service.complete_assessment(assessment_id)
    return _results_response(results)


@router.get("/assessments/{assessment_id}/results", response_model=ResultsResponse)
async def get_results(
    session: CurrentSession,
    assessment_id: uuid.UUID = Path(..., description="Assessment UUID"),
    service: AssessmentService = Depends(get_assessment_service),
    access: AccessResolver = Depends(get_access_resolver),
) -> ResultsResponse:
    """Results of a completed assessment."""
    await _authorize(service, access, session.user_id, assessment_id, Resource.ASSESSMENT, Action.READ)
    results = await service.get_results(assessment_id)
    return _results_response(results)


@router.get("/assessments/{assessment_id}/export/csv", response_class=Response)
async def export_csv(
    session: CurrentSession,
    assessment_id: uuid.UUID = Path(..., description="Assessment UUID"),
    service: AssessmentService = Depends(get_assessment_service),
    access: AccessResolver = Depends(get_access_resolver),
) -> Response:
    """Download a completed assessment as CSV."""
    await _authorize(service, access, session.user_id, assessment_id, Resource.REPORT, Action.EXPORT)
    buffer = io.StringIO(newline="")
    await service.export_csv(assessment_id, buffer)
    return Response(
        content=buffer.getvalue(),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="assessment-{assessment_id}.csv"'},
    )


@router.delete("/assessments/{assessment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_assessment(
    session: CurrentSession,
    assessment_id: uuid.UUID = Path(..., description="Assessment UUID"),
    service: AssessmentService = Depends(get_assessment_service),
    access: AccessResolver = Depends(get_access_resolver),
) -> None:
    """Delete an assessment with its responses and scores."""
    await _authorize(service, access, session.user_id, assessment_id, Resource.ASSESSMENT, Action.DELETE)
    await service.delete_assessment(assessment_id)


# ---------------------------------------------------------------------------
# Team history
# ---------------------------------------------------------------------------


@router.get("/teams/{team_id}/assessments", response_model=TeamHistoryResponse)
async def team_history(
    session: CurrentSession,
    team_id: uuid.UUID = Path(..., description="Team UUID"),
    service: AssessmentService = Depends(get_assessment_service),
    access: AccessResolver = Depends(get_access_resolver),
) -> TeamHistoryResponse:
    """Completed assessments of a team, newest first."""
    await access.require_team_permission(session.user_id, team_id, Resource.ASSESSMENT, Action.READ)
    history = await service.get_team_history(team_id)
    items = [
        TeamHistoryItem(
            assessment=AssessmentSchema.model_validate(entry.assessment),
            overall_score=entry.overall_score,
            section_scores=[SectionScoreSchema.from_score(s) for s in entry.section_scores],
        )
        for entry in history
    ]
    return TeamHistoryResponse(team_id=team_id, items=items, total=len(items))


@router.get("/teams/{team_id}/assessments/latest", response_model=AssessmentSchema)
async def latest_team_assessment(
    session: CurrentSession,
    team_id: uuid.UUID = Path(..., description="Team UUID"),
    service: AssessmentService = Depends(get_assessment_service),
    access: AccessResolver = Depends(get_access_resolver),
) -> AssessmentSchema:
    """The team's most recently completed assessment."""
    await access.require_team_permission(session.user_id, team_id, Resource.ASSESSMENT, Action.READ)
    return AssessmentSchema.model_validate(await service.latest_team_assessment(team_id))


@router.get("/users/me/assessments", response_model=AssessmentListResponse)
async def my_assessments(
    session: CurrentSession,
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int | None, Query(ge=1)] = None,
    service: AssessmentService = Depends(get_assessment_service),
    settings: Settings = Depends(get_settings),
) -> AssessmentListResponse:
    """Assessments started by the caller, newest first."""
    size = min(page_size or settings.default_page_size, settings.max_page_size)
    assessments, total = await service.list_user_assessments(
        session.user_id, offset=(page - 1) * size, limit=size
    )
    return AssessmentListResponse(
        items=[AssessmentSchema.model_validate(a) for a in assessments],
        total=total,
        page=page,
        page_size=size,
    )


# ---------------------------------------------------------------------------
# Resources
# ---------------------------------------------------------------------------


@router.get("/resources", response_model=AdviceListResponse)
async def list_resources(
    _session: CurrentSession,
    service: AssessmentService = Depends(get_assessment_service),
) -> AdviceListResponse:
    """Improvement advice and reading links for every section."""
    advice = service.load_advice()
    items = [AdviceSchema.from_advice(a) for a in advice.values()]
    return AdviceListResponse(items=items, total=len(items))
