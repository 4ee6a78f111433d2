"""Pydantic request/response schemas for the assessment API.

All API inputs and outputs are strictly typed Pydantic v2 models.
No raw dicts are returned from any endpoint.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from devops_maturity.core.catalog import Advice, Catalog
from devops_maturity.core.scoring import SectionScore, Selections, question_max_score


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


class AnswerSchema(BaseModel):
    id: str | None
    text: str
    score: float
    selected: bool = False


class QuestionSchema(BaseModel):
    """A catalog question with the current selection applied.

    Attributes:
        id: Positional ID, e.g. ``S1-Q2``; None for banners.
        type: Option, Checkbox or Banner.
        sub_category: Optional subcategory label.
        text: Question text.
        max_score: Best achievable score.
        answers: Answers in authored order.
    """

    id: str | None
    type: str
    sub_category: str
    text: str
    max_score: float
    answers: list[AnswerSchema]


class SectionSchema(BaseModel):
    name: str
    slug: str
    spider_pos: int
    has_sub_categories: bool
    questions: list[QuestionSchema]


def sections_from_catalog(catalog: Catalog, selections: Selections | None = None) -> list[SectionSchema]:
    """Render the catalog, marking selected answers from the overlay."""
    selections = selections or {}
    sections = []
    for section in catalog.sections:
        questions = []
        for question in section.questions:
            selected = selections.get(question.id, frozenset()) if question.id else frozenset()
            questions.append(
                QuestionSchema(
                    id=question.id,
                    type=question.type,
                    sub_category=question.sub_category,
                    text=question.text,
                    max_score=question_max_score(question),
                    answers=[
                        AnswerSchema(id=a.id, text=a.text, score=a.score, selected=a.id in selected)
                        for a in question.answers
                    ],
                )
            )
        sections.append(
            SectionSchema(
                name=section.name,
                slug=section.slug,
                spider_pos=section.spider_pos,
                has_sub_categories=section.has_sub_categories,
                questions=questions,
            )
        )
    return sections


# ---------------------------------------------------------------------------
# Assessment lifecycle
# ---------------------------------------------------------------------------


class AssessmentSchema(BaseModel):
    """An assessment record."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    team_id: uuid.UUID
    created_by: uuid.UUID
    status: str
    created_at: datetime | None = None
    completed_at: datetime | None = None


class StartAssessmentRequest(BaseModel):
    team_id: uuid.UUID = Field(..., description="Team taking the assessment")


class AssessmentDetailResponse(BaseModel):
    """An in-progress assessment with the catalog and current selections."""

    assessment: AssessmentSchema
    sections: list[SectionSchema]


class SaveSectionRequest(BaseModel):
    """Selections submitted for one section.

    Option questions: ``{"S1-Q2": ["S1-Q2-A3"]}``.
    Checkbox questions: one key per ticked answer, e.g. ``{"S1-Q4-A1": ["on"]}``.
    """

    selections: dict[str, list[str]] = Field(default_factory=dict)


class SaveSectionResponse(BaseModel):
    assessment_id: uuid.UUID
    section: str
    saved_questions: int


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class SectionScoreSchema(BaseModel):
    name: str
    score: float
    max_score: float
    percentage: float

    @classmethod
    def from_score(cls, score: SectionScore) -> "SectionScoreSchema":
        return cls(
            name=score.name,
            score=score.score,
            max_score=score.max_score,
            percentage=score.percentage,
        )


class AdviceLinkSchema(BaseModel):
    type: str
    text: str
    href: str
    paid: str


class AdviceSchema(BaseModel):
    section_name: str
    advice: str
    read_more: str
    links: list[AdviceLinkSchema]

    @classmethod
    def from_advice(cls, advice: Advice) -> "AdviceSchema":
        return cls(
            section_name=advice.section_name,
            advice=advice.advice,
            read_more=advice.read_more,
            links=[
                AdviceLinkSchema(type=link.type, text=link.text, href=link.href, paid=link.paid)
                for link in advice.links
            ],
        )


class ResultsResponse(BaseModel):
    """Scores of a completed assessment.

    Attributes:
        assessment: The assessment record.
        overall_score: Total score as a percentage of total max score.
        section_scores: Per-section totals in catalog order.
        subcategory_scores: Section name -> subcategory breakdown.
        advice: Improvement advice for the scored sections.
    """

    assessment: AssessmentSchema
    overall_score: float
    section_scores: list[SectionScoreSchema]
    subcategory_scores: dict[str, list[SectionScoreSchema]]
    advice: list[AdviceSchema]


class TeamHistoryItem(BaseModel):
    assessment: AssessmentSchema
    overall_score: float
    section_scores: list[SectionScoreSchema]


class TeamHistoryResponse(BaseModel):
    team_id: uuid.UUID
    items: list[TeamHistoryItem]
    total: int


class AdviceListResponse(BaseModel):
    items: list[AdviceSchema]
    total: int


class AssessmentListResponse(BaseModel):
    """Paginated list of assessments."""

    items: list[AssessmentSchema]
    total: int
    page: int
    page_size: int
