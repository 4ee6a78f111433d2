"""Scoring engine for DevOps maturity assessments.

Pure functions over a ``Catalog`` and a ``Selections`` overlay. Nothing in
this module performs I/O, so it is safe to call from any request concurrently.

Scoring rules:
    - Option questions: best case is exactly one answer, so the max score is
      the highest single answer score (floored at 0).
    - Checkbox questions: best case is every answer, so the max score is the
      sum of all answer scores.
    - Banner questions: always 0 for both score and max score.
    - A question's score is the sum of its selected answers' scores.
    - percentage = score / max_score * 100, or 0 when max_score is 0.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from devops_maturity.core.catalog import BANNER, CHECKBOX, OPTION, Catalog, Question, Section

# question ID -> selected answer IDs
Selections = Mapping[str, frozenset[str]]


@dataclass(frozen=True)
class ResponseRecord:
    """Selected answer IDs for one question, as stored by the response ledger."""

    question_id: str
    answer_ids: tuple[str, ...]


@dataclass(frozen=True)
class SectionScore:
    """Score of a section, or of a subcategory within a section."""

    name: str
    score: float
    max_score: float
    percentage: float


def percentage_of(score: float, max_score: float) -> float:
    """Return ``score`` as a percentage of ``max_score``; 0 when max is 0."""
    if max_score == 0:
        return 0.0
    return score / max_score * 100


def question_score(question: Question, selections: Selections) -> float:
    """Sum the scores of the question's selected answers.

    Args:
        question: A catalog question.
        selections: The selection overlay.

    Returns:
        The achieved score; 0 for banners and unanswered questions.
    """
    if question.type == BANNER or question.id is None:
        return 0.0
    selected = selections.get(question.id, frozenset())
    return sum((a.score for a in question.answers if a.id in selected), 0.0)


def question_max_score(question: Question) -> float:
    """Return the best achievable score for a question."""
    if question.type == OPTION:
        max_score = 0.0
        for answer in question.answers:
            if answer.score > max_score:
                max_score = answer.score
        return max_score
    if question.type == CHECKBOX:
        return sum((a.score for a in question.answers), 0.0)
    return 0.0


def apply_responses(catalog: Catalog, responses: Iterable[ResponseRecord]) -> dict[str, frozenset[str]]:
    """Build the selection overlay from stored responses.

    For every question matched by a response, exactly the answers whose IDs
    appear in the response are selected. Answer IDs that do not belong to
    the question are ignored, as are responses for unknown questions.
    Questions without a response have no selection.

    Args:
        catalog: The built catalog.
        responses: Stored responses in any order.

    Returns:
        Mapping of question ID to the frozenset of selected answer IDs.
    """
    by_question = {r.question_id: r.answer_ids for r in responses}

    selections: dict[str, frozenset[str]] = {}
    for _, question in catalog.iter_questions():
        if question.id is None or question.id not in by_question:
            continue
        valid = question.answer_ids
        selections[question.id] = frozenset(a for a in by_question[question.id] if a in valid)
    return selections


def extract_responses(catalog: Catalog, selections: Selections) -> list[ResponseRecord]:
    """Inverse of ``apply_responses``.

    Returns one record per non-banner question with at least one selected
    answer, in catalog order, with answer IDs in catalog order.
    """
    records = []
    for _, question in catalog.iter_questions():
        if question.type == BANNER or question.id is None:
            continue
        selected = selections.get(question.id, frozenset())
        answer_ids = tuple(a.id for a in question.answers if a.id is not None and a.id in selected)
        if answer_ids:
            records.append(ResponseRecord(question_id=question.id, answer_ids=answer_ids))
    return records


def _score_questions(questions: Iterable[Question], selections: Selections) -> tuple[float, float]:
    score = 0.0
    max_score = 0.0
    for question in questions:
        score += question_score(question, selections)
        max_score += question_max_score(question)
    return score, max_score


def section_scores(catalog: Catalog, selections: Selections) -> list[SectionScore]:
    """Score every section that has a positive max score, in catalog order."""
    scores = []
    for section in catalog.sections:
        score, max_score = _score_questions(section.questions, selections)
        if max_score > 0:
            scores.append(
                SectionScore(
                    name=section.name,
                    score=score,
                    max_score=max_score,
                    percentage=percentage_of(score, max_score),
                )
            )
    return scores


def subcategory_scores(catalog: Catalog, section_name: str, selections: Selections) -> list[SectionScore]:
    """Score the subcategories of one section.

    Only questions carrying a subcategory label are counted. Groups keep the
    order in which their label first appears; groups with a zero max score
    are dropped. An unknown section yields an empty list.
    """
    section: Section | None = next((s for s in catalog.sections if s.name == section_name), None)
    if section is None:
        return []

    totals: dict[str, list[float]] = {}
    for question in section.questions:
        if not question.sub_category:
            continue
        bucket = totals.setdefault(question.sub_category, [0.0, 0.0])
        bucket[0] += question_score(question, selections)
        bucket[1] += question_max_score(question)

    return [
        SectionScore(
            name=name,
            score=score,
            max_score=max_score,
            percentage=percentage_of(score, max_score),
        )
        for name, (score, max_score) in totals.items()
        if max_score > 0
    ]


def all_subcategory_scores(catalog: Catalog, selections: Selections) -> dict[str, list[SectionScore]]:
    """Subcategory scores for every section that has subcategories.

    Sections whose subcategory breakdown is empty are omitted.
    """
    breakdown = {}
    for section in catalog.sections:
        if not section.has_sub_categories:
            continue
        scores = subcategory_scores(catalog, section.name, selections)
        if scores:
            breakdown[section.name] = scores
    return breakdown


def overall_score(scores: Iterable[SectionScore]) -> float:
    """Total score as a percentage of total max score across sections."""
    total_score = 0.0
    total_max = 0.0
    for score in scores:
        total_score += score.score
        total_max += score.max_score
    return percentage_of(total_score, total_max)
