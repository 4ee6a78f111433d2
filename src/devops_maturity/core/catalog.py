"""Question catalog: the section/question/answer tree of the questionnaire.

The raw catalog is authored without identifiers. ``build_catalog`` runs an
explicit indexed pass over the validated source and returns an immutable
``Catalog`` in which every non-banner question and each of its answers
carries a positional ID:

    question ID: ``S{section}-Q{question}``        e.g. ``S2-Q5``
    answer ID:   ``S{section}-Q{question}-A{answer}`` e.g. ``S2-Q5-A1``

All indices are 1-based. Banner questions are separators and receive no ID.
A non-banner question authored without answers receives an implicit
``Yes`` (1) / ``No`` (0) answer pair.

Selected answers are never stored on the catalog itself; they travel next to
it as a ``Selections`` overlay (see ``core/scoring.py``) so one loaded
catalog can be shared across concurrent requests.
"""

import json
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from devops_maturity.core.errors import (
    AdviceMalformedError,
    AdviceUnreadableError,
    CatalogMalformedError,
    CatalogUnreadableError,
    QuestionNotFoundError,
    SectionNotFoundError,
)
from devops_maturity.core.interfaces import ICatalogSource
from devops_maturity.observability import get_logger

logger = get_logger(__name__)

QuestionType = Literal["Option", "Checkbox", "Banner"]

OPTION: QuestionType = "Option"
CHECKBOX: QuestionType = "Checkbox"
BANNER: QuestionType = "Banner"

_ADVICE_COMMENT_KEY = "//"


# ---------------------------------------------------------------------------
# Raw source shapes
# ---------------------------------------------------------------------------


class _RawAnswer(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    answer: str = Field(alias="Answer")
    score: float = Field(default=0.0, alias="Score")


class _RawQuestion(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: QuestionType = Field(alias="Type")
    sub_category: str = Field(default="", alias="SubCategory")
    question_text: str = Field(alias="QuestionText")
    answers: list[_RawAnswer] | None = Field(default=None, alias="Answers")


class _RawSection(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    section_name: str = Field(alias="SectionName")
    spider_pos: int = Field(default=0, alias="SpiderPos")
    questions: list[_RawQuestion] | None = Field(default=None, alias="Questions")


class _RawLink(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: str = Field(default="", alias="Type")
    text: str = Field(alias="Text")
    href: str = Field(alias="Href")
    paid: str = Field(default="", alias="Paid")


class _RawAdvice(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    advice: str = Field(default="", alias="Advice")
    read_more: str = Field(default="", alias="ReadMore")
    links: list[_RawLink] | None = Field(default=None, alias="Links")


_SECTIONS_ADAPTER: TypeAdapter[list[_RawSection]] = TypeAdapter(list[_RawSection])
_ADVICE_ADAPTER: TypeAdapter[_RawAdvice] = TypeAdapter(_RawAdvice)


# ---------------------------------------------------------------------------
# Immutable catalog
# ---------------------------------------------------------------------------


def slugify(section_name: str) -> str:
    """Return the URL form of a section name.

    Commas are dropped, spaces become hyphens, and the result is lowercased:
    ``"Build, Test and Deploy"`` -> ``"build-test-and-deploy"``.
    """
    return section_name.replace(",", "").replace(" ", "-").lower()


@dataclass(frozen=True)
class Answer:
    """A single authored answer with its score."""

    id: str | None
    text: str
    score: float


@dataclass(frozen=True)
class Question:
    """A catalog question. ``id`` is None only for banners."""

    id: str | None
    type: QuestionType
    sub_category: str
    text: str
    answers: tuple[Answer, ...]

    @property
    def is_banner(self) -> bool:
        return self.type == BANNER

    @property
    def answer_ids(self) -> frozenset[str]:
        return frozenset(a.id for a in self.answers if a.id is not None)


@dataclass(frozen=True)
class Section:
    """An ordered group of questions scored together."""

    name: str
    spider_pos: int
    questions: tuple[Question, ...]
    has_sub_categories: bool

    @property
    def slug(self) -> str:
        return slugify(self.name)


@dataclass(frozen=True)
class Catalog:
    """The fully-built, immutable questionnaire."""

    sections: tuple[Section, ...]

    def iter_questions(self) -> Iterator[tuple[Section, Question]]:
        """Yield every (section, question) pair in catalog order."""
        for section in self.sections:
            for question in section.questions:
                yield section, question

    def find_section_by_name(self, name: str) -> Section:
        """Return the section with the given display name.

        Raises:
            SectionNotFoundError: If no section has that name.
        """
        for section in self.sections:
            if section.name == name:
                return section
        raise SectionNotFoundError(f"Section not found: {name}", {"section": name})

    def find_section_by_slug(self, slug: str) -> Section:
        """Return the section whose slugified name equals ``slug``.

        Raises:
            SectionNotFoundError: If no section matches.
        """
        for section in self.sections:
            if section.slug == slug:
                return section
        raise SectionNotFoundError(f"Section not found: {slug}", {"section": slug})

    def find_question(self, question_id: str) -> Question:
        """Return the question with the given positional ID.

        Raises:
            QuestionNotFoundError: If no question carries that ID.
        """
        for _, question in self.iter_questions():
            if question.id is not None and question.id == question_id:
                return question
        raise QuestionNotFoundError(
            f"Question not found: {question_id}", {"question_id": question_id}
        )


@dataclass(frozen=True)
class AdviceLink:
    """An external reading resource attached to a section's advice."""

    type: str
    text: str
    href: str
    paid: str


@dataclass(frozen=True)
class Advice:
    """Improvement advice for one section."""

    section_name: str
    advice: str
    read_more: str
    links: tuple[AdviceLink, ...]


def _build_question(section_no: int, question_no: int, raw: _RawQuestion) -> Question:
    raw_answers = raw.answers or []

    if raw.type == BANNER:
        answers = tuple(Answer(id=None, text=a.answer, score=a.score) for a in raw_answers)
        return Question(
            id=None,
            type=raw.type,
            sub_category=raw.sub_category,
            text=raw.question_text,
            answers=answers,
        )

    question_id = f"S{section_no}-Q{question_no}"
    if not raw_answers:
        raw_answers = [_RawAnswer(answer="Yes", score=1), _RawAnswer(answer="No", score=0)]

    answers = tuple(
        Answer(id=f"{question_id}-A{answer_no}", text=a.answer, score=a.score)
        for answer_no, a in enumerate(raw_answers, start=1)
    )
    return Question(
        id=question_id,
        type=raw.type,
        sub_category=raw.sub_category,
        text=raw.question_text,
        answers=answers,
    )


def build_catalog(raw_sections: list[_RawSection]) -> Catalog:
    """Assign positional IDs and derive per-section metadata.

    Args:
        raw_sections: Validated sections in authored order.

    Returns:
        The immutable catalog.
    """
    sections = []
    for section_no, raw_section in enumerate(raw_sections, start=1):
        questions = tuple(
            _build_question(section_no, question_no, raw_question)
            for question_no, raw_question in enumerate(raw_section.questions or [], start=1)
        )
        sections.append(
            Section(
                name=raw_section.section_name,
                spider_pos=raw_section.spider_pos,
                questions=questions,
                has_sub_categories=any(q.sub_category for q in questions),
            )
        )
    return Catalog(sections=tuple(sections))


def parse_catalog(text: str | bytes) -> Catalog:
    """Validate raw catalog JSON and build the catalog.

    Args:
        text: JSON document: a list of sections.

    Returns:
        The immutable catalog.

    Raises:
        CatalogMalformedError: If the document is not valid JSON or does not
            match the section/question/answer shape.
    """
    try:
        raw_sections = _SECTIONS_ADAPTER.validate_json(text)
    except ValidationError as exc:
        raise CatalogMalformedError(
            "Question catalog is malformed",
            {"errors": exc.errors(include_url=False, include_context=False)},
        ) from exc
    return build_catalog(raw_sections)


def parse_advice(text: str | bytes) -> dict[str, Advice]:
    """Validate raw advice JSON.

    The document is an object keyed by section name. The ``"//"`` key holds
    an authoring comment and is skipped.

    Raises:
        AdviceMalformedError: If the document is not a JSON object of advice
            entries.
    """
    try:
        document = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise AdviceMalformedError("Advice catalog is not valid JSON") from exc

    if not isinstance(document, dict):
        raise AdviceMalformedError("Advice catalog must be a JSON object")

    advice: dict[str, Advice] = {}
    for section_name, entry in document.items():
        if section_name == _ADVICE_COMMENT_KEY:
            continue
        try:
            raw = _ADVICE_ADAPTER.validate_python(entry)
        except ValidationError as exc:
            raise AdviceMalformedError(
                f"Advice entry for {section_name!r} is malformed",
                {"section": section_name, "errors": exc.errors(include_url=False, include_context=False)},
            ) from exc
        advice[section_name] = Advice(
            section_name=section_name,
            advice=raw.advice,
            read_more=raw.read_more,
            links=tuple(
                AdviceLink(type=link.type, text=link.text, href=link.href, paid=link.paid)
                for link in raw.links or []
            ),
        )
    return advice


class QuestionCatalog:
    """Loads the question and advice catalogs from an injected source.

    Args:
        source: Anything satisfying ``ICatalogSource``.
    """

    def __init__(self, source: ICatalogSource) -> None:
        self._source = source

    def load(self) -> Catalog:
        """Read, validate and build the question catalog.

        Loading twice from an unchanged source yields identical IDs.

        Raises:
            CatalogUnreadableError: If the source cannot be read.
            CatalogMalformedError: If the source content is invalid.
        """
        try:
            text = self._source.read_questions()
        except OSError as exc:
            raise CatalogUnreadableError("Question catalog could not be read") from exc

        catalog = parse_catalog(text)
        logger.debug(
            "Question catalog loaded",
            section_count=len(catalog.sections),
            question_count=sum(1 for _ in catalog.iter_questions()),
        )
        return catalog

    def load_advice(self) -> dict[str, Advice]:
        """Read and validate the advice catalog, keyed by section name.

        Raises:
            AdviceUnreadableError: If the source cannot be read.
            AdviceMalformedError: If the source content is invalid.
        """
        try:
            text = self._source.read_advice()
        except OSError as exc:
            raise AdviceUnreadableError("Advice catalog could not be read") from exc
        return parse_advice(text)
