"""Unit tests for the question catalog: ID assignment, lookups and advice."""

import json
from unittest.mock import MagicMock

import pytest

from devops_maturity.core.catalog import (
    BANNER,
    QuestionCatalog,
    parse_advice,
    parse_catalog,
    slugify,
)
from devops_maturity.core.errors import (
    AdviceMalformedError,
    AdviceUnreadableError,
    CatalogMalformedError,
    CatalogUnreadableError,
    QuestionNotFoundError,
    SectionNotFoundError,
)
from tests.factories import SAMPLE_QUESTIONS, InMemoryCatalogSource


class TestIdAssignment:
    """Positional IDs and implicit answers."""

    def test_question_ids_are_positional_and_skip_banners(self, catalog) -> None:
        ids = [q.id for q in catalog.sections[0].questions]
        assert ids == [None, "S1-Q2", "S1-Q3", "S1-Q4"]

    def test_answer_ids_extend_question_ids(self, catalog) -> None:
        question = catalog.find_question("S1-Q2")
        assert [a.id for a in question.answers] == ["S1-Q2-A1", "S1-Q2-A2", "S1-Q2-A3"]

    def test_banner_answers_have_no_ids(self) -> None:
        catalog = parse_catalog(
            json.dumps(
                [
                    {
                        "SectionName": "Only",
                        "Questions": [
                            {
                                "Type": "Banner",
                                "QuestionText": "Note",
                                "Answers": [{"Answer": "x", "Score": 5}],
                            }
                        ],
                    }
                ]
            )
        )
        banner = catalog.sections[0].questions[0]
        assert banner.type == BANNER
        assert banner.id is None
        assert banner.answers[0].id is None

    def test_question_without_answers_gets_yes_no(self, catalog) -> None:
        question = catalog.find_question("S1-Q4")
        assert [(a.id, a.text, a.score) for a in question.answers] == [
            ("S1-Q4-A1", "Yes", 1.0),
            ("S1-Q4-A2", "No", 0.0),
        ]

    def test_loading_twice_yields_identical_catalogs(self, question_catalog) -> None:
        assert question_catalog.load() == question_catalog.load()

    def test_has_sub_categories_flag(self, catalog) -> None:
        assert [s.has_sub_categories for s in catalog.sections] == [True, False, False]

    def test_spider_position_is_kept(self, catalog) -> None:
        assert [s.spider_pos for s in catalog.sections] == [1, 2, 3]


class TestLookups:
    """Section and question lookups."""

    def test_slugify_drops_commas_and_hyphenates(self) -> None:
        assert slugify("Build, Test and Deploy") == "build-test-and-deploy"

    def test_find_section_by_slug(self, catalog) -> None:
        assert catalog.find_section_by_slug("culture-people").name == "Culture, People"

    def test_find_section_by_name(self, catalog) -> None:
        assert catalog.find_section_by_name("Notes").spider_pos == 3

    def test_unknown_section_raises(self, catalog) -> None:
        with pytest.raises(SectionNotFoundError):
            catalog.find_section_by_slug("does-not-exist")
        with pytest.raises(SectionNotFoundError):
            catalog.find_section_by_name("Does Not Exist")

    def test_unknown_question_raises(self, catalog) -> None:
        with pytest.raises(QuestionNotFoundError):
            catalog.find_question("S9-Q9")


class TestMalformedSources:
    """Unreadable and malformed sources are reported, never dropped."""

    def test_invalid_json_raises_malformed(self) -> None:
        with pytest.raises(CatalogMalformedError):
            parse_catalog("[{not json")

    def test_unknown_question_type_raises_malformed(self) -> None:
        bad = [{"SectionName": "S", "Questions": [{"Type": "Slider", "QuestionText": "?"}]}]
        with pytest.raises(CatalogMalformedError):
            parse_catalog(json.dumps(bad))

    def test_non_list_document_raises_malformed(self) -> None:
        with pytest.raises(CatalogMalformedError):
            parse_catalog(json.dumps({"sections": SAMPLE_QUESTIONS}))

    def test_unreadable_source_raises_unreadable(self) -> None:
        source = MagicMock()
        source.read_questions.side_effect = FileNotFoundError("questions.json")
        source.read_advice.side_effect = PermissionError("advice.json")
        loader = QuestionCatalog(source)

        with pytest.raises(CatalogUnreadableError):
            loader.load()
        with pytest.raises(AdviceUnreadableError):
            loader.load_advice()


class TestAdvice:
    """Advice catalog parsing."""

    def test_comment_key_is_skipped(self, question_catalog) -> None:
        advice = question_catalog.load_advice()
        assert list(advice) == ["Build, Test and Deploy"]

    def test_links_are_parsed(self, question_catalog) -> None:
        entry = question_catalog.load_advice()["Build, Test and Deploy"]
        assert entry.advice == "Automate the pipeline."
        assert entry.links[0].href == "https://example.com/cd"
        assert entry.links[0].paid == "Paid"

    def test_missing_links_yield_empty_tuple(self) -> None:
        advice = parse_advice(json.dumps({"Culture": {"Advice": "Talk."}}))
        assert advice["Culture"].links == ()

    def test_non_object_document_raises_malformed(self) -> None:
        with pytest.raises(AdviceMalformedError):
            parse_advice(json.dumps(["not", "an", "object"]))

    def test_invalid_entry_raises_malformed(self) -> None:
        with pytest.raises(AdviceMalformedError):
            parse_advice(json.dumps({"Culture": {"Links": [{"Type": "Book"}]}}))

    def test_custom_source(self) -> None:
        loader = QuestionCatalog(InMemoryCatalogSource(advice={"//": "only a comment"}))
        assert loader.load_advice() == {}
