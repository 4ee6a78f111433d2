"""Shared test fixtures for devops-maturity-assessment."""

import uuid

import pytest

from devops_maturity.core.catalog import Catalog, QuestionCatalog
from tests.factories import InMemoryCatalogSource


@pytest.fixture()
def catalog_source() -> InMemoryCatalogSource:
    return InMemoryCatalogSource()


@pytest.fixture()
def question_catalog(catalog_source: InMemoryCatalogSource) -> QuestionCatalog:
    return QuestionCatalog(catalog_source)


@pytest.fixture()
def catalog(question_catalog: QuestionCatalog) -> Catalog:
    return question_catalog.load()


@pytest.fixture()
def user_id() -> uuid.UUID:
    """Fixed user UUID for tests."""
    return uuid.UUID("22222222-2222-2222-2222-222222222222")


@pytest.fixture()
def team_id() -> uuid.UUID:
    """Fixed team UUID for tests."""
    return uuid.UUID("33333333-3333-3333-3333-333333333333")
