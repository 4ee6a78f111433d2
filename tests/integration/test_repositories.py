"""Repository tests against in-memory SQLite."""

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from devops_maturity.adapters.repositories import (
    AssessmentRepository,
    PermissionLookupRepository,
    ResponseRepository,
    SectionScoreRepository,
    SessionRepository,
    UserRepository,
    seed_default_roles,
)
from devops_maturity.core.models import STATUS_COMPLETED
from devops_maturity.core.permissions import DEFAULT_ROLES, EDITOR_ROLE
from devops_maturity.core.scoring import ResponseRecord, SectionScore
from devops_maturity.core.services import AccessResolver

NOW = datetime(2024, 6, 1, 8, 0, tzinfo=timezone.utc)


class TestResponseLedger:
    """At most one row per (assessment, question)."""

    @pytest.mark.asyncio()
    async def test_save_replaces_previous_answers(self, db_session, directory) -> None:
        assessment = await AssessmentRepository(db_session).create(directory.payments, directory.alice, "tok")
        ledger = ResponseRepository(db_session)

        await ledger.save(assessment.id, "S1-Q3", ["S1-Q3-A1", "S1-Q3-A2"])
        await ledger.save(assessment.id, "S1-Q3", ["S1-Q3-A2"])

        assert await ledger.list_by_assessment(assessment.id) == [ResponseRecord("S1-Q3", ("S1-Q3-A2",))]

    @pytest.mark.asyncio()
    async def test_duplicate_answer_ids_are_collapsed(self, db_session, directory) -> None:
        assessment = await AssessmentRepository(db_session).create(directory.payments, directory.alice, "tok")
        ledger = ResponseRepository(db_session)

        await ledger.save(assessment.id, "S1-Q3", ["S1-Q3-A2", "S1-Q3-A1", "S1-Q3-A2"])

        records = await ledger.list_by_assessment(assessment.id)
        assert records[0].answer_ids == ("S1-Q3-A2", "S1-Q3-A1")

    @pytest.mark.asyncio()
    async def test_responses_are_scoped_to_their_assessment(self, db_session, directory) -> None:
        repo = AssessmentRepository(db_session)
        first = await repo.create(directory.payments, directory.alice, "a")
        second = await repo.create(directory.payments, directory.alice, "b")
        ledger = ResponseRepository(db_session)

        await ledger.save(first.id, "S1-Q2", ["S1-Q2-A1"])
        await ledger.save(second.id, "S1-Q4", ["S1-Q4-A2"])
        await ledger.save(first.id, "S1-Q1", ["S1-Q1-A1"])

        assert [r.question_id for r in await ledger.list_by_assessment(first.id)] == ["S1-Q1", "S1-Q2"]


class TestAssessmentRepository:
    @pytest.mark.asyncio()
    async def test_create_starts_in_progress(self, db_session, directory) -> None:
        assessment = await AssessmentRepository(db_session).create(directory.payments, directory.alice, "tok")
        assert assessment.status == "in_progress"
        assert assessment.completed_at is None
        assert assessment.created_at is not None

    @pytest.mark.asyncio()
    async def test_completion_is_conditional(self, db_session, directory) -> None:
        repo = AssessmentRepository(db_session)
        assessment = await repo.create(directory.payments, directory.alice, "tok")

        assert await repo.mark_completed(assessment.id, NOW) is True
        assert await repo.mark_completed(assessment.id, NOW + timedelta(hours=1)) is False

        stored = await repo.get_by_id(assessment.id)
        assert stored.status == STATUS_COMPLETED
        assert stored.completed_at.replace(tzinfo=timezone.utc) == NOW

    @pytest.mark.asyncio()
    async def test_unknown_assessment_cannot_be_completed(self, db_session) -> None:
        assert await AssessmentRepository(db_session).mark_completed(uuid.uuid4(), NOW) is False

    @pytest.mark.asyncio()
    async def test_team_history_and_latest(self, db_session, directory) -> None:
        repo = AssessmentRepository(db_session)
        older = await repo.create(directory.payments, directory.alice, "a")
        newer = await repo.create(directory.payments, directory.alice, "b")
        await repo.create(directory.payments, directory.bob, "c")
        await repo.mark_completed(older.id, NOW)
        await repo.mark_completed(newer.id, NOW + timedelta(days=1))

        completed = await repo.list_by_team(directory.payments, STATUS_COMPLETED)
        latest = await repo.latest_completed_for_team(directory.payments)

        assert {a.id for a in completed} == {older.id, newer.id}
        assert latest.id == newer.id
        assert await repo.latest_completed_for_team(directory.search) is None

    @pytest.mark.asyncio()
    async def test_list_by_user_pages(self, db_session, directory) -> None:
        repo = AssessmentRepository(db_session)
        for token in ("a", "b", "c"):
            await repo.create(directory.payments, directory.alice, token)

        page, total = await repo.list_by_user(directory.alice, offset=0, limit=2)

        assert total == 3
        assert len(page) == 2

    @pytest.mark.asyncio()
    async def test_delete_removes_responses_and_scores(self, db_session, directory) -> None:
        repo = AssessmentRepository(db_session)
        assessment = await repo.create(directory.payments, directory.alice, "tok")
        await ResponseRepository(db_session).save(assessment.id, "S1-Q2", ["S1-Q2-A1"])
        await SectionScoreRepository(db_session).save(assessment.id, "Culture", 1.0, 2.0, 50.0)

        assert await repo.delete(assessment.id) is True
        assert await repo.get_by_id(assessment.id) is None
        assert await ResponseRepository(db_session).list_by_assessment(assessment.id) == []
        assert await SectionScoreRepository(db_session).list_by_assessment(assessment.id) == []
        assert await repo.delete(assessment.id) is False


class TestSectionScoreRepository:
    @pytest.mark.asyncio()
    async def test_save_upserts_per_section(self, db_session, directory) -> None:
        assessment = await AssessmentRepository(db_session).create(directory.payments, directory.alice, "tok")
        scores = SectionScoreRepository(db_session)

        await scores.save(assessment.id, "Culture", 1.0, 4.0, 25.0)
        await scores.save(assessment.id, "Culture", 3.0, 4.0, 75.0)
        await scores.save(assessment.id, "Build", 2.0, 2.0, 100.0)

        assert await scores.list_by_assessment(assessment.id) == [
            SectionScore("Build", 2.0, 2.0, 100.0),
            SectionScore("Culture", 3.0, 4.0, 75.0),
        ]


class TestAccessRepositories:
    @pytest.mark.asyncio()
    async def test_seeding_is_idempotent(self, db_session, directory) -> None:
        assert await seed_default_roles(db_session) == directory.roles

    @pytest.mark.asyncio()
    async def test_role_round_trips_with_permissions(self, db_session, directory) -> None:
        role = await PermissionLookupRepository(db_session).get_role(directory.roles[EDITOR_ROLE])
        assert role == DEFAULT_ROLES[EDITOR_ROLE]

    @pytest.mark.asyncio()
    async def test_resolver_over_stored_memberships(self, db_session, directory) -> None:
        resolver = AccessResolver(PermissionLookupRepository(db_session))

        assert await resolver.has_team_permission(directory.alice, directory.payments, "assessment", "update")
        assert not await resolver.has_team_permission(directory.bob, directory.payments, "assessment", "update")
        assert await resolver.has_team_permission(directory.carol, directory.payments, "assessment", "delete")
        assert not await resolver.has_team_permission(directory.carol, directory.search, "assessment", "read")
        assert await resolver.is_admin(directory.carol)
        assert not await resolver.is_admin(directory.alice)

    @pytest.mark.asyncio()
    async def test_email_lookup_is_case_insensitive(self, db_session, directory) -> None:
        user = await UserRepository(db_session).get_by_email("Alice@Example.com")
        assert user is not None
        assert user.id == directory.alice


class TestSessionRepository:
    """Each call commits on its own."""

    @pytest.mark.asyncio()
    async def test_create_and_fetch(self, session_factory, directory) -> None:
        sessions = SessionRepository(session_factory)
        created = await sessions.create(directory.alice, "tok-1", NOW + timedelta(days=7), NOW)

        fetched = await sessions.get_by_token("tok-1")

        assert fetched.id == created.id
        assert fetched.user_id == directory.alice

    @pytest.mark.asyncio()
    async def test_extend_only_unexpired(self, session_factory, directory) -> None:
        sessions = SessionRepository(session_factory)
        await sessions.create(directory.alice, "live", NOW + timedelta(days=1), NOW)
        await sessions.create(directory.alice, "dead", NOW - timedelta(seconds=1), NOW - timedelta(days=7))

        assert await sessions.extend("live", NOW + timedelta(days=7), NOW) is True
        assert await sessions.extend("dead", NOW + timedelta(days=7), NOW) is False
        assert await sessions.extend("missing", NOW + timedelta(days=7), NOW) is False

    @pytest.mark.asyncio()
    async def test_extend_at_exact_expiry(self, session_factory, directory) -> None:
        sessions = SessionRepository(session_factory)
        await sessions.create(directory.alice, "edge", NOW, NOW - timedelta(days=7))

        assert [s.token for s in await sessions.list_active_for_user(directory.alice, NOW)] == ["edge"]
        assert await sessions.extend("edge", NOW + timedelta(days=7), NOW) is True

    @pytest.mark.asyncio()
    async def test_delete_expired_and_active_listing(self, session_factory, directory) -> None:
        sessions = SessionRepository(session_factory)
        await sessions.create(directory.alice, "live", NOW + timedelta(days=1), NOW)
        await sessions.create(directory.alice, "dead", NOW - timedelta(seconds=1), NOW - timedelta(days=7))
        await sessions.create(directory.bob, "bob", NOW + timedelta(days=1), NOW)

        assert [s.token for s in await sessions.list_active_for_user(directory.alice, NOW)] == ["live"]
        assert await sessions.delete_expired(NOW) == 1
        assert await sessions.get_by_token("dead") is None

    @pytest.mark.asyncio()
    async def test_delete_by_user(self, session_factory, directory) -> None:
        sessions = SessionRepository(session_factory)
        await sessions.create(directory.alice, "a1", NOW + timedelta(days=1), NOW)
        await sessions.create(directory.alice, "a2", NOW + timedelta(days=1), NOW)
        await sessions.create(directory.bob, "b1", NOW + timedelta(days=1), NOW)

        assert await sessions.delete_by_user(directory.alice) == 2
        assert await sessions.get_by_token("b1") is not None
        assert await sessions.delete_by_token("b1") is True
        assert await sessions.delete_by_token("b1") is False
