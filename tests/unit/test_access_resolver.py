"""Unit tests for team/group permission resolution."""

import uuid

import pytest

from devops_maturity.core.errors import PermissionDeniedError
from devops_maturity.core.permissions import (
    ADMIN_ROLE,
    DEFAULT_ROLES,
    EDITOR_ROLE,
    VIEWER_ROLE,
    Action,
    Permission,
    Resource,
    Role,
)
from devops_maturity.core.services.access_service import AccessResolver

ADMIN_ID = uuid.uuid4()
EDITOR_ID = uuid.uuid4()
VIEWER_ID = uuid.uuid4()
READER_ID = uuid.uuid4()


class FakePermissionLookup:
    """In-memory membership store."""

    def __init__(self) -> None:
        self.roles: dict[uuid.UUID, Role] = {
            ADMIN_ID: DEFAULT_ROLES[ADMIN_ROLE],
            EDITOR_ID: DEFAULT_ROLES[EDITOR_ROLE],
            VIEWER_ID: DEFAULT_ROLES[VIEWER_ROLE],
            READER_ID: Role("reader", frozenset({Permission(Resource.ASSESSMENT, Action.READ)})),
        }
        self.teams: dict[uuid.UUID, dict[uuid.UUID, uuid.UUID]] = {}
        self.groups: dict[uuid.UUID, dict[uuid.UUID, uuid.UUID]] = {}
        self.team_groups: dict[uuid.UUID, uuid.UUID] = {}

    async def team_memberships(self, user_id: uuid.UUID) -> dict[uuid.UUID, uuid.UUID]:
        return dict(self.teams.get(user_id, {}))

    async def group_memberships(self, user_id: uuid.UUID) -> dict[uuid.UUID, uuid.UUID]:
        return dict(self.groups.get(user_id, {}))

    async def team_group(self, team_id: uuid.UUID) -> uuid.UUID | None:
        return self.team_groups.get(team_id)

    async def get_role(self, role_id: uuid.UUID) -> Role | None:
        return self.roles.get(role_id)


@pytest.fixture()
def lookup() -> FakePermissionLookup:
    return FakePermissionLookup()


@pytest.fixture()
def resolver(lookup: FakePermissionLookup) -> AccessResolver:
    return AccessResolver(lookup)


class TestDirectTeamMembership:
    """Roles held directly on a team."""

    @pytest.mark.asyncio()
    async def test_team_role_grants_global_and_team_permission(
        self, resolver: AccessResolver, lookup: FakePermissionLookup, user_id, team_id
    ) -> None:
        lookup.teams[user_id] = {team_id: READER_ID}

        assert await resolver.has_team_permission(user_id, team_id, "assessment", "read")
        assert await resolver.has_permission(user_id, "assessment", "read")

    @pytest.mark.asyncio()
    async def test_unrelated_team_is_denied(
        self, resolver: AccessResolver, lookup: FakePermissionLookup, user_id, team_id
    ) -> None:
        lookup.teams[user_id] = {team_id: READER_ID}
        assert not await resolver.has_team_permission(user_id, uuid.uuid4(), "assessment", "read")

    @pytest.mark.asyncio()
    async def test_missing_permission_is_denied(
        self, resolver: AccessResolver, lookup: FakePermissionLookup, user_id, team_id
    ) -> None:
        lookup.teams[user_id] = {team_id: VIEWER_ID}
        assert not await resolver.has_team_permission(
            user_id, team_id, Resource.ASSESSMENT, Action.UPDATE
        )

    @pytest.mark.asyncio()
    async def test_role_on_other_team_does_not_leak(
        self, resolver: AccessResolver, lookup: FakePermissionLookup, user_id, team_id
    ) -> None:
        other_team = uuid.uuid4()
        lookup.teams[user_id] = {team_id: VIEWER_ID, other_team: ADMIN_ID}

        assert not await resolver.has_team_permission(user_id, team_id, "assessment", "delete")
        assert await resolver.has_team_permission(user_id, other_team, "assessment", "delete")
        assert await resolver.has_permission(user_id, "assessment", "delete")


class TestGroupMembership:
    """Roles inherited through a team's parent group."""

    @pytest.mark.asyncio()
    async def test_group_role_applies_to_member_teams(
        self, resolver: AccessResolver, lookup: FakePermissionLookup, user_id, team_id
    ) -> None:
        group_id = uuid.uuid4()
        lookup.team_groups[team_id] = group_id
        lookup.groups[user_id] = {group_id: EDITOR_ID}

        assert await resolver.has_team_permission(user_id, team_id, "report", "export")

    @pytest.mark.asyncio()
    async def test_group_role_does_not_apply_to_teams_outside_group(
        self, resolver: AccessResolver, lookup: FakePermissionLookup, user_id, team_id
    ) -> None:
        group_id = uuid.uuid4()
        lookup.groups[user_id] = {group_id: EDITOR_ID}

        assert not await resolver.has_team_permission(user_id, team_id, "report", "export")
        assert await resolver.has_permission(user_id, "report", "export")

    @pytest.mark.asyncio()
    async def test_team_and_group_roles_are_unioned(
        self, resolver: AccessResolver, lookup: FakePermissionLookup, user_id, team_id
    ) -> None:
        group_id = uuid.uuid4()
        lookup.team_groups[team_id] = group_id
        lookup.teams[user_id] = {team_id: VIEWER_ID}
        lookup.groups[user_id] = {group_id: EDITOR_ID}

        permissions = await resolver.team_permissions(user_id, team_id)
        assert permissions == DEFAULT_ROLES[VIEWER_ROLE].permissions | DEFAULT_ROLES[EDITOR_ROLE].permissions


class TestAdminAndRequire:
    @pytest.mark.asyncio()
    async def test_is_admin(
        self, resolver: AccessResolver, lookup: FakePermissionLookup, user_id, team_id
    ) -> None:
        assert not await resolver.is_admin(user_id)
        lookup.teams[user_id] = {team_id: ADMIN_ID}
        assert await resolver.is_admin(user_id)

    @pytest.mark.asyncio()
    async def test_user_without_memberships_has_nothing(self, resolver: AccessResolver, user_id) -> None:
        assert await resolver.effective_permissions(user_id) == frozenset()
        assert await resolver.user_roles(user_id) == []

    @pytest.mark.asyncio()
    async def test_require_team_permission_raises(
        self, resolver: AccessResolver, user_id, team_id
    ) -> None:
        with pytest.raises(PermissionDeniedError) as exc_info:
            await resolver.require_team_permission(user_id, team_id, "assessment", "read")
        assert exc_info.value.details["permission"] == "assessment:read"

    @pytest.mark.asyncio()
    async def test_require_permission_passes_when_granted(
        self, resolver: AccessResolver, lookup: FakePermissionLookup, user_id, team_id
    ) -> None:
        lookup.teams[user_id] = {team_id: ADMIN_ID}
        await resolver.require_permission(user_id, Resource.USER, Action.UPDATE)

    def test_unknown_vocabulary_is_rejected(self) -> None:
        with pytest.raises(ValueError):
            Permission.parse("assessment:approve")


class TestDefaultRoles:
    def test_admin_has_every_permission(self) -> None:
        admin = DEFAULT_ROLES[ADMIN_ROLE].permissions
        assert Permission.parse("system:manage") in admin
        assert Permission.parse("audit:read") in admin

    def test_editor_can_export_but_not_delete(self) -> None:
        editor = DEFAULT_ROLES[EDITOR_ROLE].permissions
        assert Permission.parse("report:export") in editor
        assert Permission.parse("assessment:delete") not in editor

    def test_viewer_is_read_only(self) -> None:
        viewer = DEFAULT_ROLES[VIEWER_ROLE].permissions
        assert {p.action for p in viewer} == {Action.READ}
