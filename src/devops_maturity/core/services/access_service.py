"""Permission resolution across team and group memberships.

A user holds one role per team and one role per group. Resolution is plain
set algebra over an injected ``IPermissionLookup``:

    global:  union of the permissions of every team role and group role
    on team: union of the user's direct role on the team and, when the team
             belongs to a group, the user's role on that group

A user who is neither a member of a team nor of its group has no permission
on that team, whatever roles they hold elsewhere.
"""

import uuid
from collections.abc import Iterable

from devops_maturity.core.errors import PermissionDeniedError
from devops_maturity.core.interfaces import IPermissionLookup
from devops_maturity.core.permissions import ADMIN_ROLE, Action, Permission, Resource, Role
from devops_maturity.observability import get_logger

logger = get_logger(__name__)


def _permission(resource: Resource | str, action: Action | str) -> Permission:
    return Permission(Resource(resource), Action(action))


class AccessResolver:
    """Resolves effective permissions for a user.

    Args:
        lookup: Membership and role lookup capability.
    """

    def __init__(self, lookup: IPermissionLookup) -> None:
        self._lookup = lookup

    async def _resolve_roles(self, role_ids: Iterable[uuid.UUID]) -> list[Role]:
        roles = []
        for role_id in dict.fromkeys(role_ids):
            role = await self._lookup.get_role(role_id)
            if role is not None:
                roles.append(role)
        return roles

    async def user_roles(self, user_id: uuid.UUID) -> list[Role]:
        """Every distinct role the user holds through teams and groups."""
        teams = await self._lookup.team_memberships(user_id)
        groups = await self._lookup.group_memberships(user_id)
        return await self._resolve_roles([*teams.values(), *groups.values()])

    async def effective_permissions(self, user_id: uuid.UUID) -> frozenset[Permission]:
        """Union of permissions across all of the user's roles."""
        permissions: set[Permission] = set()
        for role in await self.user_roles(user_id):
            permissions |= role.permissions
        return frozenset(permissions)

    async def team_permissions(self, user_id: uuid.UUID, team_id: uuid.UUID) -> frozenset[Permission]:
        """Permissions the user holds on one team, directly or via its group."""
        role_ids = []

        teams = await self._lookup.team_memberships(user_id)
        if team_id in teams:
            role_ids.append(teams[team_id])

        group_id = await self._lookup.team_group(team_id)
        if group_id is not None:
            groups = await self._lookup.group_memberships(user_id)
            if group_id in groups:
                role_ids.append(groups[group_id])

        permissions: set[Permission] = set()
        for role in await self._resolve_roles(role_ids):
            permissions |= role.permissions
        return frozenset(permissions)

    async def has_permission(
        self, user_id: uuid.UUID, resource: Resource | str, action: Action | str
    ) -> bool:
        """Whether any of the user's roles grants ``resource:action``."""
        granted = _permission(resource, action) in await self.effective_permissions(user_id)
        logger.debug(
            "Permission resolved",
            user_id=str(user_id),
            permission=str(_permission(resource, action)),
            granted=granted,
        )
        return granted

    async def has_team_permission(
        self,
        user_id: uuid.UUID,
        team_id: uuid.UUID,
        resource: Resource | str,
        action: Action | str,
    ) -> bool:
        """Whether the user holds ``resource:action`` on the given team."""
        permission = _permission(resource, action)
        granted = permission in await self.team_permissions(user_id, team_id)
        logger.debug(
            "Team permission resolved",
            user_id=str(user_id),
            team_id=str(team_id),
            permission=str(permission),
            granted=granted,
        )
        return granted

    async def is_admin(self, user_id: uuid.UUID) -> bool:
        """Whether the user holds the admin role on any team or group."""
        return any(role.name == ADMIN_ROLE for role in await self.user_roles(user_id))

    async def require_permission(
        self, user_id: uuid.UUID, resource: Resource | str, action: Action | str
    ) -> None:
        """Raise unless ``has_permission`` holds.

        Raises:
            PermissionDeniedError: If the permission is not granted.
        """
        if not await self.has_permission(user_id, resource, action):
            permission = str(_permission(resource, action))
            raise PermissionDeniedError(
                f"Permission denied: {permission}",
                {"permission": permission},
            )

    async def require_team_permission(
        self,
        user_id: uuid.UUID,
        team_id: uuid.UUID,
        resource: Resource | str,
        action: Action | str,
    ) -> None:
        """Raise unless ``has_team_permission`` holds.

        Raises:
            PermissionDeniedError: If the permission is not granted on the team.
        """
        if not await self.has_team_permission(user_id, team_id, resource, action):
            permission = str(_permission(resource, action))
            raise PermissionDeniedError(
                f"Permission denied: {permission} on team {team_id}",
                {"permission": permission, "team_id": str(team_id)},
            )
