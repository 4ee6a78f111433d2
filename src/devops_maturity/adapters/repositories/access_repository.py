"""Repositories for users and the team/group/role join data."""

import uuid
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from devops_maturity.adapters.database import storage_errors
from devops_maturity.core.models import (
    PermissionRow,
    RoleRow,
    Team,
    User,
    UserGroup,
    UserTeam,
    role_permissions,
)
from devops_maturity.core.permissions import ALL_PERMISSIONS, DEFAULT_ROLES, Permission, Role
from devops_maturity.observability import get_logger

logger = get_logger(__name__)


class PermissionLookupRepository:
    """Read access to memberships and role definitions for the AccessResolver."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def team_memberships(self, user_id: uuid.UUID) -> dict[uuid.UUID, uuid.UUID]:
        with storage_errors("access.team_memberships"):
            result = await self._session.execute(
                select(UserTeam.team_id, UserTeam.role_id).where(UserTeam.user_id == user_id)
            )
        return {team_id: role_id for team_id, role_id in result.all()}

    async def group_memberships(self, user_id: uuid.UUID) -> dict[uuid.UUID, uuid.UUID]:
        with storage_errors("access.group_memberships"):
            result = await self._session.execute(
                select(UserGroup.group_id, UserGroup.role_id).where(UserGroup.user_id == user_id)
            )
        return {group_id: role_id for group_id, role_id in result.all()}

    async def team_group(self, team_id: uuid.UUID) -> uuid.UUID | None:
        with storage_errors("access.team_group"):
            return await self._session.scalar(select(Team.group_id).where(Team.id == team_id))

    async def get_role(self, role_id: uuid.UUID) -> Role | None:
        """Load a role and its permission set.

        Permission rows outside the closed vocabulary are skipped with a
        warning rather than failing the whole lookup.
        """
        with storage_errors("access.get_role"):
            role = await self._session.get(RoleRow, role_id)
            if role is None:
                return None
            result = await self._session.execute(
                select(PermissionRow.resource, PermissionRow.action)
                .join(role_permissions, role_permissions.c.permission_id == PermissionRow.id)
                .where(role_permissions.c.role_id == role_id)
            )

        permissions = set()
        for resource, action in result.all():
            try:
                permissions.add(Permission.parse(f"{resource}:{action}"))
            except ValueError:
                logger.warning(
                    "Unknown permission ignored",
                    role=role.name,
                    resource=resource,
                    action=action,
                )
        return Role(name=role.name, permissions=frozenset(permissions))


async def seed_default_roles(session: AsyncSession) -> dict[str, uuid.UUID]:
    """Insert the permission vocabulary and the default roles if missing.

    Idempotent: existing rows are reused.

    Returns:
        Mapping of role name to role ID.
    """
    with storage_errors("access.seed_default_roles"):
        existing_perms = {
            (row.resource, row.action): row
            for row in (await session.execute(select(PermissionRow))).scalars().all()
        }
        for permission in sorted(ALL_PERMISSIONS, key=str):
            key = (permission.resource.value, permission.action.value)
            if key not in existing_perms:
                row = PermissionRow(resource=key[0], action=key[1])
                session.add(row)
                existing_perms[key] = row
        await session.flush()

        role_ids: dict[str, uuid.UUID] = {}
        for name, role in DEFAULT_ROLES.items():
            row = await session.scalar(select(RoleRow).where(RoleRow.name == name))
            if row is not None:
                role_ids[name] = row.id
                continue
            row = RoleRow(name=name, description=f"Default {name} role")
            session.add(row)
            await session.flush()
            await session.execute(
                role_permissions.insert(),
                [
                    {
                        "role_id": row.id,
                        "permission_id": existing_perms[
                            (p.resource.value, p.action.value)
                        ].id,
                    }
                    for p in sorted(role.permissions, key=str)
                ],
            )
            role_ids[name] = row.id
        await session.flush()

    logger.info("Default roles ensured", roles=sorted(role_ids))
    return role_ids


class UserRepository:
    """The subset of user storage used by the auth flow."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, user_id: uuid.UUID) -> User | None:
        with storage_errors("user.get_by_id"):
            return await self._session.get(User, user_id)

    async def get_by_email(self, email: str) -> User | None:
        with storage_errors("user.get_by_email"):
            return await self._session.scalar(select(User).where(User.email == email.lower()))

    async def update_password_hash(self, user_id: uuid.UUID, password_hash: str) -> None:
        with storage_errors("user.update_password_hash"):
            await self._session.execute(
                update(User).where(User.id == user_id).values(password_hash=password_hash)
            )
            await self._session.flush()

    async def record_login(self, user_id: uuid.UUID, when: datetime) -> None:
        with storage_errors("user.record_login"):
            await self._session.execute(
                update(User).where(User.id == user_id).values(last_login_at=when)
            )
            await self._session.flush()
