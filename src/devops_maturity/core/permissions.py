"""Closed permission vocabulary and the default role bundles."""

from dataclasses import dataclass
from enum import Enum


class Resource(str, Enum):
    USER = "user"
    TEAM = "team"
    GROUP = "group"
    ASSESSMENT = "assessment"
    REPORT = "report"
    SYSTEM = "system"
    AUDIT = "audit"


class Action(str, Enum):
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    EXPORT = "export"
    MANAGE = "manage"


@dataclass(frozen=True)
class Permission:
    """A (resource, action) pair, written ``resource:action``."""

    resource: Resource
    action: Action

    def __str__(self) -> str:
        return f"{self.resource.value}:{self.action.value}"

    @classmethod
    def parse(cls, value: str) -> "Permission":
        """Parse ``"resource:action"``.

        Raises:
            ValueError: If either half is outside the vocabulary.
        """
        resource, _, action = value.partition(":")
        return cls(Resource(resource), Action(action))


@dataclass(frozen=True)
class Role:
    """A named bundle of permissions."""

    name: str
    permissions: frozenset[Permission]


ADMIN_ROLE = "admin"
EDITOR_ROLE = "editor"
VIEWER_ROLE = "viewer"


def _perms(*pairs: tuple[Resource, Action]) -> frozenset[Permission]:
    return frozenset(Permission(r, a) for r, a in pairs)


ALL_PERMISSIONS: frozenset[Permission] = _perms(
    (Resource.USER, Action.CREATE),
    (Resource.USER, Action.READ),
    (Resource.USER, Action.UPDATE),
    (Resource.USER, Action.DELETE),
    (Resource.TEAM, Action.CREATE),
    (Resource.TEAM, Action.READ),
    (Resource.TEAM, Action.UPDATE),
    (Resource.TEAM, Action.DELETE),
    (Resource.GROUP, Action.CREATE),
    (Resource.GROUP, Action.READ),
    (Resource.GROUP, Action.UPDATE),
    (Resource.GROUP, Action.DELETE),
    (Resource.ASSESSMENT, Action.CREATE),
    (Resource.ASSESSMENT, Action.READ),
    (Resource.ASSESSMENT, Action.UPDATE),
    (Resource.ASSESSMENT, Action.DELETE),
    (Resource.REPORT, Action.READ),
    (Resource.REPORT, Action.EXPORT),
    (Resource.SYSTEM, Action.MANAGE),
    (Resource.AUDIT, Action.READ),
)

DEFAULT_ROLES: dict[str, Role] = {
    ADMIN_ROLE: Role(ADMIN_ROLE, ALL_PERMISSIONS),
    EDITOR_ROLE: Role(
        EDITOR_ROLE,
        _perms(
            (Resource.ASSESSMENT, Action.CREATE),
            (Resource.ASSESSMENT, Action.READ),
            (Resource.ASSESSMENT, Action.UPDATE),
            (Resource.TEAM, Action.READ),
            (Resource.USER, Action.READ),
            (Resource.GROUP, Action.READ),
            (Resource.REPORT, Action.READ),
            (Resource.REPORT, Action.EXPORT),
        ),
    ),
    VIEWER_ROLE: Role(
        VIEWER_ROLE,
        _perms(
            (Resource.ASSESSMENT, Action.READ),
            (Resource.TEAM, Action.READ),
            (Resource.REPORT, Action.READ),
        ),
    ),
}
