"""SQLAlchemy ORM models for the DevOps Maturity Assessment service.

Tables:
    assessments       : one questionnaire run by a team
    responses         : selected answer IDs per (assessment, question)
    section_scores    : persisted section totals of a completed assessment
    users, teams, groups, roles, permissions, role_permissions,
    user_teams, user_groups : access-control join data
    user_sessions     : opaque session tokens
"""

from devops_maturity.core.models.access import (
    Group,
    PermissionRow,
    RoleRow,
    Team,
    User,
    UserGroup,
    UserSession,
    UserTeam,
    role_permissions,
)
from devops_maturity.core.models.assessment import (
    STATUS_COMPLETED,
    STATUS_IN_PROGRESS,
    Assessment,
    Response,
    SectionScoreRow,
)
from devops_maturity.core.models.base import Base

__all__ = [
    "Assessment",
    "Base",
    "Group",
    "PermissionRow",
    "Response",
    "RoleRow",
    "STATUS_COMPLETED",
    "STATUS_IN_PROGRESS",
    "SectionScoreRow",
    "Team",
    "User",
    "UserGroup",
    "UserSession",
    "UserTeam",
    "role_permissions",
]
