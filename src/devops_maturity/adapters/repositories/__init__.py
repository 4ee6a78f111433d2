"""SQLAlchemy repository implementations of the core interfaces."""

from devops_maturity.adapters.repositories.access_repository import (
    PermissionLookupRepository,
    UserRepository,
    seed_default_roles,
)
from devops_maturity.adapters.repositories.assessment_repository import (
    AssessmentRepository,
    ResponseRepository,
    SectionScoreRepository,
)
from devops_maturity.adapters.repositories.session_repository import SessionRepository

__all__ = [
    "AssessmentRepository",
    "PermissionLookupRepository",
    "ResponseRepository",
    "SectionScoreRepository",
    "SessionRepository",
    "UserRepository",
    "seed_default_roles",
]
