"""Services package for the DevOps Maturity Assessment service."""

from devops_maturity.core.services.access_service import AccessResolver
from devops_maturity.core.services.assessment_service import (
    AssessmentResults,
    AssessmentService,
    AssessmentSummary,
)
from devops_maturity.core.services.auth_service import AuthService

__all__ = [
    "AccessResolver",
    "AssessmentResults",
    "AssessmentService",
    "AssessmentSummary",
    "AuthService",
]
