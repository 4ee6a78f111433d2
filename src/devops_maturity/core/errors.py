"""Exception hierarchy for the DevOps Maturity Assessment service.

Every error raised by the core carries a human-readable message and an
optional ``details`` mapping. The API layer maps each family to a single
HTTP status in ``main.py``; storage-layer failures are always wrapped in
``PersistenceError`` so raw query errors never reach a caller.
"""

from typing import Any


class DevOpsMaturityError(Exception):
    """Base class for all domain errors.

    Args:
        message: Human-readable description of the failure.
        details: Optional structured context for logs and API responses.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


# ---------------------------------------------------------------------------
# Not found
# ---------------------------------------------------------------------------


class NotFoundError(DevOpsMaturityError):
    """Raised when a requested entity does not exist."""


class AssessmentNotFoundError(NotFoundError):
    """Raised when no assessment exists for the given ID."""


class SectionNotFoundError(NotFoundError):
    """Raised when a section name or slug does not match the catalog."""


class QuestionNotFoundError(NotFoundError):
    """Raised when a question ID does not match the catalog."""


class UserNotFoundError(NotFoundError):
    """Raised when no user exists for the given ID or email."""


# ---------------------------------------------------------------------------
# Conflicts and lifecycle state
# ---------------------------------------------------------------------------


class AlreadyExistsError(DevOpsMaturityError):
    """Raised when a uniqueness constraint would be violated."""


class InvalidStateError(DevOpsMaturityError):
    """Raised when an operation is illegal for the entity's lifecycle state."""


class AssessmentAlreadyCompletedError(InvalidStateError):
    """Raised when mutating or continuing an assessment that is completed."""


class AssessmentNotInProgressError(InvalidStateError):
    """Raised when completing an assessment that is no longer in progress."""


class AssessmentNotCompletedError(InvalidStateError):
    """Raised when reading results of an assessment that is not completed."""


# ---------------------------------------------------------------------------
# Access control
# ---------------------------------------------------------------------------


class PermissionDeniedError(DevOpsMaturityError):
    """Raised when the access resolver denies a (resource, action) pair."""


class AuthenticationError(DevOpsMaturityError):
    """Base class for authentication boundary failures."""


class SessionNotFoundError(AuthenticationError):
    """Raised when a session token does not match any stored session."""


class SessionExpiredError(AuthenticationError):
    """Raised when a session token matched an expired session."""


class InvalidCredentialsError(AuthenticationError):
    """Raised when an email/password pair does not verify."""


class UserInactiveError(AuthenticationError):
    """Raised when an inactive user attempts to authenticate."""


# ---------------------------------------------------------------------------
# Input sources
# ---------------------------------------------------------------------------


class MalformedInputError(DevOpsMaturityError):
    """Raised when a catalog or advice source cannot be parsed."""


class CatalogMalformedError(MalformedInputError):
    """Raised when the question catalog source is not valid."""


class AdviceMalformedError(MalformedInputError):
    """Raised when the advice catalog source is not valid."""


class SourceUnreadableError(DevOpsMaturityError):
    """Raised when a catalog source cannot be read at all."""


class CatalogUnreadableError(SourceUnreadableError):
    """Raised when the question catalog source cannot be read."""


class AdviceUnreadableError(SourceUnreadableError):
    """Raised when the advice catalog source cannot be read."""


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------


class PersistenceError(DevOpsMaturityError):
    """Raised when the storage layer fails. Callers may retry."""
