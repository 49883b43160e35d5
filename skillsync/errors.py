"""Domain exceptions.

Raised by the pipeline and marketplace services, mapped to HTTP status codes
by the API layer (see skillsync.api.app).
"""


class SkillSyncError(Exception):
    """Base class for all domain errors."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SkillSyncError):
    """Missing or malformed input, rejected before any store call."""

    status_code = 422


class AuthorizationError(SkillSyncError):
    """Caller is not allowed to perform the action."""

    status_code = 403


class NotFoundError(SkillSyncError):
    status_code = 404


class InvalidTransitionError(SkillSyncError):
    """Requested status change is not an edge of the state machine."""

    status_code = 409


class ConflictError(SkillSyncError):
    """Uniqueness violation or lost race against a concurrent writer."""

    status_code = 409


class PersistenceError(SkillSyncError):
    """Store failure inside a unit of work (already rolled back)."""

    status_code = 503
