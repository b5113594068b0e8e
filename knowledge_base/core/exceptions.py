"""Error kinds raised by the moderation core.

Every rule violation surfaces as one of these types so callers can tell
them apart; the HTTP layer maps each ``code`` to a status via
``HTTP_STATUS_BY_CODE``.
"""

from fastapi import status


class KnowledgeBaseError(Exception):
    """Base exception for the knowledge base."""

    code = "error"

    def __init__(self, message: str = "An error occurred"):
        self.message = message
        super().__init__(self.message)


class Forbidden(KnowledgeBaseError):
    """Raised when the actor's role does not allow the operation."""
    code = "forbidden"


class NotFound(KnowledgeBaseError):
    """Raised when a referenced user, question or answer does not exist."""
    code = "not_found"


class InvalidState(KnowledgeBaseError):
    """Raised when an operation is illegal for the entity's current status."""
    code = "invalid_state"


class Locked(InvalidState):
    """Raised when answering a question that already carries a final answer."""
    code = "locked"


class InvalidStatus(KnowledgeBaseError):
    """Raised when a status value is outside pending/approved/rejected."""
    code = "invalid_status"


class ThrottleViolation(KnowledgeBaseError):
    """Raised when a supervisor already has a question awaiting review."""
    code = "throttle_violation"


class ValidationError(KnowledgeBaseError):
    """Raised when input validation fails."""
    code = "validation_error"


HTTP_STATUS_BY_CODE = {
    Forbidden.code: status.HTTP_403_FORBIDDEN,
    NotFound.code: status.HTTP_404_NOT_FOUND,
    InvalidState.code: status.HTTP_409_CONFLICT,
    Locked.code: status.HTTP_409_CONFLICT,
    InvalidStatus.code: status.HTTP_400_BAD_REQUEST,
    ThrottleViolation.code: status.HTTP_429_TOO_MANY_REQUESTS,
    ValidationError.code: status.HTTP_422_UNPROCESSABLE_ENTITY,
}


def http_status_for(exc: KnowledgeBaseError) -> int:
    return HTTP_STATUS_BY_CODE.get(exc.code, status.HTTP_400_BAD_REQUEST)
