"""Domain exceptions shared by the identity and voting services.

Every exception carries the HTTP status it should be rendered with, so the
API layer maps them with a single exception handler.
"""

from __future__ import annotations

from fastapi import status


class QuorumError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail: str = "Internal server error"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class ValidationError(QuorumError):
    """Malformed or missing input fields."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid request"


class AuthError(QuorumError):
    """Invalid credentials, invalid/expired token, or failed provider check."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Invalid credentials"


class ForbiddenError(AuthError):
    """Authenticated caller acting on a resource they do not own."""

    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Not allowed"


class ConflictError(QuorumError):
    """Username or email already taken."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Username or email already exists"


class ProviderError(QuorumError):
    """Upstream identity provider rejected the token or misbehaved.

    Resolvers translate this into :class:`AuthError` before it reaches a
    caller; the original reason is only logged.
    """

    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Invalid provider token"


class NotFoundError(QuorumError):
    """Referenced user, post or comment does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class TransientError(QuorumError):
    """Conflict retries were exhausted under contention."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "Please retry the request"


class ConstraintViolation(Exception):
    """Uniqueness conflict detected at insert time.

    Internal only: callers recover by retrying, it is never rendered.
    """

    def __init__(self, constraint: str) -> None:
        self.constraint = constraint
        super().__init__(f"unique constraint violated: {constraint}")
