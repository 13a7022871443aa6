"""
Error taxonomy for the SSO user service.

Known kinds carry the HTTP status they map to at the boundary. Anything that
is not one of these collapses to InternalError with a generic message.
"""


class SSOServiceError(Exception):
    """Base exception for the SSO user service."""

    status_code: int = 500
    error_code: str = "SSO_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ConflictError(SSOServiceError):
    """A unique field (email) is already taken."""

    status_code = 409
    error_code = "CONFLICT"


class NotFoundError(SSOServiceError):
    """No record for the given id."""

    status_code = 404
    error_code = "NOT_FOUND"


class UnauthorizedError(SSOServiceError):
    """Bad credentials or an invalid token."""

    status_code = 401
    error_code = "UNAUTHORIZED"


class InvalidInputError(SSOServiceError):
    """Malformed pagination or missing required fields."""

    status_code = 400
    error_code = "INVALID_INPUT"


class InternalError(SSOServiceError):
    """Unclassified failure. The message is always generic."""

    status_code = 500
    error_code = "INTERNAL"


class StoreError(InternalError):
    """Database driver failure or store call timeout."""

    error_code = "STORE_ERROR"
