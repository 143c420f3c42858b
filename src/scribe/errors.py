"""Domain errors.

Services raise these; the API boundary (scribe.api.errors) turns each
one into a JSON envelope with its status code. Messages are safe to show
to clients.
"""


class ScribeError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code = 500
    code = "internal_error"
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(ScribeError):
    status_code = 400
    code = "validation_error"
    default_message = "Invalid request"


class ConflictError(ScribeError):
    status_code = 400
    code = "conflict"
    default_message = "Email or username already exists."


class InvalidOrExpiredToken(ScribeError):
    status_code = 400
    code = "invalid_or_expired_token"
    default_message = "Password reset token is invalid or has expired."


class MissingCredential(ScribeError):
    status_code = 401
    code = "missing_credential"
    default_message = "Request is missing required authentication credential."


class Unauthorized(ScribeError):
    status_code = 401
    code = "unauthorized"
    default_message = "Unauthorized"


class Forbidden(ScribeError):
    status_code = 403
    code = "forbidden"
    default_message = "You are not allowed to access this resource"


class NotFound(ScribeError):
    status_code = 404
    code = "not_found"
    default_message = "Not found"
