from __future__ import annotations


class AppError(Exception):
    # Base class for failures surfaced to the caller with a status code.
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    # Malformed or missing input, or a questionnaire invariant violation.
    status_code = 400
    default_message = "Invalid request"


class InvalidIdentifier(AppError):
    # Id is not a syntactically valid store key.
    status_code = 400
    default_message = "Invalid ID format"


class NotFound(AppError):
    status_code = 404
    default_message = "Not found"


class Unauthorized(AppError):
    # Secret missing or wrong.
    status_code = 401
    default_message = "Authorization required"


class Forbidden(AppError):
    # Target exists but is not protected by the requested gate.
    status_code = 403
    default_message = "Forbidden"


class InternalError(AppError):
    # Store unreachable or unexpected failure; details stay in the server log.
    status_code = 500
