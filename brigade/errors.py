"""Domain failures raised by the services and rendered by the API layer.

Each error carries the HTTP status it maps to and a public message. The
public message is the only text a caller ever sees, so storage details stay
in the logs.
"""

from __future__ import annotations


class BrigadeError(Exception):
    status_code = 500
    default_message = "Unexpected server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(BrigadeError):
    status_code = 400
    default_message = "Invalid request"


class InvalidTransitionError(ValidationError):
    default_message = "Invalid status transition"


class AuthError(BrigadeError):
    status_code = 401
    default_message = "Not authenticated"


class PermissionDeniedError(BrigadeError):
    status_code = 403
    default_message = "Insufficient permission"


class NotFoundError(BrigadeError):
    status_code = 404
    default_message = "Resource not found"


class ConflictError(BrigadeError):
    status_code = 409
    default_message = "The user already has a shift in that slot"


class StorageError(BrigadeError):
    status_code = 500
    default_message = "The operation could not be completed"
