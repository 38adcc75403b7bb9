"""
Application error types.

Each ``AppError`` carries the HTTP status it maps to and a message that is
safe to show to the client. Internal detail belongs on ``__cause__`` and in
the server log, never in ``message``.
"""

from __future__ import annotations

from http import HTTPStatus


class AppError(Exception):
    """Base class for errors that the HTTP layer turns into JSON responses."""

    status: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"message": self.message}


class ValidationError(AppError):
    status = HTTPStatus.BAD_REQUEST
    default_message = "Missing fields"


class ConflictError(AppError):
    status = HTTPStatus.CONFLICT
    default_message = "User already exists"


class AuthenticationError(AppError):
    """Bad credentials or no valid session.

    Credential failures always use the default message so that an unknown
    username and a wrong password are reported identically.
    """

    status = HTTPStatus.UNAUTHORIZED
    default_message = "Invalid username or password"


class PersistenceError(AppError):
    status = HTTPStatus.INTERNAL_SERVER_ERROR
    default_message = "Database error"


class ConfigurationError(RuntimeError):
    """Required startup configuration is missing. Fatal."""
