"""
Application error taxonomy.

Each error carries the HTTP status it maps to; ``api.middleware`` renders
them as ``{"error": message}`` so no internal detail reaches the client.
"""

from __future__ import annotations


class AppError(Exception):
    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    """Malformed or missing required input."""

    status_code = 400
    default_message = "Invalid input"


class AuthenticationError(AppError):
    """Bad credentials, or a missing / invalid / expired bearer token."""

    status_code = 401
    default_message = "Unauthorized"


class NotFoundError(AppError):
    """
    Resource absent.

    Also raised when a resource exists but belongs to another owner, so
    ownership cannot be probed.
    """

    status_code = 404
    default_message = "Not found"


class DuplicateError(AppError):
    """Unique-constraint violation."""

    status_code = 409
    default_message = "Already exists"


class DependencyError(AppError):
    """Relational store or blob store failure."""

    status_code = 500
    default_message = "Internal server error"
