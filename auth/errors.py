"""
Authentication error taxonomy.

Auth Core raises ``AuthError`` subclasses; the HTTP layer turns them into
responses using ``status_code`` and ``message``.  Store adapters raise
``StoreError`` subclasses, which Auth Core translates before they leave
the service.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class for failures that are safe to report to the caller."""

    status_code: int = 400
    default_message: str = "Authentication error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthorized(AuthError):
    status_code = 401
    default_message = "Unauthorized"


class InvalidCredentials(AuthError):
    status_code = 401
    default_message = "Invalid username or password"


class Forbidden(AuthError):
    status_code = 403
    default_message = "Forbidden"


class NotFound(AuthError):
    status_code = 404
    default_message = "Account not found"


class AlreadyExists(AuthError):
    status_code = 409
    default_message = "Username already exists"


class Conflict(AuthError):
    status_code = 409
    default_message = "Username already taken"


class InternalError(AuthError):
    status_code = 500
    default_message = "Internal server error"


# ── Store-level errors ─────────────────────────────────────────────────


class StoreError(Exception):
    """Persistence failure raised by an ``AccountStore``."""


class UsernameTaken(StoreError):
    """The store rejected a write because the username is not unique."""


class AccountNotFound(StoreError):
    """``update`` referenced an id the store does not know."""
