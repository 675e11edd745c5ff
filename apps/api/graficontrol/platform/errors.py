from __future__ import annotations

from typing import Any


class DomainError(Exception):
    """Base error for rejected operations; rendered as ``{"error": message}``."""

    status_code = 400

    def __init__(self, message: str, **context: Any) -> None:
        self.message = message
        self.context = context
        super().__init__(message)


class ValidationError(DomainError):
    """Malformed or out-of-range input, rejected before any mutation."""

    status_code = 400


class AuthError(DomainError):
    """Missing or invalid credentials (session token or webhook signature)."""

    status_code = 401


class PermissionDeniedError(DomainError):
    status_code = 403


class NotFoundError(DomainError):
    status_code = 404


class ConflictError(DomainError):
    """The operation is not allowed in the entity's current state."""

    status_code = 409


class ExternalProviderError(DomainError):
    """The billing provider rejected a request or could not be reached."""

    status_code = 502


class PartialFailure(DomainError):
    """A remote resource exists but the matching local record could not be written.

    Nothing is rolled back on the provider side; the provisioning intent keeps
    the remote ids for an operator.
    """

    status_code = 500
