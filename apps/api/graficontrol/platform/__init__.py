from graficontrol.platform.errors import (
    AuthError,
    ConflictError,
    DomainError,
    ExternalProviderError,
    NotFoundError,
    PartialFailure,
    PermissionDeniedError,
    ValidationError,
)
from graficontrol.platform.security.context import AuthContext, Role
from graficontrol.platform.security.repository import BaseRepository

__all__ = [
    "AuthContext",
    "AuthError",
    "BaseRepository",
    "ConflictError",
    "DomainError",
    "ExternalProviderError",
    "NotFoundError",
    "PartialFailure",
    "PermissionDeniedError",
    "Role",
    "ValidationError",
]
