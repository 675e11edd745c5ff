from __future__ import annotations

import uuid
from dataclasses import dataclass
from enum import StrEnum


class Role(StrEnum):
    SUPERADMIN = "superadmin"
    ADMIN = "admin"
    USER = "user"


@dataclass(slots=True)
class AuthContext:
    """Caller identity threaded explicitly into every service call."""

    user_id: str
    role: Role = Role.USER
    company_id: uuid.UUID | None = None
    correlation_id: str | None = None

    @property
    def is_superadmin(self) -> bool:
        return self.role == Role.SUPERADMIN

    @property
    def is_admin(self) -> bool:
        return self.role in {Role.ADMIN, Role.SUPERADMIN}
