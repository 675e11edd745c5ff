import uuid
from dataclasses import dataclass

from jose import JWTError, jwt
from starlette.requests import Request

from graficontrol.core.config import get_settings
from graficontrol.platform.errors import AuthError
from graficontrol.platform.security.context import Role


@dataclass
class AuthUser:
    sub: str
    role: Role
    company_id: uuid.UUID | None = None


def _parse_role(raw: object) -> Role:
    try:
        return Role(str(raw))
    except ValueError:
        return Role.USER


def _parse_company_id(raw: object) -> uuid.UUID | None:
    if raw is None:
        return None
    try:
        return uuid.UUID(str(raw))
    except ValueError:
        raise AuthError("invalid company claim")


async def get_current_user(request: Request) -> AuthUser:
    auth_header = request.headers.get("authorization", "")
    token = auth_header[len("Bearer ") :] if auth_header.startswith("Bearer ") else ""

    if not token:
        raise AuthError("missing bearer token")

    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError:
        raise AuthError("invalid or expired session")

    subject = payload.get("sub")
    if not subject:
        raise AuthError("token has no subject")

    return AuthUser(
        sub=str(subject),
        role=_parse_role(payload.get("role", Role.USER.value)),
        company_id=_parse_company_id(payload.get("company_id")),
    )
