from fastapi import Depends, Request

from graficontrol.context import get_correlation_id
from graficontrol.core.auth import AuthUser, get_current_user
from graficontrol.platform.security.context import AuthContext


def get_auth_context(request: Request, auth_user: AuthUser = Depends(get_current_user)) -> AuthContext:
    return AuthContext(
        user_id=auth_user.sub,
        role=auth_user.role,
        company_id=auth_user.company_id,
        correlation_id=get_correlation_id() or getattr(request.state, "correlation_id", None),
    )
