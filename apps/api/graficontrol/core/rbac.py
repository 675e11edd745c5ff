from collections.abc import Callable

from fastapi import Depends

from graficontrol.core.auth import AuthUser, get_current_user
from graficontrol.platform.errors import PermissionDeniedError
from graficontrol.platform.security.context import Role


def require_roles(*roles: Role) -> Callable[[AuthUser], AuthUser]:
    async def checker(user: AuthUser = Depends(get_current_user)) -> AuthUser:
        if user.role not in roles:
            raise PermissionDeniedError(f"role '{user.role.value}' may not perform this action")
        return user

    return checker
