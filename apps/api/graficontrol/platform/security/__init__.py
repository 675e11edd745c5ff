from graficontrol.platform.security.context import AuthContext, Role
from graficontrol.platform.security.repository import BaseRepository

__all__ = [
    "AuthContext",
    "BaseRepository",
    "Role",
]
