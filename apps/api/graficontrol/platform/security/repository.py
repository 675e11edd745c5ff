from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy.sql import Select

from graficontrol.platform.errors import PermissionDeniedError
from graficontrol.platform.security.context import AuthContext


class BaseRepository:
    """Company (tenant) scoping for models exposing a ``company_id`` column."""

    resource = ""

    def apply_scope_query(self, query: Select[Any], ctx: AuthContext) -> Select[Any]:
        if ctx.is_superadmin:
            return query

        for description in query.column_descriptions:
            model = description.get("entity")
            if model is None or not hasattr(model, "company_id"):
                continue
            query = query.where(getattr(model, "company_id") == ctx.company_id)
        return query

    def require_company(self, ctx: AuthContext) -> uuid.UUID:
        if ctx.company_id is None:
            raise PermissionDeniedError(f"no company bound to caller for resource '{self.resource}'")
        return ctx.company_id
