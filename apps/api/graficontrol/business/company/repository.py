from __future__ import annotations

from typing import Any

from sqlalchemy.sql import Select

from graficontrol.business.company.models import Company
from graficontrol.platform.security.context import AuthContext
from graficontrol.platform.security.repository import BaseRepository


class CompanyRepository(BaseRepository):
    resource = "company.company"

    def apply_scope_query(self, query: Select[Any], ctx: AuthContext) -> Select[Any]:
        if ctx.is_superadmin:
            return query
        return query.where(Company.id == ctx.company_id)
