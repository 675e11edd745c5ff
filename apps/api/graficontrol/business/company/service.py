from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from graficontrol import audit, events
from graficontrol.business.company.models import Company
from graficontrol.business.company.repository import CompanyRepository
from graficontrol.business.company.schemas import CompanyAccessUpdate, CompanyCreate, CompanyRead
from graficontrol.business.subscription.status import access_status_cache
from graficontrol.core.config import get_settings
from graficontrol.platform.errors import NotFoundError, PermissionDeniedError
from graficontrol.platform.security.context import AuthContext


logger = logging.getLogger("graficontrol.company")


@dataclass(slots=True)
class CompanyService:
    company_repository: CompanyRepository = CompanyRepository()

    def register_company(self, session: Session, ctx: AuthContext, payload: CompanyCreate) -> CompanyRead:
        if not ctx.is_superadmin:
            raise PermissionDeniedError("only superadmins may register companies")

        settings = get_settings()
        company = Company(
            name=payload.name,
            document=payload.document,
            trial_end_date=datetime.now(timezone.utc) + timedelta(days=settings.trial_period_days),
            unlimited_access=False,
        )
        session.add(company)
        session.commit()
        session.refresh(company)

        logger.info("company.registered", extra={"company_id": str(company.id)})
        events.publish(
            {
                "event_type": "company.registered",
                "company_id": str(company.id),
                "trial_end_date": company.trial_end_date.isoformat() if company.trial_end_date else None,
            }
        )
        return CompanyRead.model_validate(company)

    def get_company(self, session: Session, ctx: AuthContext, company_id: uuid.UUID) -> CompanyRead:
        return CompanyRead.model_validate(self._get_company(session, ctx, company_id))

    def get_current_company(self, session: Session, ctx: AuthContext) -> CompanyRead:
        company_id = self.company_repository.require_company(ctx)
        return self.get_company(session, ctx, company_id)

    def update_access(
        self,
        session: Session,
        ctx: AuthContext,
        company_id: uuid.UUID,
        payload: CompanyAccessUpdate,
    ) -> CompanyRead:
        if not ctx.is_superadmin:
            raise PermissionDeniedError("only superadmins may change company access")

        company = self._get_company(session, ctx, company_id)
        before = {
            "unlimited_access": company.unlimited_access,
            "trial_end_date": company.trial_end_date.isoformat() if company.trial_end_date else None,
        }
        changes = payload.model_dump(exclude_unset=True)
        if "unlimited_access" in changes and changes["unlimited_access"] is not None:
            company.unlimited_access = changes["unlimited_access"]
        if "trial_end_date" in changes:
            company.trial_end_date = changes["trial_end_date"]
        session.add(company)
        session.commit()
        session.refresh(company)

        access_status_cache.invalidate_company(company.id)
        after = {
            "unlimited_access": company.unlimited_access,
            "trial_end_date": company.trial_end_date.isoformat() if company.trial_end_date else None,
        }
        audit.record(ctx.user_id, "company", str(company.id), "company.access_updated", before, after, ctx.correlation_id)
        logger.info("company.access_updated", extra={"company_id": str(company.id), "actor_user_id": ctx.user_id})
        return CompanyRead.model_validate(company)

    def _get_company(self, session: Session, ctx: AuthContext, company_id: uuid.UUID) -> Company:
        company = session.scalar(self.company_repository.apply_scope_query(select(Company).where(Company.id == company_id), ctx))
        if company is None:
            raise NotFoundError("company not found")
        return company


company_service = CompanyService()
