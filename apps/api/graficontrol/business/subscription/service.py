from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import and_, select
from sqlalchemy.orm import Session

from graficontrol.business.company.models import Company
from graficontrol.business.subscription.models import Plan, Subscription, SubscriptionStatus
from graficontrol.business.subscription.repository import PlanRepository, SubscriptionRepository
from graficontrol.business.subscription.schemas import AccessStatusRead, PlanRead, SubscriptionRead
from graficontrol.business.subscription.seed import ensure_default_plans
from graficontrol.business.subscription.status import access_status_cache, resolve_access_status
from graficontrol.core.config import get_settings
from graficontrol.platform.errors import NotFoundError, PermissionDeniedError
from graficontrol.platform.security.context import AuthContext


logger = logging.getLogger("graficontrol.subscription")


@dataclass(slots=True)
class SubscriptionService:
    plan_repository: PlanRepository = PlanRepository()
    subscription_repository: SubscriptionRepository = SubscriptionRepository()

    def get_access_status(
        self,
        session: Session,
        ctx: AuthContext,
        *,
        now: datetime | None = None,
        use_cache: bool = True,
    ) -> AccessStatusRead:
        if use_cache:
            cached = access_status_cache.get(ctx.user_id, ctx.company_id)
            if cached is not None:
                return cached

        company = None
        active_subscription = None
        if not ctx.is_superadmin:
            company_id = self.subscription_repository.require_company(ctx)
            company = session.get(Company, company_id)
            if company is None:
                raise NotFoundError("company not found")
            active_subscription = self.latest_active_subscription(session, company.id)

        decision = resolve_access_status(ctx.role, company, active_subscription, now or datetime.now(timezone.utc))
        result = AccessStatusRead(
            status=decision.status,
            is_active=decision.is_active,
            trial_end_date=decision.trial_end_date,
            subscription=SubscriptionRead.model_validate(decision.subscription) if decision.subscription is not None else None,
        )
        if use_cache:
            access_status_cache.set(ctx.user_id, ctx.company_id, result, get_settings().access_status_cache_ttl_seconds)
        return result

    @staticmethod
    def latest_active_subscription(session: Session, company_id: uuid.UUID) -> Subscription | None:
        return session.scalar(
            select(Subscription)
            .where(and_(Subscription.company_id == company_id, Subscription.status == SubscriptionStatus.ACTIVE))
            .order_by(Subscription.created_at.desc())
            .limit(1)
        )

    def list_subscriptions(self, session: Session, ctx: AuthContext) -> list[SubscriptionRead]:
        stmt = self.subscription_repository.apply_scope_query(select(Subscription), ctx)
        rows = session.scalars(stmt.order_by(Subscription.created_at.desc())).all()
        return [SubscriptionRead.model_validate(row) for row in rows]

    def list_plans(self, session: Session) -> list[PlanRead]:
        rows = session.scalars(select(Plan).where(Plan.is_active.is_(True)).order_by(Plan.duration_months.asc())).all()
        return [PlanRead.model_validate(row) for row in rows]

    def seed_default_plans(self, session: Session, ctx: AuthContext) -> list[PlanRead]:
        if not ctx.is_superadmin:
            raise PermissionDeniedError("only superadmins may seed plans")
        created = ensure_default_plans(session)
        logger.info("subscription.plans_seeded", extra={"count": len(created), "actor_user_id": ctx.user_id})
        return self.list_plans(session)


subscription_service = SubscriptionService()
