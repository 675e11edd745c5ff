from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from graficontrol.business.subscription.provisioning import SubscriptionProvisioningService, provisioning_service
from graficontrol.business.subscription.schemas import (
    AccessStatusRead,
    PlanRead,
    ProvisioningIntentRead,
    SubscriptionCreateRequest,
    SubscriptionCreateResponse,
    SubscriptionRead,
)
from graficontrol.business.subscription.service import subscription_service
from graficontrol.core.database import get_db
from graficontrol.core.dependencies import get_auth_context
from graficontrol.platform.errors import PermissionDeniedError
from graficontrol.platform.security.context import AuthContext


router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])


def get_provisioning_service() -> SubscriptionProvisioningService:
    return provisioning_service


@router.get("/status", response_model=AccessStatusRead)
def get_access_status(
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
) -> AccessStatusRead:
    return subscription_service.get_access_status(db, ctx)


@router.get("/plans", response_model=list[PlanRead])
def list_plans(
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
) -> list[PlanRead]:
    return subscription_service.list_plans(db)


@router.post("/plans/seed", response_model=list[PlanRead])
def seed_default_plans(
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
) -> list[PlanRead]:
    return subscription_service.seed_default_plans(db, ctx)


@router.get("", response_model=list[SubscriptionRead])
def list_subscriptions(
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
) -> list[SubscriptionRead]:
    return subscription_service.list_subscriptions(db, ctx)


@router.post("", response_model=SubscriptionCreateResponse)
def create_subscription(
    payload: SubscriptionCreateRequest,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
    service: SubscriptionProvisioningService = Depends(get_provisioning_service),
) -> SubscriptionCreateResponse:
    return service.create_subscription(db, ctx, payload)


@router.post("/provisioning/sweep", response_model=list[ProvisioningIntentRead])
def sweep_provisioning_intents(
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
    service: SubscriptionProvisioningService = Depends(get_provisioning_service),
) -> list[ProvisioningIntentRead]:
    if not ctx.is_superadmin:
        raise PermissionDeniedError("only superadmins may sweep provisioning intents")
    return service.sweep_provisioning_intents(db)
