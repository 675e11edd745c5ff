from __future__ import annotations

import calendar
import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from sqlalchemy import and_, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from graficontrol import events
from graficontrol.business.company.models import Company
from graficontrol.business.subscription.models import (
    PaymentMethod,
    Plan,
    ProvisioningIntent,
    ProvisioningIntentStatus,
    Subscription,
    SubscriptionStatus,
)
from graficontrol.business.subscription.repository import ProvisioningIntentRepository, SubscriptionRepository
from graficontrol.business.subscription.schemas import (
    PixPaymentInfo,
    ProvisioningIntentRead,
    SubscriptionCreateRequest,
    SubscriptionCreateResponse,
)
from graficontrol.business.subscription.status import access_status_cache
from graficontrol.core.config import get_settings
from graficontrol.integrations.billing_provider import (
    BillingProviderClient,
    CreditCard,
    CreditCardHolderInfo,
    RemoteSubscriptionRequest,
)
from graficontrol.metrics import observe_orphaned_intents, observe_provisioning
from graficontrol.otel import annotate_current_span
from graficontrol.platform.errors import ExternalProviderError, NotFoundError, PartialFailure, ValidationError
from graficontrol.platform.security.context import AuthContext


logger = logging.getLogger("graficontrol.subscription.provisioning")

BILLING_CYCLES: dict[int, str] = {
    1: "MONTHLY",
    3: "QUARTERLY",
    6: "SEMIANNUALLY",
    12: "YEARLY",
}

_OPEN_INTENT_STATUSES = (
    ProvisioningIntentStatus.PENDING,
    ProvisioningIntentStatus.CUSTOMER_CREATED,
    ProvisioningIntentStatus.REMOTE_CREATED,
)


def billing_cycle_for(duration_months: int) -> str:
    cycle = BILLING_CYCLES.get(duration_months)
    if cycle is None:
        raise ValidationError(f"plans of {duration_months} months cannot be billed")
    return cycle


def add_months(base: datetime, months: int) -> datetime:
    month_index = base.month - 1 + months
    year = base.year + (month_index // 12)
    month = month_index % 12 + 1
    day = min(base.day, calendar.monthrange(year, month)[1])
    return base.replace(year=year, month=month, day=day)


@dataclass(slots=True)
class SubscriptionProvisioningService:
    """Creates the remote customer/subscription and the local shadow records.

    A ``ProvisioningIntent`` is committed before the first remote call and
    advanced after each step, so a crash or a failed local write leaves a row
    that ``sweep_provisioning_intents`` can flag for an operator. Remote objects
    are never rolled back.
    """

    client_factory: Callable[[], BillingProviderClient] = field(default=BillingProviderClient.from_settings)
    subscription_repository: SubscriptionRepository = SubscriptionRepository()
    intent_repository: ProvisioningIntentRepository = ProvisioningIntentRepository()

    def create_subscription(
        self,
        session: Session,
        ctx: AuthContext,
        payload: SubscriptionCreateRequest,
        *,
        now: datetime | None = None,
    ) -> SubscriptionCreateResponse:
        now = now or datetime.now(timezone.utc)
        company_id = self.subscription_repository.require_company(ctx)
        company = session.get(Company, company_id)
        if company is None:
            raise NotFoundError("company not found")

        plan = session.scalar(select(Plan).where(and_(Plan.id == payload.plan_id, Plan.is_active.is_(True))))
        if plan is None:
            raise NotFoundError("plan not found")
        cycle = billing_cycle_for(plan.duration_months)
        payment_method = PaymentMethod(payload.payment_method.lower())

        intent = ProvisioningIntent(
            company_id=company.id,
            plan_id=plan.id,
            payment_method=payment_method,
            subscription_id=uuid.uuid4(),
            status=ProvisioningIntentStatus.PENDING,
            created_by=ctx.user_id,
        )
        session.add(intent)
        session.commit()
        intent_id = intent.id
        log_extra = {"intent_id": str(intent_id), "company_id": str(company.id), "subscription_id": str(intent.subscription_id)}
        logger.info("provisioning.started", extra=log_extra)
        annotate_current_span(intent_id=str(intent_id), company_id=str(company.id), subscription_id=str(intent.subscription_id))

        client = self.client_factory()
        try:
            customer_id = self._ensure_customer(session, client, company, intent, payload)
            remote = client.create_subscription(
                RemoteSubscriptionRequest(
                    customer_id=customer_id,
                    billing_type=payload.payment_method,
                    value=float(plan.price),
                    next_due_date=(now + timedelta(days=1)).date(),
                    cycle=cycle,
                    description=f"Subscription {plan.name}",
                    external_reference=str(intent.subscription_id),
                    credit_card=CreditCard(**payload.credit_card.model_dump()) if payload.credit_card else None,
                    credit_card_holder_info=(
                        CreditCardHolderInfo(**payload.credit_card_holder_info.model_dump())
                        if payload.credit_card_holder_info
                        else None
                    ),
                )
            )
            remote_subscription_id = remote.get("id")
            if not remote_subscription_id:
                raise ExternalProviderError("failed to create subscription: billing provider returned no id")
        except ExternalProviderError as exc:
            observe_provisioning("provider_error")
            self._fail_intent(session, intent_id, str(exc))
            logger.error("provisioning.provider_error", extra={**log_extra, "error": str(exc)})
            raise

        try:
            intent.billing_provider_subscription_id = str(remote_subscription_id)
            intent.status = ProvisioningIntentStatus.REMOTE_CREATED
            session.commit()

            subscription = Subscription(
                id=intent.subscription_id,
                company_id=company.id,
                plan_id=plan.id,
                status=SubscriptionStatus.PENDING,
                start_date=now,
                end_date=add_months(now, plan.duration_months),
                payment_method=payment_method,
                billing_provider_subscription_id=str(remote_subscription_id),
            )
            session.add(subscription)
            intent.status = ProvisioningIntentStatus.FULFILLED
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            observe_provisioning("partial_failure")
            logger.error(
                "provisioning.partial_failure",
                exc_info=True,
                extra={
                    **log_extra,
                    "billing_provider_customer_id": customer_id,
                    "billing_provider_subscription_id": str(remote_subscription_id),
                    "error": str(exc),
                },
            )
            self._fail_intent(
                session,
                intent_id,
                f"local persistence failed: {exc}",
                billing_provider_subscription_id=str(remote_subscription_id),
            )
            raise PartialFailure("subscription was created at the billing provider but could not be saved") from exc

        access_status_cache.invalidate_company(company.id)
        observe_provisioning("created")
        logger.info(
            "provisioning.fulfilled",
            extra={**log_extra, "billing_provider_subscription_id": str(remote_subscription_id)},
        )
        events.publish(
            {
                "event_type": "subscription.created",
                "company_id": str(company.id),
                "subscription_id": str(subscription.id),
                "plan_id": str(plan.id),
                "payment_method": payment_method.value,
                "correlation_id": ctx.correlation_id,
            }
        )

        pix = None
        if payment_method == PaymentMethod.PIX:
            pix = self._fetch_pix(client, str(remote_subscription_id))

        return SubscriptionCreateResponse(
            subscription_id=subscription.id,
            billing_provider_subscription_id=str(remote_subscription_id),
            status=subscription.status,
            provider_status=remote.get("status"),
            pix=pix,
        )

    def sweep_provisioning_intents(
        self,
        session: Session,
        *,
        now: datetime | None = None,
        stale_after: timedelta | None = None,
    ) -> list[ProvisioningIntentRead]:
        now = now or datetime.now(timezone.utc)
        if stale_after is None:
            stale_after = timedelta(minutes=get_settings().provisioning_intent_stale_minutes)
        cutoff = now - stale_after

        rows = session.scalars(
            select(ProvisioningIntent).where(
                or_(
                    and_(ProvisioningIntent.status.in_(_OPEN_INTENT_STATUSES), ProvisioningIntent.updated_at < cutoff),
                    and_(
                        ProvisioningIntent.status == ProvisioningIntentStatus.FAILED,
                        ProvisioningIntent.billing_provider_subscription_id.is_not(None),
                    ),
                )
            )
        ).all()

        for intent in rows:
            logger.error(
                "provisioning.orphaned_remote_object",
                extra={
                    "intent_id": str(intent.id),
                    "company_id": str(intent.company_id),
                    "status": intent.status.value,
                    "billing_provider_customer_id": intent.billing_provider_customer_id,
                    "billing_provider_subscription_id": intent.billing_provider_subscription_id,
                    "error": intent.error,
                },
            )
            intent.status = ProvisioningIntentStatus.ORPHANED
            session.add(intent)
        session.commit()

        observe_orphaned_intents(len(rows))
        return [ProvisioningIntentRead.model_validate(intent) for intent in rows]

    def _ensure_customer(
        self,
        session: Session,
        client: BillingProviderClient,
        company: Company,
        intent: ProvisioningIntent,
        payload: SubscriptionCreateRequest,
    ) -> str:
        if company.billing_provider_customer_id:
            intent.billing_provider_customer_id = company.billing_provider_customer_id
            session.commit()
            return company.billing_provider_customer_id

        logger.info("provisioning.creating_customer", extra={"company_id": str(company.id), "intent_id": str(intent.id)})
        customer = client.create_customer(
            name=payload.customer_name or company.name,
            email=str(payload.customer_email) if payload.customer_email else None,
            cpf_cnpj=payload.customer_cpf_cnpj or company.document,
            external_reference=str(company.id),
        )
        customer_id = customer.get("id")
        if not customer_id:
            raise ExternalProviderError("failed to create customer: billing provider returned no id")

        try:
            company.billing_provider_customer_id = str(customer_id)
            intent.billing_provider_customer_id = str(customer_id)
            intent.status = ProvisioningIntentStatus.CUSTOMER_CREATED
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error(
                "provisioning.partial_failure",
                exc_info=True,
                extra={"company_id": str(company.id), "billing_provider_customer_id": str(customer_id), "error": str(exc)},
            )
            self._fail_intent(session, intent.id, f"customer id could not be saved: {exc}")
            raise PartialFailure("customer was created at the billing provider but could not be saved") from exc
        return str(customer_id)

    def _fetch_pix(self, client: BillingProviderClient, remote_subscription_id: str) -> PixPaymentInfo | None:
        payments = client.list_subscription_payments(remote_subscription_id)
        if not payments:
            logger.warning(
                "provisioning.pix_payment_missing",
                extra={"billing_provider_subscription_id": remote_subscription_id},
            )
            return None

        first_payment_id = str(payments[0].get("id"))
        qr = client.get_pix_qr_code(first_payment_id)
        return PixPaymentInfo(
            payment_id=first_payment_id,
            qr_code=qr.get("encodedImage"),
            copy_paste=qr.get("payload"),
            expiration_date=qr.get("expirationDate"),
        )

    @staticmethod
    def _fail_intent(
        session: Session,
        intent_id: uuid.UUID,
        error: str,
        *,
        billing_provider_subscription_id: str | None = None,
    ) -> None:
        intent = session.get(ProvisioningIntent, intent_id)
        if intent is None:
            return
        intent.status = ProvisioningIntentStatus.FAILED
        intent.error = error[:2000]
        if billing_provider_subscription_id is not None:
            intent.billing_provider_subscription_id = billing_provider_subscription_id
        session.commit()


provisioning_service = SubscriptionProvisioningService()
