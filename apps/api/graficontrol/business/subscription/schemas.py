from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

from graficontrol.business.subscription.models import PaymentMethod, ProvisioningIntentStatus, SubscriptionStatus
from graficontrol.business.subscription.status import AccessStatus


BillingType = Literal["CREDIT_CARD", "PIX"]


class CreditCardInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    holder_name: str = Field(min_length=1, max_length=100)
    number: str = Field(pattern=r"^\d{13,19}$")
    expiry_month: str = Field(pattern=r"^(0[1-9]|1[0-2])$")
    expiry_year: str = Field(pattern=r"^\d{4}$")
    ccv: str = Field(pattern=r"^\d{3,4}$")


class CreditCardHolderInfoInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    cpf_cnpj: str = Field(min_length=11, max_length=18)
    postal_code: str = Field(min_length=8, max_length=9)
    address_number: str = Field(min_length=1, max_length=10)
    phone: str = Field(min_length=10, max_length=15)


class SubscriptionCreateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    plan_id: UUID
    payment_method: BillingType
    customer_name: str | None = Field(default=None, min_length=1, max_length=100)
    customer_email: EmailStr | None = None
    customer_cpf_cnpj: str | None = Field(default=None, min_length=11, max_length=18)
    credit_card: CreditCardInput | None = None
    credit_card_holder_info: CreditCardHolderInfoInput | None = None

    @model_validator(mode="after")
    def _require_card_for_card_payments(self) -> SubscriptionCreateRequest:
        if self.payment_method == "CREDIT_CARD" and self.credit_card is None:
            raise ValueError("credit_card is required for CREDIT_CARD payments")
        return self


class PixPaymentInfo(BaseModel):
    payment_id: str
    qr_code: str | None
    copy_paste: str | None
    expiration_date: str | None


class SubscriptionCreateResponse(BaseModel):
    subscription_id: UUID
    billing_provider_subscription_id: str
    status: SubscriptionStatus
    provider_status: str | None = None
    pix: PixPaymentInfo | None = None


class PlanRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    duration_months: int
    price: Decimal
    is_active: bool


class SubscriptionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    company_id: UUID
    plan_id: UUID
    status: SubscriptionStatus
    start_date: datetime
    end_date: datetime
    payment_method: PaymentMethod
    billing_provider_subscription_id: str | None
    created_at: datetime
    updated_at: datetime
    plan: PlanRead | None = None


class AccessStatusRead(BaseModel):
    status: AccessStatus
    is_active: bool
    trial_end_date: datetime | None
    subscription: SubscriptionRead | None = None


class ProvisioningIntentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    company_id: UUID
    plan_id: UUID
    payment_method: PaymentMethod
    subscription_id: UUID
    status: ProvisioningIntentStatus
    billing_provider_customer_id: str | None
    billing_provider_subscription_id: str | None
    error: str | None
    created_at: datetime
    updated_at: datetime
