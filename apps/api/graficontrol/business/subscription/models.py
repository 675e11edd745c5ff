from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import StrEnum

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Index, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from graficontrol.core.database import Base, str_enum


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SubscriptionStatus(StrEnum):
    PENDING = "pending"
    ACTIVE = "active"
    OVERDUE = "overdue"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class PaymentMethod(StrEnum):
    CREDIT_CARD = "credit_card"
    PIX = "pix"


class ProvisioningIntentStatus(StrEnum):
    PENDING = "pending"
    CUSTOMER_CREATED = "customer_created"
    REMOTE_CREATED = "remote_created"
    FULFILLED = "fulfilled"
    FAILED = "failed"
    ORPHANED = "orphaned"


class Plan(Base):
    __tablename__ = "plan"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    duration_months: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (CheckConstraint("duration_months >= 1", name="ck_plan_duration_positive"),)


class Subscription(Base):
    __tablename__ = "subscription"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    company_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("company.id", ondelete="RESTRICT"), nullable=False)
    plan_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("plan.id", ondelete="RESTRICT"), nullable=False)
    status: Mapped[SubscriptionStatus] = mapped_column(
        str_enum(SubscriptionStatus),
        nullable=False,
        default=SubscriptionStatus.PENDING,
        server_default=SubscriptionStatus.PENDING.value,
    )
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    payment_method: Mapped[PaymentMethod] = mapped_column(str_enum(PaymentMethod), nullable=False)
    billing_provider_subscription_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    plan: Mapped[Plan] = relationship("graficontrol.business.subscription.models.Plan", lazy="joined")

    __table_args__ = (
        Index("ix_subscription_company_status", "company_id", "status", "created_at"),
        Index("ix_subscription_provider_id", "billing_provider_subscription_id"),
    )


class ProvisioningIntent(Base):
    """Outbox record written before any billing provider call."""

    __tablename__ = "provisioning_intent"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    company_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("company.id", ondelete="RESTRICT"), nullable=False)
    plan_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("plan.id", ondelete="RESTRICT"), nullable=False)
    payment_method: Mapped[PaymentMethod] = mapped_column(str_enum(PaymentMethod), nullable=False)
    subscription_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False, unique=True)
    status: Mapped[ProvisioningIntentStatus] = mapped_column(
        str_enum(ProvisioningIntentStatus),
        nullable=False,
        default=ProvisioningIntentStatus.PENDING,
        server_default=ProvisioningIntentStatus.PENDING.value,
    )
    billing_provider_customer_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    billing_provider_subscription_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("ix_provisioning_intent_status_date", "status", "updated_at"),
    )
