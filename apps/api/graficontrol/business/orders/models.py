from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import StrEnum

from sqlalchemy import Boolean, CheckConstraint, Date, DateTime, ForeignKey, Index, Numeric, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from graficontrol.core.database import Base, str_enum


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrderStatus(StrEnum):
    IN_PROGRESS = "in_progress"
    READY = "ready"
    DELIVERED_PENDING_PAYMENT = "delivered_pending_payment"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Order(Base):
    __tablename__ = "orders"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    company_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("company.id", ondelete="RESTRICT"), nullable=False)
    quote_id: Mapped[uuid.UUID | None] = mapped_column(Uuid(as_uuid=True), ForeignKey("quote.id", ondelete="RESTRICT"), nullable=True)
    code: Mapped[str | None] = mapped_column(String(64), nullable=True)
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    total_value: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    has_advance: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    advance_value: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    pending_value: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    status: Mapped[OrderStatus] = mapped_column(str_enum(OrderStatus), nullable=False, default=OrderStatus.IN_PROGRESS)
    delivery_date: Mapped[date] = mapped_column(Date(), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint("quote_id", name="uq_orders_quote"),
        CheckConstraint("total_value > 0", name="ck_orders_total_positive"),
        CheckConstraint("advance_value >= 0 AND advance_value <= total_value", name="ck_orders_advance_within_total"),
        Index("ix_orders_company_status", "company_id", "status"),
    )
