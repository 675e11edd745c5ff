from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import StrEnum

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Index, Numeric, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from graficontrol.core.database import Base, str_enum


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TransactionType(StrEnum):
    REVENUE = "revenue"
    EXPENSE = "expense"


class FinancialTransaction(Base):
    __tablename__ = "financial_transaction"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    company_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("company.id", ondelete="RESTRICT"), nullable=False)
    type: Mapped[TransactionType] = mapped_column(str_enum(TransactionType), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    due_date: Mapped[date] = mapped_column(Date(), nullable=False)
    paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    paid_date: Mapped[date | None] = mapped_column(Date(), nullable=True)
    order_id: Mapped[uuid.UUID | None] = mapped_column(Uuid(as_uuid=True), ForeignKey("orders.id", ondelete="RESTRICT"), nullable=True)
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("order_id", name="uq_financial_transaction_order"),
        Index("ix_financial_transaction_company_due", "company_id", "due_date"),
    )
