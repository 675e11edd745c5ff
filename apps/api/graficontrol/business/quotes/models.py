from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Index, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from graficontrol.core.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Quote(Base):
    __tablename__ = "quote"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    company_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("company.id", ondelete="RESTRICT"), nullable=False)
    client_id: Mapped[uuid.UUID | None] = mapped_column(Uuid(as_uuid=True), nullable=True)
    code: Mapped[str | None] = mapped_column(String(64), nullable=True)
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    delivery_date: Mapped[date] = mapped_column(Date(), nullable=False)
    cost_value: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    sale_value: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    profit_value: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (Index("ix_quote_company_created", "company_id", "created_at"),)
