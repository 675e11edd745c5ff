from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from graficontrol.business.financial.models import TransactionType


class TransactionCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: TransactionType
    amount: Decimal = Field(gt=Decimal("0"), max_digits=12, decimal_places=2)
    due_date: date
    description: str = Field(min_length=1, max_length=500)
    paid: bool = False


class TransactionPaidUpdate(BaseModel):
    paid: bool


class TransactionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    company_id: UUID
    type: TransactionType
    amount: Decimal
    due_date: date
    paid: bool
    paid_date: date | None
    order_id: UUID | None
    description: str
    created_at: datetime


class FinancialSummary(BaseModel):
    revenue: Decimal
    expenses: Decimal
    pending_revenue: Decimal
    pending_expenses: Decimal
    balance: Decimal
