from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from graficontrol.business.orders.schemas import OrderRead


class QuoteCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    client_id: UUID | None = None
    code: str | None = Field(default=None, max_length=64)
    description: str = Field(min_length=1, max_length=500)
    delivery_date: date
    cost_value: Decimal = Field(ge=Decimal("0"), max_digits=12, decimal_places=2)
    sale_value: Decimal = Field(gt=Decimal("0"), max_digits=12, decimal_places=2)


class QuoteConvertRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    total_value: Decimal | None = Field(default=None, max_digits=12, decimal_places=2)
    has_advance: bool = False
    advance_value: Decimal | None = Field(default=None, max_digits=12, decimal_places=2)


class QuoteRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    company_id: UUID
    client_id: UUID | None
    code: str | None
    description: str
    delivery_date: date
    cost_value: Decimal
    sale_value: Decimal
    profit_value: Decimal
    approved: bool
    converted: bool = False
    created_at: datetime


class QuoteConversionRead(BaseModel):
    quote: QuoteRead
    order: OrderRead
