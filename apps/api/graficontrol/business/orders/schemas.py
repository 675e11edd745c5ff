from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from graficontrol.business.orders.models import OrderStatus
from graficontrol.business.orders.state_machine import INITIAL_STATUSES


def validate_financials(total_value: Decimal, has_advance: bool, advance_value: Decimal | None) -> None:
    if total_value <= 0:
        raise ValueError("total_value must be greater than zero")
    if has_advance:
        if advance_value is None or advance_value < 0:
            raise ValueError("advance_value must be zero or greater")
        if advance_value > total_value:
            raise ValueError("advance_value cannot exceed total_value")


class OrderFinancials(BaseModel):
    total_value: Decimal = Field(max_digits=12, decimal_places=2)
    has_advance: bool = False
    advance_value: Decimal | None = Field(default=None, max_digits=12, decimal_places=2)

    @model_validator(mode="after")
    def check_advance(self) -> "OrderFinancials":
        validate_financials(self.total_value, self.has_advance, self.advance_value)
        return self


class OrderCreate(OrderFinancials):
    model_config = ConfigDict(extra="forbid")

    description: str = Field(min_length=1, max_length=500)
    code: str | None = Field(default=None, max_length=64)
    delivery_date: date
    status: OrderStatus = OrderStatus.IN_PROGRESS

    @model_validator(mode="after")
    def check_initial_status(self) -> "OrderCreate":
        if self.status not in INITIAL_STATUSES:
            raise ValueError("orders start as in_progress or ready")
        return self


class OrderUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    description: str | None = Field(default=None, min_length=1, max_length=500)
    code: str | None = Field(default=None, max_length=64)
    delivery_date: date | None = None
    total_value: Decimal | None = Field(default=None, max_digits=12, decimal_places=2)
    has_advance: bool | None = None
    advance_value: Decimal | None = Field(default=None, max_digits=12, decimal_places=2)


class OrderTransitionRequest(BaseModel):
    status: OrderStatus


class OrderStatusOverride(BaseModel):
    status: OrderStatus
    reason: str = Field(min_length=3, max_length=500)


class OrderRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    company_id: UUID
    quote_id: UUID | None
    code: str | None
    description: str
    total_value: Decimal
    has_advance: bool
    advance_value: Decimal
    pending_value: Decimal
    status: OrderStatus
    delivery_date: date
    created_at: datetime
    updated_at: datetime
