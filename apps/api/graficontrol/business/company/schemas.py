from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class CompanyCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    document: str | None = Field(default=None, min_length=11, max_length=18)


class CompanyAccessUpdate(BaseModel):
    unlimited_access: bool | None = None
    trial_end_date: datetime | None = None


class CompanyRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    document: str | None
    trial_end_date: datetime | None
    unlimited_access: bool
    billing_provider_customer_id: str | None
    created_at: datetime
